"""Servlet deployment configuration.

ServletConfig is a frozen dataclass — immutable after creation, captured
by the service object when the servlet is activated. Setters on the
servlet produce a new value with ``dataclasses.replace``.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ServletConfig:
    """Servlet configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = ServletConfig(mapping="/app", ui="shop.views:MainView")
    """

    # Deployment
    mapping: str = ""  # URL prefix the servlet is deployed under ("" = root)
    ui: str | None = None  # "module:Class" served by the default view provider
    title: str = "Perch"

    # Client-server endpoint (None = derive from the request)
    service_url: str | None = None

    # Forwarding support: fold the servlet path into path info
    clear_servlet_path: bool = False

    # Sessions
    secret_key: str = ""
    session_cookie: str = "perch_session"
    session_max_age: int = 1800  # 30 minutes
    session_secure: bool = False
    session_samesite: str = "lax"
    session_purge_interval: float = 60  # min seconds between expired-session sweeps

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
