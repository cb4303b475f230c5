"""Container-aware servlet.

``ContainerServlet`` is a drop-in ``UIServlet`` that

* bootstraps every new session with a ``ContainerViewProvider`` in place
  of the host's default provider (see ``perch.bootstrap``),
* lets deployment code override the client-server endpoint URL shown on
  the bootstrap page (``service_url``), and
* can clear the servlet path so that it can sit behind a forwarding
  controller (``clear_servlet_path``, see ``perch.paths``).

Both settings follow the servlet's setup/active split: set them before
the first request. The service object captures them when it is built;
changes made afterwards are logged and ignored.

Usage::

    servlet = ContainerServlet(ServletConfig(secret_key="..."))
    servlet.service_url = "https://push.example.com/ui/"
    publish_application_context(servlet.context, Views())
"""

from __future__ import annotations

from perch.bootstrap import ContainerSessionInitListener
from perch.config import ServletConfig
from perch.http.request import Request
from perch.paths import NormalizedPaths, normalize_paths
from perch.server.request import ServletRequest
from perch.server.service import UIService
from perch.servlet import UIServlet


class ContainerUIService(UIService):
    """Service object exposing the endpoint URL override verbatim."""

    __slots__ = ("_service_url",)

    def __init__(self, servlet: object, config: ServletConfig, service_url: str | None) -> None:
        super().__init__(servlet, config)
        self._service_url = service_url

    @property
    def service_url(self) -> str | None:
        return self._service_url


class ContainerServletRequest(ServletRequest):
    """Request view with the servlet path optionally folded into path info."""

    __slots__ = ("_paths",)

    def __init__(self, request: Request, service: UIService, clear_servlet_path: bool) -> None:
        super().__init__(request, service)
        self._paths: NormalizedPaths = normalize_paths(
            request.servlet_path, request.path_info, enabled=clear_servlet_path
        )

    @property
    def servlet_path(self) -> str:
        return self._paths.mount_path

    @property
    def path_info(self) -> str | None:
        return self._paths.path_info


class ContainerServlet(UIServlet):
    __slots__ = ()

    @property
    def service_url(self) -> str | None:
        """Custom client-server endpoint URL, or ``None`` for the default."""
        return self.config.service_url

    @service_url.setter
    def service_url(self, value: str | None) -> None:
        self._reconfigure(service_url=value)

    @property
    def clear_servlet_path(self) -> bool:
        """Whether the servlet path is folded into path info."""
        return self.config.clear_servlet_path

    @clear_servlet_path.setter
    def clear_servlet_path(self, value: bool) -> None:
        self._reconfigure(clear_servlet_path=value)

    def servlet_initialized(self) -> None:
        self.service.add_session_init_listener(ContainerSessionInitListener(self.context))

    def create_service(self, config: ServletConfig) -> UIService:
        service = ContainerUIService(self, config, config.service_url)
        service.init()
        return service

    def create_request(self, request: Request) -> ServletRequest:
        service = self.service
        return ContainerServletRequest(request, service, service.config.clear_servlet_path)
