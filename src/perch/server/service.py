"""The service object — sessions, view resolution and the bootstrap page.

One ``UIService`` is created per servlet when the servlet is activated.
It owns the session store, fires session-init listeners for every new
session, resolves a view through the session's providers and answers
with a bootstrap page that tells the client which endpoint URL to talk
to.

Lifecycle:
    ``__init__`` only records configuration. ``init()`` compiles the
    template and the session signer; it is idempotent and safe to call
    from several threads. Listeners are registered between the two,
    from ``UIServlet.servlet_initialized()``.
"""

import logging
import threading
from time import time

from itsdangerous import BadSignature, URLSafeTimedSerializer
from kida import Environment
from kida.utils.html import Markup

from perch._internal.asgi import Send
from perch._internal.invoke import invoke
from perch.config import ServletConfig
from perch.errors import ConfigurationError, HTTPError, NotFound, ServiceInitializationError
from perch.http.response import Response
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.request import ServletRequest
from perch.server.sender import send_response
from perch.session import SessionInitEvent, SessionInitListener, SessionStore, UISession
from perch.ui import DefaultViewProvider, View, load_view_class

logger = logging.getLogger("perch.server")

BOOTSTRAP_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
</head>
<body>
<div id="perch-root" data-service-url="{{ service_url }}">
{{ content }}
</div>
</body>
</html>
"""


def default_service_url(request: ServletRequest) -> str:
    """The host's default endpoint: the servlet's own URL."""
    return f"{request.context_path}{request.servlet_path}/"


class UIService:
    """Per-servlet service object."""

    __slots__ = (
        "_default_view",
        "_init_lock",
        "_initialized",
        "_last_purge",
        "_listeners",
        "_serializer",
        "_template",
        "config",
        "servlet",
        "sessions",
    )

    def __init__(self, servlet: object, config: ServletConfig) -> None:
        self.servlet = servlet
        self.config = config
        self.sessions = SessionStore()
        self._listeners: list[SessionInitListener] = []
        self._initialized = False
        self._last_purge = 0.0
        self._init_lock = threading.Lock()
        self._serializer: URLSafeTimedSerializer | None = None
        self._template = None
        self._default_view: type | None = None

    # -- Activation --

    def init(self) -> None:
        """Compile runtime state. Further calls are no-ops."""
        if self._initialized:
            return
        with self._init_lock:
            if self._initialized:
                return
            if not self.config.secret_key:
                msg = "ServletConfig.secret_key must not be empty."
                raise ConfigurationError(msg)
            self._serializer = URLSafeTimedSerializer(self.config.secret_key, salt="perch.session")
            self._template = Environment(autoescape=True).from_string(BOOTSTRAP_TEMPLATE)
            if self.config.ui:
                self._default_view = load_view_class(self.config.ui)
            self._initialized = True

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def service_url(self) -> str | None:
        """Endpoint URL override; ``None`` means the host default."""
        return None

    # -- Session-init listeners --

    def add_session_init_listener(self, listener: SessionInitListener) -> None:
        self._listeners.append(listener)

    def remove_session_init_listener(self, listener: SessionInitListener) -> None:
        self._listeners = [item for item in self._listeners if item is not listener]

    # -- Sessions --

    def find_session(self, request: ServletRequest) -> tuple[UISession, bool]:
        """Return ``(session, created)`` for the request's session cookie."""
        assert self._serializer is not None
        token = request.cookies.get(self.config.session_cookie)
        if token:
            try:
                session_id = self._serializer.loads(token, max_age=self.config.session_max_age)
            except BadSignature:
                session_id = None
            if isinstance(session_id, str):
                session = self.sessions.get(session_id)
                if session is not None and session.expired(self.config.session_max_age):
                    logger.debug("Session %s expired", session_id[:8])
                    self.sessions.discard(session_id)
                elif session is not None:
                    session.touch()
                    return session, False
        return self.create_session(request), True

    def create_session(self, request: ServletRequest) -> UISession:
        """Create, bootstrap and store a new session.

        The session is stored only after every listener succeeded.
        """
        self._purge_expired()
        session = UISession()
        if self._default_view is not None:
            session.add_view_provider(DefaultViewProvider(self._default_view))
        self.fire_session_init(session, request)
        self.sessions.add(session)
        logger.debug("Session %s created", session.id[:8])
        return session

    def _purge_expired(self) -> None:
        """Sweep idle sessions, at most once per ``session_purge_interval``."""
        now = time()
        if now - self._last_purge < self.config.session_purge_interval:
            return
        self._last_purge = now
        purged = self.sessions.purge_expired(self.config.session_max_age)
        if purged:
            logger.debug("Purged %d expired sessions", purged)

    def fire_session_init(self, session: UISession, request: ServletRequest) -> None:
        """Run every session-init listener while holding the session lock."""
        event = SessionInitEvent(service=self, session=session, request=request)
        with session.lock:
            for listener in tuple(self._listeners):
                try:
                    listener.session_init(event)
                except ServiceInitializationError:
                    raise
                except Exception as exc:
                    msg = f"Session init listener {listener!r} failed: {exc}"
                    raise ServiceInitializationError(msg) from exc

    # -- Views --

    def resolve_view(self, session: UISession, request: ServletRequest) -> View | None:
        """Ask the session's providers in order; first view wins."""
        for provider in session.get_view_providers():
            view = provider.resolve(request)
            if view is not None:
                return view
        return None

    # -- Request pipeline --

    async def handle_request(self, request: ServletRequest, send: Send) -> None:
        """Process one request and send the response."""
        try:
            response = await self._dispatch(request)
        except HTTPError as exc:
            response = handle_http_error(exc, request, self.config.debug)
        except Exception as exc:
            response = handle_internal_error(exc, request, self.config.debug)
        await send_response(response, send)

    async def _dispatch(self, request: ServletRequest) -> Response:
        session, created = self.find_session(request)
        try:
            return await self._render(session, request)
        except Exception:
            # The client never receives a cookie for a failed first request
            if created:
                self.sessions.discard(session.id)
            raise

    async def _render(self, session: UISession, request: ServletRequest) -> Response:
        assert self._serializer is not None and self._template is not None
        view = self.resolve_view(session, request)
        if view is None:
            raise NotFound(f"No view for path {request.path_info!r}")
        content = await invoke(view.render, request)

        service_url = self.service_url
        if service_url is None:
            service_url = default_service_url(request)
        html = self._template.render(
            {
                "title": self.config.title,
                "service_url": service_url,
                "content": Markup(content),
            }
        )

        cfg = self.config
        return Response(body=html).with_cookie(
            cfg.session_cookie,
            self._serializer.dumps(session.id),
            max_age=cfg.session_max_age,
            path=request.context_path or "/",
            secure=cfg.session_secure,
            samesite=cfg.session_samesite,
        )
