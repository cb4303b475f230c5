"""The host UI servlet.

Mutable during setup (configuration, lifecycle hooks). Activated on the
first lifespan or HTTP scope: the service object is created from the
configuration captured at that moment, ``servlet_initialized()`` runs,
and the configuration is frozen for the lifetime of the servlet.

Subclasses customize three seams::

    create_service(config)  -> UIService       # service-object construction
    servlet_initialized()                      # runs once, after activation
    create_request(request) -> ServletRequest  # per-request wrapping

Thread safety:
    Setup is single-threaded (module import time). Activation uses a
    Lock + double-check so exactly one thread builds the service even if
    several workers deliver their first request at once.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch.config import ServletConfig
from perch.errors import HTTPError, ServiceInitializationError
from perch.http.request import Request
from perch.http.response import Response
from perch.server.errors import error_body
from perch.server.request import ServletRequest
from perch.server.sender import send_response
from perch.server.service import UIService

logger = logging.getLogger("perch.server")


class ServletContext:
    """Deployment-wide attributes shared by every servlet of an app.

    The analogue of a servlet container's context: integration code
    publishes shared objects here (e.g. the DI container) and servlets
    look them up by name.
    """

    __slots__ = ("_attributes", "_lock")

    def __init__(self, **attributes: Any) -> None:
        self._attributes: dict[str, Any] = dict(attributes)
        self._lock = threading.Lock()

    def get_attribute(self, name: str) -> Any | None:
        with self._lock:
            return self._attributes.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        with self._lock:
            self._attributes[name] = value

    def remove_attribute(self, name: str) -> None:
        with self._lock:
            self._attributes.pop(name, None)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._attributes


class UIServlet:
    """ASGI application serving UI views from a service object.

    Usage::

        servlet = UIServlet(ServletConfig(ui="shop.views:MainView", secret_key="..."))
        # serve with any ASGI server, or servlet.run()
    """

    __slots__ = (
        "_activate_lock",
        "_active",
        "_config",
        "_service",
        "_shutdown_hooks",
        "_startup_hooks",
        "context",
    )

    def __init__(
        self,
        config: ServletConfig | None = None,
        *,
        context: ServletContext | None = None,
    ) -> None:
        self._config: ServletConfig = config or ServletConfig()
        self.context: ServletContext = context or ServletContext()
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._service: UIService | None = None
        self._active = False
        self._activate_lock = threading.Lock()

    # -- Configuration --

    @property
    def config(self) -> ServletConfig:
        """Current configuration; the captured one once active."""
        return self._config

    @property
    def active(self) -> bool:
        return self._active

    def _reconfigure(self, **changes: Any) -> None:
        """Apply setup-time configuration changes.

        Once active, the service keeps the configuration it was built
        with; late changes are logged and dropped.
        """
        if self._active:
            logger.warning(
                "Ignoring %s after activation; configuration is frozen",
                ", ".join(sorted(changes)),
            )
            return
        self._config = replace(self._config, **changes)

    @property
    def service(self) -> UIService:
        """The activated service object."""
        if self._service is None:
            msg = "Servlet has not been activated yet; the service exists after the first request."
            raise RuntimeError(msg)
        return self._service

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync hook run at ASGI lifespan startup."""
        self._check_not_active()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync hook run at ASGI lifespan shutdown."""
        self._check_not_active()
        self._shutdown_hooks.append(func)
        return func

    # -- Extension seams --

    def create_service(self, config: ServletConfig) -> UIService:
        """Construct and activate the service object."""
        service = UIService(self, config)
        service.init()
        return service

    def servlet_initialized(self) -> None:
        """Called once, right after the service object is in place."""

    def create_request(self, request: Request) -> ServletRequest:
        """Wrap a raw request for the service object."""
        return ServletRequest(request, self.service)

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve with pounce (``pip install perch[server]``)."""
        from perch.server.dev import run_server

        self._ensure_active()
        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            reload=self.config.debug,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        try:
            self._ensure_active()
        except ServiceInitializationError:
            logger.exception("Servlet activation failed")
            await send_response(Response(body=error_body(500, "Service unavailable"), status=500), send)
            return

        try:
            request = Request.from_asgi(scope, mapping=self._config.mapping)
        except HTTPError as exc:
            await send_response(Response(body=error_body(exc.status, exc.detail), status=exc.status), send)
            return

        await self.service.handle_request(self.create_request(request), send)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol, activating at startup."""
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_active()
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_active(self) -> None:
        """Thread-safe activation with double-check locking."""
        if self._active:
            return
        with self._activate_lock:
            if self._active:
                return
            self._activate()

    def _activate(self) -> None:
        """Build the service and run ``servlet_initialized``.

        MUST only be called while holding _activate_lock.
        """
        config = self._config
        try:
            service = self.create_service(config)
        except ServiceInitializationError:
            raise
        except Exception as exc:
            msg = f"Could not create the service object: {exc}"
            raise ServiceInitializationError(msg) from exc

        self._service = service
        try:
            self.servlet_initialized()
        except Exception:
            self._service = None
            raise
        self._active = True
        logger.debug("Servlet %s active (mapping=%r)", type(self).__name__, config.mapping)

    def _check_not_active(self) -> None:
        if self._active:
            msg = (
                "Cannot modify the servlet after it has started serving requests. "
                "Register hooks and configuration before the first request."
            )
            raise RuntimeError(msg)
