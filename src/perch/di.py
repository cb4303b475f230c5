"""Dependency-injection boundary.

The application's ``dependency_injector`` container is published into the
``ServletContext`` once per deployment and looked up again whenever a
session is bootstrapped. Views live in the container as ordinary
providers; the ones decorated with ``@ui(path)`` become resolvable::

    class Views(containers.DeclarativeContainer):
        repo = providers.Singleton(OrderRepository)
        orders = providers.Factory(OrdersView, repo=repo)   # @ui("orders")

    publish_application_context(servlet.context, Views())

``ApplicationContext`` is a borrowed handle: perch never creates,
resets or shuts the container down.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from dependency_injector import containers

from perch.errors import ConfigurationError
from perch.ui import View, ui_path_of, view_path

if TYPE_CHECKING:
    from perch.server.request import ServletRequest
    from perch.servlet import ServletContext

logger = logging.getLogger("perch.container")

APPLICATION_CONTEXT_ATTRIBUTE = "perch.application_context"
"""ServletContext attribute holding the ``ApplicationContext``."""


class ApplicationContext:
    """Read-only handle on a DI container, shared by all sessions."""

    __slots__ = ("_container", "_lock", "_ui_paths")

    def __init__(self, container: containers.Container) -> None:
        self._container = container
        self._lock = threading.Lock()
        self._ui_paths: dict[str, str] | None = None

    @property
    def container(self) -> containers.Container:
        return self._container

    def ui_paths(self) -> dict[str, str]:
        """Map of UI path -> provider name, scanned once."""
        paths = self._ui_paths
        if paths is not None:
            return paths
        with self._lock:
            if self._ui_paths is None:
                self._ui_paths = self._scan()
            return self._ui_paths

    def _scan(self) -> dict[str, str]:
        paths: dict[str, str] = {}
        for name, provider in self._container.providers.items():
            path = ui_path_of(getattr(provider, "provides", None))
            if path is None:
                continue
            if path in paths:
                msg = (
                    f"UI path {path!r} is declared by both {paths[path]!r} "
                    f"and {name!r}"
                )
                raise ConfigurationError(msg)
            paths[path] = name
        logger.debug("Found %d UI view(s): %s", len(paths), sorted(paths))
        return paths

    def get_view(self, name: str) -> View:
        """Build the view named *name* through its container provider."""
        return self._container.providers[name]()

    def __repr__(self) -> str:
        return f"<ApplicationContext {type(self._container).__name__}>"


def publish_application_context(
    servlet_context: ServletContext,
    container: containers.Container,
) -> ApplicationContext:
    """Bind *container* to the deployment and return its handle.

    UI paths are scanned immediately so duplicate declarations fail at
    startup rather than on the first request.
    """
    context = ApplicationContext(container)
    context.ui_paths()
    servlet_context.set_attribute(APPLICATION_CONTEXT_ATTRIBUTE, context)
    return context


def resolve_application_context(servlet_context: ServletContext | None) -> ApplicationContext | None:
    """The published handle, or ``None`` if nothing (valid) was published."""
    if servlet_context is None:
        return None
    value: Any = servlet_context.get_attribute(APPLICATION_CONTEXT_ATTRIBUTE)
    if isinstance(value, ApplicationContext):
        return value
    if value is not None:
        logger.warning(
            "Attribute %r holds %r, not an ApplicationContext",
            APPLICATION_CONTEXT_ATTRIBUTE,
            type(value).__name__,
        )
    return None


class ContainerViewProvider:
    """Resolves views declared with ``@ui`` in the DI container."""

    __slots__ = ("context",)

    type_tag = "perch.di.ContainerViewProvider"

    def __init__(self, context: ApplicationContext) -> None:
        self.context = context

    def resolve(self, request: ServletRequest) -> View | None:
        name = self.context.ui_paths().get(view_path(request.path_info))
        if name is None:
            return None
        return self.context.get_view(name)

    def __repr__(self) -> str:
        return f"ContainerViewProvider({self.context!r})"
