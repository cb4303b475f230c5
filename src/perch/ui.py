"""Views and view providers.

A session resolves the view for a request by asking its view providers
in order; the first one that returns a view wins. Providers are compared
by ``canonical_name`` — a plain string — rather than by class, since the
same provider class may be imported twice (plugin loaders, reloaders,
vendored copies) and class identity cannot be trusted across those.
"""

from __future__ import annotations

import importlib
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol, TypeVar

from perch.errors import ConfigurationError

if TYPE_CHECKING:
    from perch.server.request import ServletRequest

DEFAULT_VIEW_PROVIDER = "perch.ui.DefaultViewProvider"
"""Type tag of the host's built-in provider."""

_UI_PATH_ATTR = "__perch_ui__"

T = TypeVar("T", bound=type)


class View(Protocol):
    """Anything that can render itself for a request (sync or async)."""

    def render(self, request: ServletRequest) -> str | Awaitable[str]: ...


class ViewProvider(Protocol):
    """Resolves the view for a request, or ``None`` to pass."""

    type_tag: str

    def resolve(self, request: ServletRequest) -> View | None: ...


def canonical_name(provider: object) -> str:
    """Stable string identity of a provider.

    The provider's ``type_tag`` when it declares one, otherwise the
    fully qualified name of its class.
    """
    tag = getattr(provider, "type_tag", None)
    if tag:
        return tag
    cls = type(provider)
    return f"{cls.__module__}.{cls.__qualname__}"


def ui(path: str = "") -> Callable[[T], T]:
    """Declare the URL path a view class answers to.

    Only consulted by container-backed resolution::

        @ui("orders")
        class OrdersView:
            def render(self, request): ...

    The path is the first segment of path info; ``""`` is the root view.
    """

    def decorator(cls: T) -> T:
        setattr(cls, _UI_PATH_ATTR, path.strip("/"))
        return cls

    return decorator


def ui_path_of(cls: object) -> str | None:
    """The path declared with ``@ui`` on *cls* itself (not inherited)."""
    if not isinstance(cls, type):
        return None
    return cls.__dict__.get(_UI_PATH_ATTR)


def view_path(path_info: str | None) -> str:
    """First segment of *path_info*: ``"/orders/7"`` -> ``"orders"``."""
    if not path_info:
        return ""
    return path_info.lstrip("/").split("/", 1)[0]


def load_view_class(import_path: str) -> type:
    """Import a ``"module:Class"`` reference."""
    module_name, sep, attr = import_path.partition(":")
    if not sep or not module_name or not attr:
        msg = f"View reference must look like 'module:Class', got {import_path!r}"
        raise ConfigurationError(msg)
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        msg = f"Cannot import view module {module_name!r}: {exc}"
        raise ConfigurationError(msg) from exc
    try:
        return getattr(module, attr)
    except AttributeError:
        msg = f"Module {module_name!r} has no view {attr!r}"
        raise ConfigurationError(msg) from None


class DefaultViewProvider:
    """The host's built-in provider.

    Serves the servlet's configured ``ui`` class for every path, which is
    what a plain servlet wants and what a container-backed servlet must
    get rid of.
    """

    __slots__ = ("view_class",)

    type_tag = DEFAULT_VIEW_PROVIDER

    def __init__(self, view_class: type) -> None:
        self.view_class = view_class

    def resolve(self, request: ServletRequest) -> View | None:
        return self.view_class()

    def __repr__(self) -> str:
        return f"DefaultViewProvider({self.view_class.__qualname__})"
