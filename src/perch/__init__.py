"""Perch — a container-aware UI servlet for ASGI.

Serves UI views whose resolution is delegated to a ``dependency_injector``
container, with an overridable client-server endpoint URL and optional
servlet-path clearing for deployments behind a forwarding controller.

Basic usage::

    from dependency_injector import containers, providers
    from perch import ContainerServlet, ServletConfig, publish_application_context
    from perch.ui import ui

    @ui("orders")
    class OrdersView:
        def render(self, request):
            return "<h1>Orders</h1>"

    class Views(containers.DeclarativeContainer):
        orders = providers.Factory(OrdersView)

    servlet = ContainerServlet(ServletConfig(secret_key="s3cr3t"))
    publish_application_context(servlet.context, Views())
"""

__version__ = "0.1.0.dev0"
__all__ = [
    "ApplicationContext",
    "ConfigurationError",
    "ContainerServlet",
    "ContainerViewProvider",
    "DefaultViewProvider",
    "ForwardingController",
    "HTTPError",
    "NotFound",
    "PerchError",
    "ServiceInitializationError",
    "ServletConfig",
    "ServletContext",
    "UIServlet",
    "normalize_paths",
    "publish_application_context",
    "resolve_application_context",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "ContainerServlet":
        from perch.container import ContainerServlet

        return ContainerServlet

    if name in ("UIServlet", "ServletContext"):
        from perch import servlet as _servlet

        return getattr(_servlet, name)

    if name == "ServletConfig":
        from perch.config import ServletConfig

        return ServletConfig

    if name in (
        "ApplicationContext",
        "ContainerViewProvider",
        "publish_application_context",
        "resolve_application_context",
    ):
        from perch import di as _di

        return getattr(_di, name)

    if name == "DefaultViewProvider":
        from perch.ui import DefaultViewProvider

        return DefaultViewProvider

    if name == "ForwardingController":
        from perch.forwarding import ForwardingController

        return ForwardingController

    if name == "normalize_paths":
        from perch.paths import normalize_paths

        return normalize_paths

    if name in (
        "ConfigurationError",
        "HTTPError",
        "NotFound",
        "PerchError",
        "ServiceInitializationError",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
