"""Forwarding controller.

Models the MVC-style controllers that hand a request over to a servlet
living outside the dispatcher (servlet forwarding/wrapping controllers).
They do not preserve the servlet decomposition: the whole lookup path is
reported as the servlet path and path info is always ``None``. A
``ContainerServlet`` with ``clear_servlet_path`` enabled undoes that.

Usage::

    ui = ContainerServlet(config)
    ui.clear_servlet_path = True
    app = ForwardingController(ui, mapping="/shop")
"""

from perch._internal.asgi import FORWARD_EXTENSION, Receive, Scope, Send
from perch.http.request import mapping_prefix, strip_context_path
from perch.http.response import Response
from perch.server.errors import error_body
from perch.server.sender import send_response


class ForwardingController:
    """ASGI app forwarding requests under *mapping* to *target*."""

    __slots__ = ("mapping", "target")

    def __init__(self, target: object, *, mapping: str = "") -> None:
        self.target = target
        self.mapping = mapping_prefix(mapping)

    def handles(self, path: str) -> bool:
        return (
            not self.mapping
            or path == self.mapping
            or path.startswith(self.mapping + "/")
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.target(scope, receive, send)  # type: ignore[operator]
            return

        path = strip_context_path(scope["path"], scope.get("root_path", ""))

        if not self.handles(path):
            await send_response(Response(body=error_body(404, "Not Found"), status=404), send)
            return

        extensions = dict(scope.get("extensions") or {})
        extensions[FORWARD_EXTENSION] = {"servlet_path": path, "path_info": None}
        await self.target({**scope, "extensions": extensions}, receive, send)  # type: ignore[operator]
