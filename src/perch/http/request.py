"""Immutable HTTP request with a servlet-style path decomposition.

A request path is split the way servlet containers split it::

    full path = context_path + servlet_path + path_info

``context_path`` is the ASGI ``root_path`` (where the whole deployment is
mounted), ``servlet_path`` is the servlet's mapping and ``path_info`` is
whatever follows it, or ``None`` when nothing does.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from perch._internal.asgi import FORWARD_EXTENSION, Scope
from perch.errors import NotFound
from perch.http.cookies import parse_cookies
from perch.http.headers import Headers


def mapping_prefix(mapping: str) -> str:
    """Normalize a servlet mapping to a path prefix.

    ``""``, ``"/"`` and ``"/*"`` mean the root mapping (empty prefix);
    ``"/app"``, ``"/app/"`` and ``"/app/*"`` all mean ``"/app"``.
    """
    if mapping.endswith("/*"):
        mapping = mapping[:-2]
    return mapping.rstrip("/")


def strip_context_path(path: str, context_path: str) -> str:
    """Remove the deployment prefix from *path*.

    Servers differ on whether ``path`` already includes ``root_path``, so a
    path that does not start with it is returned unchanged. The prefix must
    end on a segment boundary: ``"/ctx"`` is stripped from ``"/ctx/a"`` but
    not from ``"/ctxfoo"``.
    """
    if not context_path:
        return path
    if path == context_path:
        return ""
    if path.startswith(context_path + "/"):
        return path[len(context_path) :]
    return path


def decompose(path: str, mapping: str) -> tuple[str, str | None]:
    """Split an in-app *path* into ``(servlet_path, path_info)``.

    Raises ``NotFound`` when *path* lies outside the mapping.
    """
    prefix = mapping_prefix(mapping)
    if not prefix:
        return "", path or None
    if path == prefix:
        return prefix, None
    if path.startswith(prefix + "/"):
        return prefix, path[len(prefix) :]
    msg = f"{path!r} is outside the servlet mapping {prefix!r}"
    raise NotFound(msg)


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request as seen by a servlet.

    ``servlet_path`` and ``path_info`` are the *raw* decomposition: either
    computed from the servlet mapping, or handed over by a forwarding
    layer through the ``perch.forward`` scope extension.
    """

    method: str
    path: str
    context_path: str
    servlet_path: str
    path_info: str | None
    headers: Headers
    query_string: bytes
    cookies: Mapping[str, str]
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None
    forwarded: bool = False  # split handed over by a forwarding layer

    @classmethod
    def from_asgi(cls, scope: Scope, *, mapping: str = "") -> Request:
        """Create a Request from an ASGI HTTP scope."""
        context_path = scope.get("root_path", "")
        path = strip_context_path(scope["path"], context_path)

        forward: dict[str, Any] | None = scope.get("extensions", {}).get(FORWARD_EXTENSION)
        if forward is not None:
            servlet_path, path_info = forward["servlet_path"], forward.get("path_info")
        else:
            servlet_path, path_info = decompose(path, mapping)

        headers = Headers(tuple(scope.get("headers", ())))
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=path,
            context_path=context_path,
            servlet_path=servlet_path,
            path_info=path_info,
            headers=headers,
            query_string=scope.get("query_string", b""),
            cookies=parse_cookies(headers.get("cookie", "")),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            forwarded=forward is not None,
        )
