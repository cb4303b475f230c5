"""Async test client for perch servlets.

Sends requests through the ASGI interface directly — no HTTP involved —
and returns the same ``Response`` type the service produces. Keeps a
cookie jar so consecutive requests share a session, like a browser.
"""

from __future__ import annotations

import inspect
from typing import Any

from perch.http.cookies import parse_cookies
from perch.http.response import Response


class TestClient:
    __test__ = False  # Tell pytest this is not a test class
    """Async test client for perch servlets.

    Usage::

        async with TestClient(servlet) as client:
            response = await client.get("/orders")
            assert response.status == 200
    """

    __slots__ = ("app", "cookies", "root_path")

    def __init__(self, app: Any, *, root_path: str = "") -> None:
        self.app = app
        self.root_path = root_path
        self.cookies: dict[str, str] = {}

    async def __aenter__(self) -> TestClient:
        ensure_active = getattr(self.app, "_ensure_active", None)
        if ensure_active is not None:
            ensure_active()
        for hook in getattr(self.app, "_startup_hooks", None) or ():
            result = hook()
            if inspect.isawaitable(result):
                await result
        return self

    async def __aexit__(self, *args: object) -> None:
        for hook in getattr(self.app, "_shutdown_hooks", None) or ():
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        """Send a GET request."""
        return await self.request("GET", path, headers=headers)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> Response:
        """Send an arbitrary request through the ASGI app."""
        path_part, _, query_string = path.partition("?")

        merged = dict(headers or {})
        if self.cookies and not any(name.lower() == "cookie" for name in merged):
            merged["cookie"] = "; ".join(f"{k}={v}" for k, v in self.cookies.items())
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in merged.items()
        ]

        scope: dict[str, Any] = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "path": self.root_path + path_part,
            "raw_path": (self.root_path + path_part).encode("latin-1"),
            "query_string": query_string.encode("latin-1"),
            "root_path": self.root_path,
            "headers": raw_headers,
            "server": ("testserver", 80),
            "client": ("127.0.0.1", 0),
        }

        request_body = body or b""
        body_sent = False

        async def receive() -> dict[str, Any]:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": request_body, "more_body": False}
            return {"type": "http.disconnect"}

        status = 200
        raw_response_headers: list[tuple[bytes, bytes]] = []
        body_parts: list[bytes] = []

        async def send(message: dict[str, Any]) -> None:
            nonlocal status, raw_response_headers
            if message["type"] == "http.response.start":
                status = message["status"]
                raw_response_headers = list(message.get("headers", []))
            elif message["type"] == "http.response.body":
                body_parts.append(message.get("body", b""))

        await self.app(scope, receive, send)

        content_type = "text/html; charset=utf-8"
        extra_headers: list[tuple[str, str]] = []
        for name_b, value_b in raw_response_headers:
            name = name_b.decode("latin-1")
            value = value_b.decode("latin-1")
            if name == "content-type":
                content_type = value
            elif name == "set-cookie":
                extra_headers.append((name, value))
                self._store_cookie(value)
            elif name != "content-length":
                extra_headers.append((name, value))

        return Response(
            body=b"".join(body_parts),
            status=status,
            content_type=content_type,
            headers=tuple(extra_headers),
        )

    def _store_cookie(self, header_value: str) -> None:
        first, _, _ = header_value.partition(";")
        for name, value in parse_cookies(first).items():
            self.cookies[name] = value
