"""Error handling for the service pipeline.

Maps HTTPError exceptions and unexpected failures to plain Responses.
"""

import logging
from html import escape

from perch.errors import HTTPError
from perch.http.response import Response
from perch.server.request import ServletRequest

logger = logging.getLogger("perch.server")


def error_body(status: int, detail: str) -> str:
    """Minimal HTML snippet for error responses."""
    return f'<div class="perch-error" data-status="{status}">{escape(detail)}</div>'


def handle_http_error(exc: HTTPError, request: ServletRequest, debug: bool) -> Response:
    """Map an HTTPError to a Response."""
    logger.debug("%d %s %r — %s", exc.status, request.method, request.path_info, exc.detail)
    detail = exc.detail or f"Error {exc.status}"
    if debug and exc.detail:
        detail = f"{exc.status}: {exc.detail}"
    return Response(body=error_body(exc.status, detail), status=exc.status)


def handle_internal_error(exc: Exception, request: ServletRequest, debug: bool) -> Response:
    """Handle unexpected exceptions as 500 errors."""
    logger.exception("500 %s %r", request.method, request.path_info)
    detail = f"{type(exc).__name__}: {exc}" if debug else "Internal Server Error"
    return Response(body=error_body(500, detail), status=500)
