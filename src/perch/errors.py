"""Perch exception hierarchy.

Shared across the servlet, the service object, the session bootstrap
and the container boundary so every module raises and catches the
same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when servlet or container configuration is invalid.

    Typically surfaces during activation, before the first request is
    dispatched.
    """


class ServiceInitializationError(PerchError):
    """The service object or a new session could not be set up.

    Raised when the application context cannot be resolved during
    session bootstrap, or when service construction/activation fails.
    Fatal to the request or session being established, never to the
    process. Not retried.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by request decomposition and view resolution. The service
    pipeline catches these and turns them into plain responses.
    """

    status: int
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — the path is outside the servlet mapping or no view matched."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)
