"""The request view handed to the service object.

``ServletRequest`` wraps the raw ``Request`` together with the service
that is handling it. Subclasses recompute the path decomposition by
overriding ``servlet_path`` and ``path_info``; everything downstream
(view resolution, the bootstrap page) reads only these properties.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from perch.http.headers import Headers
from perch.http.request import Request

if TYPE_CHECKING:
    from perch.server.service import UIService


class ServletRequest:
    __slots__ = ("request", "service")

    def __init__(self, request: Request, service: UIService) -> None:
        self.request = request
        self.service = service

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def headers(self) -> Headers:
        return self.request.headers

    @property
    def cookies(self) -> Mapping[str, str]:
        return self.request.cookies

    @property
    def context_path(self) -> str:
        return self.request.context_path

    @property
    def servlet_path(self) -> str:
        return self.request.servlet_path

    @property
    def path_info(self) -> str | None:
        return self.request.path_info

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} {self.method} context={self.context_path!r} "
            f"servlet={self.servlet_path!r} info={self.path_info!r}>"
        )
