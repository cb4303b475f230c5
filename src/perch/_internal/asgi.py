"""Raw ASGI type aliases.

Perch only needs the callable shapes; scopes stay plain mappings and
are turned into ``Request`` objects at the servlet boundary.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]

# Key under scope["extensions"] a forwarding layer uses to pre-split the path
FORWARD_EXTENSION = "perch.forward"
