"""Servlet path clearing for forwarded requests.

Forwarding and wrapping controllers hand a request to the servlet with
their own mapping reported as the servlet path and no path info. A UI
servlet resolves views from path info, so those requests would all land
on the root view. With clearing enabled the servlet path is folded into
path info instead::

    >>> normalize_paths("/forwarded", "/sub", enabled=True)
    NormalizedPaths(mount_path='', path_info='/forwarded/sub')

No slash handling is done: the two strings are concatenated as given.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class NormalizedPaths:
    """Effective ``(servlet path, path info)`` split for one request."""

    mount_path: str
    path_info: str | None


def normalize_paths(mount_path: str, path_info: str | None, *, enabled: bool) -> NormalizedPaths:
    """Compute the effective split. Total over any string input."""
    if not enabled:
        return NormalizedPaths(mount_path, path_info)
    return NormalizedPaths("", mount_path + (path_info or ""))
