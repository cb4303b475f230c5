"""UI sessions and the session-init event.

A ``UISession`` is owned by the service object. It carries the ordered
list of view providers used to resolve views for that client, plus a
free-form attribute dict. The session lock is the single-writer
primitive for the session: anything that reconciles the provider list
must hold it so readers never see a half-updated list.

Thread safety:
    ``get_view_providers()`` returns a tuple snapshot, so callers can
    iterate it while the live list is mutated. ``SessionStore`` guards
    its dict with a plain Lock.
"""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass, field
from time import time
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from perch.server.request import ServletRequest
    from perch.server.service import UIService
    from perch.ui import ViewProvider


class UISession:
    """Per-client state: view providers and attributes."""

    __slots__ = ("_providers", "attributes", "created_at", "id", "last_accessed", "lock")

    def __init__(self, session_id: str | None = None) -> None:
        self.id: str = session_id or secrets.token_urlsafe(24)
        self.created_at: float = time()
        self.last_accessed: float = self.created_at
        self.attributes: dict[str, Any] = {}
        self.lock: threading.RLock = threading.RLock()
        self._providers: list[ViewProvider] = []

    def get_view_providers(self) -> tuple[ViewProvider, ...]:
        """Snapshot of the providers, in insertion order."""
        with self.lock:
            return tuple(self._providers)

    def add_view_provider(self, provider: ViewProvider) -> None:
        """Append *provider* unless this exact instance is already present."""
        with self.lock:
            if not any(p is provider for p in self._providers):
                self._providers.append(provider)

    def remove_view_provider(self, provider: ViewProvider) -> None:
        """Remove *provider* by identity. No-op if absent."""
        with self.lock:
            self._providers[:] = [p for p in self._providers if p is not provider]

    def touch(self) -> None:
        self.last_accessed = time()

    def expired(self, max_age: float) -> bool:
        return time() - self.last_accessed > max_age

    def __repr__(self) -> str:
        return f"<UISession {self.id[:8]}… providers={len(self._providers)}>"


@dataclass(frozen=True, slots=True)
class SessionInitEvent:
    """Fired once for every newly created session."""

    service: UIService
    session: UISession
    request: ServletRequest


class SessionInitListener(Protocol):
    """Receives ``SessionInitEvent``. Raising aborts session creation."""

    def session_init(self, event: SessionInitEvent) -> None: ...


@dataclass(slots=True)
class SessionStore:
    """In-memory ``id -> UISession`` map."""

    _sessions: dict[str, UISession] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def get(self, session_id: str) -> UISession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def add(self, session: UISession) -> None:
        with self._lock:
            self._sessions[session.id] = session

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def purge_expired(self, max_age: float) -> int:
        """Drop every session idle for longer than *max_age*; return the count."""
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.expired(max_age)]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
