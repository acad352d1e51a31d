"""
Server-side session store keyed by an opaque session id (the cookie value).
Holds the pending OAuth state and the access token; the browser never sees either.
The app depends only on get/set/destroy, so an in-memory store can be swapped
for a shared one (e.g. Redis) without touching the flow code.
"""
import secrets
import threading
import time
from dataclasses import dataclass, replace
from typing import Protocol

from armory_web.config import SESSION_PURGE_INTERVAL, SESSION_TTL


@dataclass
class SessionData:
    oauth_state: str | None = None
    access_token: str | None = None
    created_at: float = 0.0
    last_seen: float = 0.0

    def expired(self, ttl: int = SESSION_TTL) -> bool:
        return (time.monotonic() - self.last_seen) > ttl


class SessionStore(Protocol):
    def get(self, session_id: str) -> SessionData | None: ...

    def set(self, session_id: str, data: SessionData) -> None: ...

    def destroy(self, session_id: str) -> None: ...


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def new_session() -> SessionData:
    now = time.monotonic()
    return SessionData(created_at=now, last_seen=now)


class InMemorySessionStore:
    """
    Process-local store. get() returns a copy, so changes only take effect through set().
    Idle sessions (no set() within ttl seconds) are treated as absent, and set()
    sweeps them out at most once per purge_interval seconds.
    """

    def __init__(self, ttl: int = SESSION_TTL, purge_interval: float = SESSION_PURGE_INTERVAL):
        self.ttl = ttl
        self.purge_interval = purge_interval
        self._sessions: dict[str, SessionData] = {}
        self._lock = threading.Lock()
        self._last_purge = time.monotonic()

    def get(self, session_id: str) -> SessionData | None:
        with self._lock:
            data = self._sessions.get(session_id)
            if data is None:
                return None
            if data.expired(self.ttl):
                del self._sessions[session_id]
                return None
            return replace(data)

    def set(self, session_id: str, data: SessionData) -> None:
        now = time.monotonic()
        if now - self._last_purge >= self.purge_interval:
            self.purge_expired()
        with self._lock:
            self._sessions[session_id] = replace(data, last_seen=now)

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def purge_expired(self) -> int:
        """Drop idle sessions; returns how many were removed."""
        with self._lock:
            self._last_purge = time.monotonic()
            expired = [sid for sid, data in self._sessions.items() if data.expired(self.ttl)]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
