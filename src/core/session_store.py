"""In-memory registry of live call sessions.

Each session has its own asyncio.Lock; the driver holds it for the whole of
a turn so duplicate webhooks for one call are serialized while unrelated
calls run in parallel. The registry map itself is only mutated between
awaits, so it needs no global lock on a single event loop.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from src.core.session import CallSession, OperationDescriptor
from src.logging_config import get_logger
from src.observability.metrics import ACTIVE_SESSIONS

logger: Any = get_logger(__name__)


class SessionNotFoundError(KeyError):
    """Raised for an unknown or already-finalized session id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"


class SessionExistsError(Exception):
    """Raised when creating a session id that is already live."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session already exists: {session_id}")
        self.session_id = session_id


class SessionStore:
    """Owns CallSession objects; callers address them by id."""

    def __init__(self) -> None:
        self._sessions: dict[str, CallSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def create(self, session_id: str, descriptor: OperationDescriptor) -> CallSession:
        if session_id in self._sessions:
            raise SessionExistsError(session_id)
        session = CallSession(session_id=session_id, descriptor=descriptor)
        self._sessions[session_id] = session
        self._locks.setdefault(session_id, asyncio.Lock())
        ACTIVE_SESSIONS.set(len(self._sessions))
        logger.debug(f"Session {session_id} registered ({len(self._sessions)} active)")
        return session

    def get(self, session_id: str) -> CallSession | None:
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> CallSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def delete(self, session_id: str) -> None:
        """Evict a session. Deleting an absent id is a no-op."""
        if self._sessions.pop(session_id, None) is not None:
            ACTIVE_SESSIONS.set(len(self._sessions))
            logger.debug(f"Session {session_id} evicted ({len(self._sessions)} active)")
        # Waiters still holding a reference finish on the old lock and then
        # find the session gone.
        self._locks.pop(session_id, None)

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[asyncio.Lock]:
        """Hold the per-session lock.

        Raises:
            SessionNotFoundError: If the session is not live
        """
        session_lock = self._locks.get(session_id)
        if session_lock is None:
            raise SessionNotFoundError(session_id)
        async with session_lock:
            yield session_lock

    def lock_for(self, session_id: str) -> asyncio.Lock:
        """Lock used to serialize creation of a session id."""
        return self._locks.setdefault(session_id, asyncio.Lock())

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def active_count(self) -> int:
        return len(self._sessions)
