"""Per-session transcript event fan-out.

Delivery is fire-and-forget: only listeners subscribed at publish time see
an event, nothing is buffered for late subscribers, and a failing listener
never affects the call.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from src.logging_config import get_logger

logger: Any = get_logger(__name__)


class EventType(str, Enum):
    STATUS = "status"
    TRANSCRIPT = "transcript"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class TranscriptEvent:
    """A point-in-time notification about one session."""

    type: EventType
    payload: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, **self.payload}


Listener = Callable[[TranscriptEvent], None]


class EventBus:
    """Publish/subscribe broker keyed by session id."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def subscribe(self, session_id: str, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a handle that unsubscribes it."""
        self._listeners.setdefault(session_id, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(session_id)
            if listeners is None:
                return
            try:
                listeners.remove(listener)
            except ValueError:
                return
            if not listeners:
                del self._listeners[session_id]

        return unsubscribe

    def publish(self, session_id: str, event: TranscriptEvent) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners.get(session_id, ())):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Event listener failed for session {session_id}")

    def listener_count(self, session_id: str) -> int:
        return len(self._listeners.get(session_id, ()))

    async def stream(self, session_id: str) -> AsyncIterator[TranscriptEvent]:
        """Yield a session's events in publish order until it completes."""
        queue: asyncio.Queue[TranscriptEvent] = asyncio.Queue()
        unsubscribe = self.subscribe(session_id, queue.put_nowait)
        try:
            while True:
                event = await queue.get()
                yield event
                if event.type == EventType.COMPLETED:
                    return
        finally:
            unsubscribe()

    # Convenience constructors used by the driver

    def status(self, session_id: str, status: str) -> None:
        self.publish(
            session_id,
            TranscriptEvent(
                type=EventType.STATUS,
                payload={"status": status, "conversationId": session_id},
            ),
        )

    def transcript(self, session_id: str, role: str, text: str, timestamp: datetime) -> None:
        self.publish(
            session_id,
            TranscriptEvent(
                type=EventType.TRANSCRIPT,
                payload={"role": role, "text": text, "timestamp": timestamp.isoformat()},
            ),
        )

    def completed(
        self,
        session_id: str,
        *,
        outcome: str,
        result: str,
        transcript: list[dict[str, str]],
        duration: int,
    ) -> None:
        self.publish(
            session_id,
            TranscriptEvent(
                type=EventType.COMPLETED,
                payload={
                    "outcome": outcome,
                    "result": result,
                    "transcript": transcript,
                    "duration": duration,
                },
            ),
        )
