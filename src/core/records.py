"""Terminal call record handed to the durable store at finalize."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class CallRecord:
    """Everything persisted about a finished call.

    ``outcome`` may be ``no_response`` here even though a live session never
    holds that value: it marks a call that ended before the recipient said
    anything.
    """

    status: str
    transcript: str
    outcome: str
    result: str
    duration_seconds: int
    turn_count: int = 0
    topics_covered: list[str] = field(default_factory=list)
    completed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe form, used when the write is queued for retry."""
        data = asdict(self)
        data["completed_at"] = self.completed_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CallRecord:
        completed_at = data.get("completed_at")
        return cls(
            status=data["status"],
            transcript=data.get("transcript", ""),
            outcome=data["outcome"],
            result=data.get("result", ""),
            duration_seconds=int(data.get("duration_seconds", 0)),
            turn_count=int(data.get("turn_count", 0)),
            topics_covered=list(data.get("topics_covered", [])),
            completed_at=(
                datetime.fromisoformat(completed_at) if completed_at else datetime.now(UTC)
            ),
        )


class CallRecordStore(Protocol):
    """Durable store for terminal call records."""

    async def update_call_record(self, session_id: str, record: CallRecord) -> None:
        """Write the terminal record for a session. Called once per session."""
        ...
