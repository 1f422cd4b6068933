"""Live state of one verification call."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from src.core.topics import Topic, ordered, uncovered
from src.services.llm.protocol import Message, Role


class Speaker(str, Enum):
    """Who said a transcript line."""

    AGENT = "agent"
    CALLER = "caller"


class Outcome(str, Enum):
    """Terminal classification of a call."""

    ACCEPTED = "accepted"
    DECLINED = "declined"
    INCONCLUSIVE = "inconclusive"


# Labels used in the stored transcript text
TRANSCRIPT_LABELS = {
    Speaker.AGENT: "OceanGuard",
    Speaker.CALLER: "Recipient",
}

# Roles as seen by live transcript subscribers
EVENT_ROLES = {
    Speaker.AGENT: "agent",
    Speaker.CALLER: "user",
}


class SessionFinishedError(Exception):
    """Raised when a terminal session is asked to take another turn."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} has already concluded")
        self.session_id = session_id


@dataclass(frozen=True, slots=True)
class OperationDescriptor:
    """The cleanup operation a call is verifying."""

    name: str
    location: str = ""
    priority: str = "medium"
    notes: str = ""
    target_date: str | None = None


@dataclass(frozen=True, slots=True)
class TranscriptEntry:
    """One externally visible transcript line."""

    speaker: Speaker
    text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, str]:
        return {
            "role": EVENT_ROLES[self.speaker],
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class CallSession:
    """Conversation state for a single call.

    ``dialogue`` is the generator's chat context; ``transcript`` is the
    timestamped record that gets persisted. Once ``outcome`` is set the
    session is terminal and only finalization may touch it.
    """

    session_id: str
    descriptor: OperationDescriptor
    dialogue: list[Message] = field(default_factory=list)
    transcript: list[TranscriptEntry] = field(default_factory=list)
    turn_count: int = 0
    topics_covered: set[Topic] = field(default_factory=set)
    outcome: Outcome | None = None
    greeting_audio_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_terminal(self) -> bool:
        return self.outcome is not None

    @property
    def caller_turns(self) -> int:
        return sum(1 for entry in self.transcript if entry.speaker == Speaker.CALLER)

    def record_agent(self, text: str) -> TranscriptEntry:
        self._ensure_open()
        entry = TranscriptEntry(speaker=Speaker.AGENT, text=text)
        self.transcript.append(entry)
        self.dialogue.append(Message(role=Role.ASSISTANT, content=text))
        return entry

    def record_caller(self, text: str) -> TranscriptEntry:
        self._ensure_open()
        entry = TranscriptEntry(speaker=Speaker.CALLER, text=text)
        self.transcript.append(entry)
        self.dialogue.append(Message(role=Role.USER, content=text))
        return entry

    def add_topics(self, topics: set[Topic] | frozenset[Topic]) -> None:
        self.topics_covered |= topics

    def conclude(self, outcome: Outcome) -> None:
        """Set the terminal outcome. Allowed once."""
        if self.outcome is not None:
            raise SessionFinishedError(self.session_id)
        self.outcome = outcome

    def covered_topics(self) -> list[Topic]:
        return ordered(self.topics_covered)

    def uncovered_topics(self) -> list[Topic]:
        return uncovered(self.topics_covered)

    def transcript_text(self) -> str:
        return "\n".join(
            f"{TRANSCRIPT_LABELS[entry.speaker]}: {entry.text}" for entry in self.transcript
        )

    def duration_seconds(self) -> int:
        """Seconds between the first and last transcript entries."""
        if len(self.transcript) < 2:
            return 0
        delta = self.transcript[-1].timestamp - self.transcript[0].timestamp
        return round(delta.total_seconds())

    def _ensure_open(self) -> None:
        if self.outcome is not None:
            raise SessionFinishedError(self.session_id)
