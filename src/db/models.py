"""SQLModel database models.

Adds over the plain schema:
- table=True for SQLModel table generation
- Primary key configuration
- Default values (timestamps, UUIDs)
- Indexes for common queries
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from sqlmodel import Field, SQLModel

# =============================================================================
# Enums (shared across models)
# =============================================================================


class CallStatus(str, Enum):
    """Lifecycle of an outbound verification call."""

    initiated = "initiated"
    demo_mode = "demo_mode"
    in_progress = "in_progress"
    completed = "completed"
    failed = "failed"


class CallOutcome(str, Enum):
    """How a call ended."""

    accepted = "accepted"
    declined = "declined"
    inconclusive = "inconclusive"
    no_response = "no_response"


class OperationPriority(str, Enum):
    """Urgency of the cleanup operation being verified."""

    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


# =============================================================================
# Tables
# =============================================================================


class CallLog(SQLModel, table=True):
    """Record of one outbound verification call."""

    __tablename__ = "call_logs"

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        primary_key=True,
        description="Unique identifier, also used as the live session id",
    )
    operation_name: str = Field(index=True, max_length=200)
    location: str = Field(default="", max_length=200)
    priority: OperationPriority = Field(default=OperationPriority.medium)
    notes: str = Field(default="", max_length=2000)
    target_date: str | None = Field(default=None, max_length=40)
    phone_number_masked: str = Field(
        default="XXXX", description="Destination number, masked for display"
    )
    status: CallStatus = Field(default=CallStatus.initiated, index=True)
    outcome: CallOutcome | None = Field(default=None, index=True)
    transcript: str | None = Field(
        default=None, description="One line per entry: 'OceanGuard: ...' / 'Recipient: ...'"
    )
    result: str | None = Field(default=None, description="'{outcome}: {summary}'")
    duration_seconds: int | None = Field(default=None, ge=0)
    total_turns: int = Field(default=0, ge=0, description="Caller turns taken")
    topics_covered: str | None = Field(
        default=None, description="Comma-separated topics discussed on the call"
    )
    conversation_id: str | None = Field(
        default=None, description="Telephony provider call/request UUID"
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)
    completed_at: datetime | None = Field(default=None)
