"""Database-backed store for terminal call records."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.records import CallRecord
from src.db.models import CallStatus
from src.db.repositories.calls import AsyncCallLogRepository, parse_outcome
from src.db.session import get_session_context
from src.logging_config import get_logger

logger: Any = get_logger(__name__)

SessionContext = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class SQLCallRecordStore:
    """Writes the finalized call onto its ``call_logs`` row.

    The session id is the call log id, so the row created when the call was
    placed is the one updated here.
    """

    def __init__(self, session_context: SessionContext = get_session_context) -> None:
        self._session_context = session_context

    async def update_call_record(self, session_id: str, record: CallRecord) -> None:
        async with self._session_context() as session:
            repo = AsyncCallLogRepository(session)
            await repo.upsert_call_log(
                session_id,
                status=CallStatus(record.status),
                transcript=record.transcript or None,
                outcome=parse_outcome(record.outcome),
                result=record.result,
                duration_seconds=record.duration_seconds,
                total_turns=record.turn_count,
                topics_covered=",".join(record.topics_covered) or None,
                completed_at=record.completed_at,
            )
        logger.debug(f"Call record stored for {session_id}")
