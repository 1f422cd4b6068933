"""Call log repository."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import CallLog, CallOutcome, CallStatus


class AsyncCallLogRepository:
    """Async repository for the API, the record store and workers."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, call_id: str) -> CallLog | None:
        return await self.session.get(CallLog, call_id)

    async def create(self, call_log: CallLog) -> CallLog:
        self.session.add(call_log)
        await self.session.flush()
        return call_log

    async def list_recent(
        self,
        *,
        status: CallStatus | None = None,
        outcome: CallOutcome | None = None,
        limit: int = 50,
    ) -> list[CallLog]:
        query = select(CallLog)
        if status:
            query = query.where(CallLog.status == status)  # type: ignore[arg-type]
        if outcome:
            query = query.where(CallLog.outcome == outcome)  # type: ignore[arg-type]
        query = query.order_by(desc(CallLog.created_at)).limit(limit)  # type: ignore[arg-type]
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def upsert_call_log(self, call_id: str, **fields) -> CallLog:
        """Update a call log, creating a placeholder row if it does not exist."""
        call_log = await self.get_by_id(call_id)
        if not call_log:
            call_log = CallLog(
                id=call_id,
                operation_name=fields.pop("operation_name", "unknown operation"),
            )
        for key, value in fields.items():
            setattr(call_log, key, value)
        self.session.add(call_log)
        return call_log

    async def mark_status(
        self,
        call_id: str,
        status: CallStatus,
        *,
        conversation_id: str | None = None,
    ) -> CallLog | None:
        call_log = await self.get_by_id(call_id)
        if not call_log:
            return None
        call_log.status = status
        if conversation_id:
            call_log.conversation_id = conversation_id
        if status in (CallStatus.completed, CallStatus.failed):
            call_log.completed_at = datetime.now(UTC)
        self.session.add(call_log)
        return call_log


def parse_outcome(value: str | None) -> CallOutcome | None:
    if not value:
        return None
    try:
        return CallOutcome(value)
    except ValueError:
        return None
