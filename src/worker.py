"""Background tasks for tidecall (arq worker).

Run with: arq src.worker.WorkerSettings
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

from arq import ArqRedis, Retry, create_pool, cron
from arq.connections import RedisSettings
from sqlalchemy import update

from src.config import get_settings
from src.core.records import CallRecord
from src.db.models import CallLog, CallStatus
from src.db.record_store import SQLCallRecordStore
from src.logging_config import get_logger

logger: Any = get_logger(__name__)

PERSIST_MAX_TRIES = 5
PERSIST_RETRY_DELAY_SECONDS = 30
STALE_CALL_HOURS = 2


async def persist_call_record(ctx, session_id: str, record: dict[str, Any]) -> None:
    """Retry a call-record write that failed when the call was finalized."""
    store: SQLCallRecordStore = ctx.get("record_store") or SQLCallRecordStore()
    try:
        await store.update_call_record(session_id, CallRecord.from_dict(record))
    except Exception as e:
        attempt = ctx.get("job_try", 1)
        if attempt >= PERSIST_MAX_TRIES:
            logger.error(f"Giving up on call record for {session_id} after {attempt} tries: {e}")
            return
        logger.warning(f"Call record retry {attempt} for {session_id} failed: {e}")
        raise Retry(defer=PERSIST_RETRY_DELAY_SECONDS * attempt) from e

    logger.info(f"Call record for {session_id} persisted on retry")


async def expire_stale_calls(ctx) -> None:
    """Mark calls that never finalized (process restart, lost webhook) as failed."""
    from src.db.session import get_session_context

    cutoff = datetime.now(UTC) - timedelta(hours=STALE_CALL_HOURS)

    async with get_session_context() as session:
        result = await session.execute(
            update(CallLog)
            .where(
                CallLog.status.in_([CallStatus.initiated, CallStatus.in_progress]),  # type: ignore[union-attr]
                CallLog.created_at < cutoff,  # type: ignore[arg-type]
            )
            .values(status=CallStatus.failed, completed_at=datetime.now(UTC))
        )

    logger.info(f"Stale call sweep marked {result.rowcount or 0} calls failed")


class PersistRetryQueue:
    """Driver failure hook that queues record retries over one shared arq pool.

    The pool is opened on first use and kept until ``close()``; the app
    lifespan owns the instance.
    """

    def __init__(self, redis_settings: RedisSettings | None = None) -> None:
        self._redis_settings = redis_settings
        self._pool: ArqRedis | None = None
        self._lock = asyncio.Lock()

    async def _get_pool(self) -> ArqRedis:
        async with self._lock:
            if self._pool is None:
                self._pool = await create_pool(
                    self._redis_settings or get_settings().redis_settings
                )
            return self._pool

    async def __call__(self, session_id: str, record: CallRecord) -> None:
        """Queue a retried write. Raises whatever the queue raises."""
        pool = await self._get_pool()
        await pool.enqueue_job("persist_call_record", session_id, record.to_dict())
        logger.info(f"Queued call record retry for {session_id}")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None


async def startup(ctx) -> None:
    from src.logging_config import setup_logging

    settings = get_settings()
    setup_logging(level=settings.log_level, enable_file=settings.is_production)
    ctx["record_store"] = SQLCallRecordStore()


async def shutdown(ctx) -> None:
    from src.db.session import close_db

    await close_db()


class WorkerSettings:
    functions = [persist_call_record]
    cron_jobs = [
        cron(expire_stale_calls, minute={0, 30}),
    ]
    on_startup = startup
    on_shutdown = shutdown
    max_tries = PERSIST_MAX_TRIES
    redis_settings = get_settings().redis_settings
