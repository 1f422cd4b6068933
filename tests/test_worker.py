"""Tests for arq worker tasks."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta

import pytest
from arq import Retry
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.records import CallRecord
from src.db.models import CallLog, CallStatus
from src.worker import (
    PERSIST_MAX_TRIES,
    PersistRetryQueue,
    WorkerSettings,
    expire_stale_calls,
    persist_call_record,
)

RECORD = CallRecord(
    status="completed",
    transcript="OceanGuard: Hello!",
    outcome="no_response",
    result="no_response: No meaningful response received - recommend retry or manual contact.",
    duration_seconds=0,
)


class TestPersistCallRecord:
    """Retried record writes."""

    @pytest.mark.asyncio
    async def test_writes_record(self, record_store) -> None:
        ctx = {"record_store": record_store, "job_try": 1}

        await persist_call_record(ctx, "call-1", RECORD.to_dict())

        assert record_store.records["call-1"] == RECORD

    @pytest.mark.asyncio
    async def test_failure_asks_for_retry(self, record_store_factory) -> None:
        store = record_store_factory(error=RuntimeError("locked"))
        ctx = {"record_store": store, "job_try": 2}

        with pytest.raises(Retry):
            await persist_call_record(ctx, "call-1", RECORD.to_dict())

    @pytest.mark.asyncio
    async def test_gives_up_after_max_tries(self, record_store_factory) -> None:
        store = record_store_factory(error=RuntimeError("locked"))
        ctx = {"record_store": store, "job_try": PERSIST_MAX_TRIES}

        await persist_call_record(ctx, "call-1", RECORD.to_dict())

        assert store.writes == ["call-1"]


class TestPersistRetryQueue:
    """Queueing from the driver's failure hook."""

    @pytest.fixture
    def pools(self, monkeypatch) -> list:
        created: list = []

        class FakePool:
            def __init__(self) -> None:
                self.jobs: list[tuple] = []
                self.closed = False

            async def enqueue_job(self, name, *args):
                self.jobs.append((name, *args))

            async def close(self):
                self.closed = True

        async def fake_create_pool(settings):
            pool = FakePool()
            created.append(pool)
            return pool

        monkeypatch.setattr("src.worker.create_pool", fake_create_pool)
        return created

    @pytest.mark.asyncio
    async def test_enqueues_job(self, pools, settings) -> None:
        queue = PersistRetryQueue(settings.redis_settings)

        await queue("call-1", RECORD)

        assert pools[0].jobs == [("persist_call_record", "call-1", RECORD.to_dict())]

    @pytest.mark.asyncio
    async def test_reuses_one_pool(self, pools, settings) -> None:
        queue = PersistRetryQueue(settings.redis_settings)

        await queue("call-1", RECORD)
        await queue("call-2", RECORD)

        assert len(pools) == 1
        assert [job[1] for job in pools[0].jobs] == ["call-1", "call-2"]
        assert not pools[0].closed

    @pytest.mark.asyncio
    async def test_close(self, pools, settings) -> None:
        queue = PersistRetryQueue(settings.redis_settings)
        await queue("call-1", RECORD)

        await queue.close()
        await queue.close()

        assert pools[0].closed


class TestExpireStaleCalls:
    """Periodic sweep of calls that never finalized."""

    @pytest.mark.asyncio
    async def test_marks_old_open_calls_failed(self, async_engine, monkeypatch) -> None:
        @asynccontextmanager
        async def context():
            async with AsyncSession(async_engine, expire_on_commit=False) as session:
                yield session
                await session.commit()

        monkeypatch.setattr("src.db.session.get_session_context", context)

        old = datetime.now(UTC) - timedelta(hours=3)
        async with context() as session:
            session.add(
                CallLog(
                    id="stale",
                    operation_name="A",
                    status=CallStatus.in_progress,
                    created_at=old,
                )
            )
            session.add(CallLog(id="fresh", operation_name="B", status=CallStatus.initiated))
            session.add(
                CallLog(id="done", operation_name="C", status=CallStatus.completed, created_at=old)
            )

        await expire_stale_calls({})

        async with context() as session:
            statuses = {
                call_id: (await session.get(CallLog, call_id)).status
                for call_id in ("stale", "fresh", "done")
            }

        assert statuses == {
            "stale": CallStatus.failed,
            "fresh": CallStatus.initiated,
            "done": CallStatus.completed,
        }


def test_worker_settings() -> None:
    assert persist_call_record in WorkerSettings.functions
    assert WorkerSettings.max_tries == PERSIST_MAX_TRIES
    assert len(WorkerSettings.cron_jobs) == 1
