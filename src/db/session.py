"""Database session management.

Provides async database connections using SQLModel and aiosqlite.
Uses dependency injection pattern for FastAPI integration.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from src.config import Settings, get_settings

# Engine created lazily on first use
_engine = None


def engine_options(settings: Settings) -> dict:
    """Engine keyword arguments for the configured database.

    SQLite waits on a locked database for at most the call-record write
    budget, so a contended finalize fails within ``record_timeout_seconds``
    and is handed to the retry queue.
    """
    options: dict = {"echo": settings.debug, "future": True}
    if settings.database_url.startswith("sqlite"):
        options["connect_args"] = {"timeout": settings.record_timeout_seconds}
    return options


def get_engine():
    """Get or create the async database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()

        # Ensure data directory exists for SQLite
        if "sqlite" in settings.database_url:
            db_path = settings.database_url.split("///")[-1]
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        _engine = create_async_engine(settings.database_url, **engine_options(settings))
    return _engine


def get_session_factory():
    """Get async session factory."""
    return sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def init_db() -> None:
    """Create all tables.

    Called during application startup. In production, run Alembic instead.
    """
    from src.db import models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def close_db() -> None:
    """Close database connections on shutdown."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session.

    Usage in FastAPI:
        @router.get("/calls/{call_id}")
        async def get_call(session: AsyncSession = Depends(get_session)):
            ...
    """
    async_session = get_session_factory()
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for getting async database session.

    Usage in background jobs and the record store:
        async with get_session_context() as session:
            ...
    """
    async_session = get_session_factory()
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
