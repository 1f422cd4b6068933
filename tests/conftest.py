"""Shared pytest fixtures for tidecall tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Callable, Generator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from src.config import Settings
from src.core.factory import build_call_driver
from src.core.protocol_driver import CallProtocolDriver
from src.core.records import CallRecord
from src.services.llm.exceptions import LLMConnectionError
from src.services.llm.protocol import Message
from src.services.tts.exceptions import TTSConnectionError

# Classifier requests are the only ones this small
CLASSIFIER_MAX_TOKENS = 5

DEFAULT_REPLY = "Thanks. Is there parking near the beach entrance?"


def build_settings(**overrides) -> Settings:
    """Create a Settings object with safe test defaults."""
    base = {
        "groq_api_key": "test-groq-key",
        "openai_api_key": "test-openai-key",
        "elevenlabs_api_key": "test-elevenlabs-key",
        "plivo_auth_id": "test-plivo-id",
        "plivo_auth_token": "test-plivo-token",
        "public_base_url": "https://calls.example.test",
        "database_url": "sqlite+aiosqlite:///:memory:",
        "redis_url": "redis://localhost:6379",
    }
    base.update(overrides)
    return Settings(**base)


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Return a factory to build Settings with overrides."""
    return build_settings


@pytest.fixture
def settings(settings_factory: Callable[..., Settings]) -> Settings:
    """Default Settings fixture (telephony not configured: no from number)."""
    return settings_factory()


# =============================================================================
# Provider Fakes
# =============================================================================


class FakeChatProvider:
    """Chat provider answering classifier and generator requests separately.

    Classifier requests pop from ``verdicts`` (default CONTINUE); generator
    requests pop from ``replies``. Setting ``error`` makes every call raise.
    """

    def __init__(
        self,
        *,
        replies: list[str] | None = None,
        verdicts: list[str] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.replies = list(replies or [])
        self.verdicts = list(verdicts or [])
        self.error = error
        self.delay = delay
        self.calls: list[list[Message]] = []
        self.classifier_calls = 0

    async def complete(
        self,
        messages: list[Message],
        *,
        max_tokens: int = 150,
        temperature: float = 0.7,
    ) -> str:
        self.calls.append(list(messages))
        is_classifier = max_tokens <= CLASSIFIER_MAX_TOKENS
        if is_classifier:
            self.classifier_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if is_classifier:
            return self.verdicts.pop(0) if self.verdicts else "CONTINUE"
        return self.replies.pop(0) if self.replies else DEFAULT_REPLY


class FakeCompletionProvider:
    """Text-completion provider returning a fixed continuation."""

    def __init__(self, text: str = "Which days would suit the crew?", error=None) -> None:
        self.text = text
        self.error = error
        self.prompts: list[str] = []

    async def complete(self, prompt: str, *, max_tokens: int = 150, temperature: float = 0.7):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text


class FakeSynthesizer:
    """Speech synthesizer returning fixed MP3 bytes, or failing."""

    def __init__(self, audio: bytes = b"ID3-fake-mp3", error=None, delay: float = 0.0) -> None:
        self.audio = audio
        self.error = error
        self.delay = delay
        self.texts: list[str] = []

    async def synthesize(self, text: str) -> bytes:
        self.texts.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.audio


class InMemoryRecordStore:
    """Call record store that keeps records in a dict."""

    def __init__(self, error: Exception | None = None, delay: float = 0.0) -> None:
        self.records: dict[str, CallRecord] = {}
        self.writes: list[str] = []
        self.error = error
        self.delay = delay

    async def update_call_record(self, session_id: str, record: CallRecord) -> None:
        self.writes.append(session_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.records[session_id] = record


@pytest.fixture
def chat_factory() -> type[FakeChatProvider]:
    return FakeChatProvider


@pytest.fixture
def completion_factory() -> type[FakeCompletionProvider]:
    return FakeCompletionProvider


@pytest.fixture
def synthesizer_factory() -> type[FakeSynthesizer]:
    return FakeSynthesizer


@pytest.fixture
def record_store_factory() -> type[InMemoryRecordStore]:
    return InMemoryRecordStore


@pytest.fixture
def failing_chat() -> FakeChatProvider:
    return FakeChatProvider(error=LLMConnectionError("Failed to connect to Groq API"))


@pytest.fixture
def failing_completion() -> FakeCompletionProvider:
    return FakeCompletionProvider(error=LLMConnectionError("Failed to connect to OpenAI API"))


@pytest.fixture
def failing_synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer(error=TTSConnectionError("ElevenLabs connection failed"))


@pytest.fixture
def chat_provider() -> FakeChatProvider:
    return FakeChatProvider()


@pytest.fixture
def completion_provider() -> FakeCompletionProvider:
    return FakeCompletionProvider()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def driver_factory(
    settings: Settings,
    chat_provider: FakeChatProvider,
    completion_provider: FakeCompletionProvider,
    synthesizer: FakeSynthesizer,
    record_store: InMemoryRecordStore,
) -> Callable[..., CallProtocolDriver]:
    """Build a driver wired to the fakes; keyword overrides replace any of them."""

    def factory(**overrides) -> CallProtocolDriver:
        options = {
            "record_store": record_store,
            "chat_provider": chat_provider,
            "completion_provider": completion_provider,
            "synthesizer": synthesizer,
        }
        driver_settings = overrides.pop("settings", settings)
        options.update(overrides)
        return build_call_driver(driver_settings, **options)

    return factory


@pytest.fixture
def driver(driver_factory: Callable[..., CallProtocolDriver]) -> CallProtocolDriver:
    """Driver with healthy fake providers."""
    return driver_factory()


# =============================================================================
# Database Fixtures
# =============================================================================


def _memory_engine():
    """In-memory SQLite shared by every session on one connection."""
    from src.db import models  # noqa: F401

    return create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
        poolclass=StaticPool,
    )


def _session_factory(engine):
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def async_engine():
    """Create an in-memory async SQLite engine for testing."""
    engine = _memory_engine()

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create an async database session for testing."""
    async with _session_factory(async_engine)() as session:
        yield session


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================


@pytest.fixture
def test_client(settings, driver, monkeypatch) -> Generator:
    """FastAPI TestClient with the fake driver and an in-memory database.

    The engine is created lazily inside the app's event loop and disposed
    there on shutdown.
    """
    from fastapi.testclient import TestClient

    import src.main
    from src.config import get_settings
    from src.db.session import get_session
    from src.main import create_app

    engine = _memory_engine()
    session_factory = _session_factory(engine)

    async def mock_init_db():
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def mock_close_db():
        await engine.dispose()

    monkeypatch.setattr(src.main, "init_db", mock_init_db)
    monkeypatch.setattr(src.main, "close_db", mock_close_db)

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app(settings, driver=driver)
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_settings] = lambda: settings

    with TestClient(app) as client:
        yield client
