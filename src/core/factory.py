"""Wiring for a production CallProtocolDriver."""

from __future__ import annotations

from src.config import Settings, get_settings
from src.core.classifier import OutcomeClassifier
from src.core.dialogue import DialogueGenerator
from src.core.events import EventBus
from src.core.protocol_driver import CallProtocolDriver, PersistFailureHook
from src.core.records import CallRecordStore
from src.core.session_store import SessionStore
from src.services.llm.groq import GroqChatService
from src.services.llm.openai_completion import OpenAICompletionService
from src.services.llm.protocol import ChatCompletionProvider, TextCompletionProvider
from src.services.tts.cache import AudioCache
from src.services.tts.elevenlabs import ElevenLabsTTSService
from src.services.tts.protocol import SpeechSynthesizer


def build_call_driver(
    settings: Settings | None = None,
    *,
    record_store: CallRecordStore | None = None,
    chat_provider: ChatCompletionProvider | None = None,
    completion_provider: TextCompletionProvider | None = None,
    synthesizer: SpeechSynthesizer | None = None,
    on_persist_failure: PersistFailureHook | None = None,
) -> CallProtocolDriver:
    """Build a driver from settings; any collaborator may be swapped in."""
    settings = settings or get_settings()

    if record_store is None:
        from src.db.record_store import SQLCallRecordStore

        record_store = SQLCallRecordStore()

    # Only clients built here are owned (and closed) by the driver
    owned: list = []
    chat = chat_provider
    if chat is None:
        chat = GroqChatService(settings)
        owned.append(chat)
    completion = completion_provider
    if completion is None:
        completion = OpenAICompletionService(settings)
        owned.append(completion)
    if synthesizer is None:
        synthesizer = ElevenLabsTTSService(settings)
        owned.append(synthesizer)
    timeout = settings.provider_timeout_seconds

    return CallProtocolDriver(
        store=SessionStore(),
        audio_cache=AudioCache(synthesizer, timeout_seconds=timeout),
        classifier=OutcomeClassifier(
            chat,
            timeout_seconds=timeout,
            min_turns=settings.min_turns_to_conclude,
            min_topics=settings.min_topics_to_conclude,
        ),
        generator=DialogueGenerator(
            chat,
            completion,
            timeout_seconds=timeout,
            agent_name=settings.agent_name,
        ),
        events=EventBus(),
        record_store=record_store,
        max_turns=settings.max_turns,
        min_topics=settings.min_topics_to_conclude,
        record_timeout_seconds=settings.record_timeout_seconds,
        agent_name=settings.agent_name,
        on_persist_failure=on_persist_failure,
        closeables=owned,
    )
