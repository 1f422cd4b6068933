"""Dialogue generator: the agent's next question."""

from __future__ import annotations

import re
from typing import Any

from src.core.session import CallSession
from src.logging_config import get_logger
from src.prompts.verification import FALLBACK_FOLLOW_UP, build_system_prompt
from src.services.llm.fallback import (
    ChatStrategy,
    FallbackChain,
    StaticStrategy,
    TextCompletionStrategy,
)
from src.services.llm.protocol import (
    ChatCompletionProvider,
    CompletionRequest,
    Message,
    Role,
    TextCompletionProvider,
)

logger: Any = get_logger(__name__)

VOICE_MAX_SENTENCES = 2
VOICE_MAX_CHARS = 320
SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
ROLE_PREFIX_RE = re.compile(r"^\s*(agent|assistant|oceanguard|ai|bot|caller)\s*:\s*", re.IGNORECASE)
QUOTES = "\"'“”‘’"


def strip_role_labels(text: str) -> str:
    """Remove any leading speaker labels (possibly repeated) and wrapping quotes."""
    cleaned = text.strip()
    while True:
        stripped = ROLE_PREFIX_RE.sub("", cleaned, count=1)
        if stripped == cleaned:
            break
        cleaned = stripped.strip()
    return cleaned.strip(QUOTES).strip()


def normalize_response_text(text: str) -> str:
    """Clean a model reply so it sounds natural when spoken."""
    cleaned = " ".join(strip_role_labels(text).split())
    if not cleaned:
        return ""

    sentences = [s.strip() for s in SENTENCE_SPLIT_RE.split(cleaned) if s.strip()]

    # Drop consecutive duplicates that can sound robotic in TTS.
    deduped: list[str] = []
    for sentence in sentences:
        if deduped and deduped[-1].lower() == sentence.lower():
            continue
        deduped.append(sentence)

    if len(deduped) > VOICE_MAX_SENTENCES:
        deduped = deduped[:VOICE_MAX_SENTENCES]

    normalized = " ".join(deduped) if deduped else cleaned
    if len(normalized) > VOICE_MAX_CHARS:
        normalized = normalized[:VOICE_MAX_CHARS].rstrip(" ,")

    if normalized and normalized[-1] not in ".!?":
        normalized += "?"

    return normalized


class DialogueGenerator:
    """Produce the next agent line: chat model, then completion model, then a fixed line."""

    def __init__(
        self,
        chat_provider: ChatCompletionProvider,
        completion_provider: TextCompletionProvider,
        *,
        timeout_seconds: float,
        agent_name: str = "OceanGuard",
        fallback_line: str = FALLBACK_FOLLOW_UP,
    ) -> None:
        self._agent_name = agent_name
        self._chain = FallbackChain(
            [
                ChatStrategy(chat_provider),
                TextCompletionStrategy(completion_provider),
                StaticStrategy(fallback_line),
            ],
            timeout_seconds=timeout_seconds,
            postprocess=normalize_response_text,
        )

    async def next_utterance(self, session: CallSession) -> str:
        """Return the agent's next line. Never raises for provider failures."""
        uncovered = [topic.value for topic in session.uncovered_topics()]
        system = Message(
            role=Role.SYSTEM,
            content=build_system_prompt(session.descriptor, uncovered, self._agent_name),
        )
        request = CompletionRequest(
            messages=(system, *session.dialogue),
            max_tokens=120,
            temperature=0.7,
        )
        result = await self._chain.run(request)
        logger.debug(f"Session {session.session_id} next line via {result.strategy}")
        return result.text
