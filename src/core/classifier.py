"""Outcome classifier: decides whether a call can end, and how.

Topic coverage is updated on every utterance. Until the call has enough
turns and enough covered topics the answer is always CONTINUE. Past that
gate the language model decides, with a keyword scan of the latest
utterance as the terminal fallback tier.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.core.session import CallSession
from src.core.topics import Topic, detect_topics
from src.logging_config import get_logger, truncate_for_log
from src.prompts.verification import CLASSIFIER_LABELS, build_classifier_prompt
from src.services.llm.fallback import ChatStrategy, FallbackChain
from src.services.llm.protocol import (
    ChatCompletionProvider,
    CompletionRequest,
    Message,
    Role,
)

logger: Any = get_logger(__name__)


class Verdict(str, Enum):
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CONTINUE = "continue"


@dataclass(frozen=True, slots=True)
class Classification:
    """Classifier answer plus the updated topic set."""

    verdict: Verdict
    topics_covered: frozenset[Topic]
    source: str = "gate"


# Checked before positives so "not available" never reads as "available"
STRONG_NEGATIVE = (
    "not available",
    "unavailable",
    "can't",
    "cannot",
    "closed",
    "denied",
    "not possible",
    "impossible",
    "reject",
    "decline",
    "not allowed",
    "prohibited",
    "not ready",
    "negative",
)
# "not sure" must not read as "sure"
HEDGES = (
    "not sure",
    "unsure",
    "not yet confirmed",
)
STRONG_POSITIVE = (
    "yes",
    "sure",
    "absolutely",
    "good to go",
    "go ahead",
    "sounds good",
    "that works",
    "we can do",
    "confirm",
    "confirmed",
    "approved",
    "of course",
    "available",
    "ready",
)

_NEGATIVE_RE = re.compile(
    r"\b(" + "|".join(re.escape(p) for p in STRONG_NEGATIVE) + r")\b", re.IGNORECASE
)
_HEDGE_RE = re.compile(r"\b(" + "|".join(re.escape(p) for p in HEDGES) + r")\b", re.IGNORECASE)
_POSITIVE_RE = re.compile(
    r"\b(" + "|".join(re.escape(p) for p in STRONG_POSITIVE) + r")\b", re.IGNORECASE
)
_LABEL_RE = re.compile(r"\b(" + "|".join(CLASSIFIER_LABELS) + r")\b")


def keyword_verdict(utterance: str) -> Verdict:
    """Deterministic scan of one utterance; negatives win over positives."""
    if _NEGATIVE_RE.search(utterance):
        return Verdict.DECLINED
    if _HEDGE_RE.search(utterance):
        return Verdict.CONTINUE
    if _POSITIVE_RE.search(utterance):
        return Verdict.ACCEPTED
    return Verdict.CONTINUE


def parse_verdict(text: str) -> Verdict:
    """Read the first classifier label in a model reply; anything else is CONTINUE."""
    match = _LABEL_RE.search(text.upper())
    if match is None:
        return Verdict.CONTINUE
    return Verdict(match.group(1).lower())


class KeywordVerdictStrategy:
    """Terminal classifier tier. Answers in the same label vocabulary as the model."""

    name = "keywords"

    def __init__(self, utterance: str) -> None:
        self._utterance = utterance

    async def complete(self, request: CompletionRequest) -> str:
        return keyword_verdict(self._utterance).name


class OutcomeClassifier:
    """Gate plus model-with-fallback outcome decision."""

    def __init__(
        self,
        chat_provider: ChatCompletionProvider,
        *,
        timeout_seconds: float,
        min_turns: int = 3,
        min_topics: int = 2,
    ) -> None:
        self._chat = ChatStrategy(chat_provider)
        self._timeout = timeout_seconds
        self._min_turns = min_turns
        self._min_topics = min_topics

    def gate_open(self, turn_count: int, topics: set[Topic] | frozenset[Topic]) -> bool:
        return turn_count >= self._min_turns and len(topics) >= self._min_topics

    async def classify(self, session: CallSession, utterance: str) -> Classification:
        """Classify the latest utterance in the context of the whole call.

        Does not mutate the session; the caller applies ``topics_covered``.
        """
        covered = frozenset(session.topics_covered | detect_topics(utterance))

        if not self.gate_open(session.turn_count, covered):
            return Classification(verdict=Verdict.CONTINUE, topics_covered=covered)

        request = CompletionRequest(
            messages=(
                Message(
                    role=Role.USER,
                    content=build_classifier_prompt(session.transcript_text(), utterance),
                ),
            ),
            max_tokens=5,
            temperature=0.0,
        )
        chain = FallbackChain(
            [self._chat, KeywordVerdictStrategy(utterance)],
            timeout_seconds=self._timeout,
        )
        # The keyword tier never fails, so the chain always yields a label
        result = await chain.run(request)
        verdict = parse_verdict(result.text)
        logger.debug(
            f"Session {session.session_id} turn {session.turn_count}: {verdict.value} "
            f"via {result.strategy} for '{truncate_for_log(utterance)}'"
        )
        return Classification(verdict=verdict, topics_covered=covered, source=result.strategy)
