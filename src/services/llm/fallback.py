"""Ordered provider fallback for language-model calls.

A chain is a list of strategies tried in order. Each gets its own timeout;
any error or timeout falls through to the next strategy. The last
strategy is normally one that cannot fail (a static line or a local
heuristic), so callers always get text back on a live call.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from src.logging_config import get_logger
from src.observability.metrics import record_provider_failure, record_provider_latency
from src.services.llm.exceptions import LLMEmptyResponseError, LLMServiceError
from src.services.llm.protocol import (
    ChatCompletionProvider,
    CompletionRequest,
    TextCompletionProvider,
)

logger: Any = get_logger(__name__)


class CompletionStrategy(Protocol):
    """One tier of a fallback chain."""

    name: str

    async def complete(self, request: CompletionRequest) -> str: ...


class ChatStrategy:
    """Send the request as role-tagged chat messages."""

    def __init__(self, provider: ChatCompletionProvider, name: str = "groq") -> None:
        self._provider = provider
        self.name = name

    async def complete(self, request: CompletionRequest) -> str:
        return await self._provider.complete(
            list(request.messages),
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )


class TextCompletionStrategy:
    """Flatten the request into one prompt for a plain completion model."""

    def __init__(self, provider: TextCompletionProvider, name: str = "openai") -> None:
        self._provider = provider
        self.name = name

    async def complete(self, request: CompletionRequest) -> str:
        return await self._provider.complete(
            request.to_prompt(),
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )


class StaticStrategy:
    """Terminal tier: always returns the same text."""

    def __init__(self, text: str, name: str = "static") -> None:
        self._text = text
        self.name = name

    async def complete(self, request: CompletionRequest) -> str:
        return self._text


@dataclass(frozen=True, slots=True)
class ChainResult:
    """Text produced by a chain and the tier that produced it."""

    text: str
    strategy: str


class FallbackChain:
    """Try strategies in order until one yields usable text."""

    def __init__(
        self,
        strategies: Sequence[CompletionStrategy],
        *,
        timeout_seconds: float,
        postprocess: Callable[[str], str] | None = None,
    ) -> None:
        if not strategies:
            raise ValueError("FallbackChain needs at least one strategy")
        self._strategies = list(strategies)
        self._timeout = timeout_seconds
        self._postprocess = postprocess

    @property
    def strategy_names(self) -> list[str]:
        return [s.name for s in self._strategies]

    async def run(self, request: CompletionRequest) -> ChainResult:
        """Return the first usable result.

        Raises:
            LLMServiceError: If every strategy failed
        """
        last_error: Exception | None = None

        for strategy in self._strategies:
            start = time.perf_counter()
            try:
                text = await asyncio.wait_for(strategy.complete(request), timeout=self._timeout)
                if self._postprocess is not None:
                    text = self._postprocess(text)
                if not text or not text.strip():
                    raise LLMEmptyResponseError(f"{strategy.name} produced no usable text")
            except (LLMServiceError, TimeoutError) as e:
                last_error = e
                reason = "timed out" if isinstance(e, TimeoutError) else str(e)
                logger.warning(f"Strategy {strategy.name} failed ({reason}), falling through")
                record_provider_failure(strategy.name)
                continue
            except Exception as e:
                last_error = e
                logger.exception(f"Strategy {strategy.name} raised unexpectedly, falling through")
                record_provider_failure(strategy.name)
                continue

            record_provider_latency(strategy.name, time.perf_counter() - start)
            return ChainResult(text=text.strip(), strategy=strategy.name)

        names = ", ".join(self.strategy_names)
        raise LLMServiceError(f"All strategies failed: {names}") from last_error
