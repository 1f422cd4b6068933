"""OpenAI text-completion service (secondary language-model provider).

Used only when the chat provider fails. The conversation arrives already
flattened into a single prompt, so this talks to the legacy completions
endpoint rather than chat.
"""

from __future__ import annotations

import time
from typing import Any

import openai
from openai import AsyncOpenAI

from src.config import Settings, get_settings
from src.logging_config import get_logger
from src.services.llm.exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMEmptyResponseError,
    LLMRateLimitError,
    LLMServiceError,
    LLMTimeoutError,
)

logger: Any = get_logger(__name__)

# Stop before the model starts writing the other side of the call
STOP_SEQUENCES = ["\nRecipient:", "\nAgent:"]


class OpenAICompletionService:
    """Single-prompt completion against the OpenAI completions API."""

    def __init__(
        self,
        settings: Settings | None = None,
        model: str | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._model = model or self._settings.openai_completion_model
        self._client: AsyncOpenAI | None = None

    @property
    def model(self) -> str:
        return self._model

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy initialization of the AsyncOpenAI client."""
        if self._client is None:
            if not self._settings.openai_api_key:
                raise LLMConnectionError("OpenAI API key is not configured")
            self._client = AsyncOpenAI(
                api_key=self._settings.openai_api_key.get_secret_value(),
                timeout=self._settings.provider_timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        prompt: str,
        *,
        max_tokens: int = 150,
        temperature: float = 0.7,
    ) -> str:
        """Complete a plain-text prompt.

        Raises:
            LLMRateLimitError: When rate limit exceeded
            LLMConnectionError: When API unreachable or not configured
            LLMTimeoutError: When the request exceeds the client timeout
            LLMAuthenticationError: When API key invalid
            LLMServiceError: For other API errors
        """
        start_time = time.perf_counter()

        try:
            response = await self.client.completions.create(
                model=self._model,
                prompt=prompt,
                max_tokens=max_tokens,
                temperature=temperature,
                stop=STOP_SEQUENCES,
            )

        except openai.RateLimitError as e:
            logger.warning(f"OpenAI rate limit hit: {e}")
            raise LLMRateLimitError("Rate limit exceeded") from e

        except openai.APITimeoutError as e:
            logger.warning("OpenAI completion timed out")
            raise LLMTimeoutError("OpenAI request timed out") from e

        except openai.APIConnectionError as e:
            logger.error(f"OpenAI connection error: {e.__cause__}")
            raise LLMConnectionError("Failed to connect to OpenAI API") from e

        except openai.AuthenticationError as e:
            logger.error("OpenAI authentication failed")
            raise LLMAuthenticationError("Invalid OpenAI API key") from e

        except openai.APIStatusError as e:
            logger.error(f"OpenAI API error: {e.status_code} - {e.message}")
            raise LLMServiceError(f"OpenAI API error: {e.status_code}") from e

        except openai.APIError as e:
            logger.error(f"OpenAI returned an unusable response: {e}")
            raise LLMServiceError("OpenAI API error") from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"OpenAI completion in {elapsed_ms:.1f}ms")

        text = response.choices[0].text if response.choices else None
        if not text or not text.strip():
            raise LLMEmptyResponseError("Empty response from OpenAI")
        return text.strip()

    async def close(self) -> None:
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None
