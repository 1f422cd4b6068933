"""Groq chat-completion service (primary language-model provider)."""

from __future__ import annotations

import time
from typing import Any

import groq
from groq import AsyncGroq

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
from src.services.llm.protocol import Message

logger: Any = get_logger(__name__)


class GroqChatService:
    """Groq chat completion for the classifier and dialogue generator.

    The client is created without SDK retries: on a live phone call a wrong
    "continue" is cheaper than a slow answer, so a failure goes straight to
    the next fallback tier.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        model: str | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._model = model or self._settings.groq_model
        self._client: AsyncGroq | None = None

    @property
    def model(self) -> str:
        return self._model

    @property
    def client(self) -> AsyncGroq:
        """Lazy initialization of AsyncGroq client."""
        if self._client is None:
            if not self._settings.groq_api_key:
                raise LLMConnectionError("Groq API key is not configured")
            self._client = AsyncGroq(
                api_key=self._settings.groq_api_key.get_secret_value(),
                timeout=self._settings.provider_timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        messages: list[Message],
        *,
        max_tokens: int = 150,
        temperature: float = 0.7,
    ) -> str:
        """Run a non-streaming chat completion.

        Args:
            messages: Conversation including any system message
            max_tokens: Maximum response tokens (keep low for voice)
            temperature: Response creativity

        Returns:
            The assistant reply, stripped of surrounding whitespace

        Raises:
            LLMRateLimitError: When rate limit exceeded
            LLMConnectionError: When API unreachable or not configured
            LLMTimeoutError: When the request exceeds the client timeout
            LLMAuthenticationError: When API key invalid
            LLMServiceError: For other API errors
        """
        start_time = time.perf_counter()

        try:
            response = await self.client.chat.completions.create(
                messages=self._format_messages(messages),  # type: ignore[arg-type]
                model=self._model,
                temperature=temperature,
                max_tokens=max_tokens,
            )

        except groq.RateLimitError as e:
            logger.warning(f"Groq rate limit hit: {e}")
            raise LLMRateLimitError(
                "Rate limit exceeded",
                retry_after=self._extract_retry_after(e),
            ) from e

        except groq.APITimeoutError as e:
            logger.warning("Groq request timed out")
            raise LLMTimeoutError("Groq request timed out") from e

        except groq.APIConnectionError as e:
            logger.error(f"Groq connection error: {e.__cause__}")
            raise LLMConnectionError("Failed to connect to Groq API") from e

        except groq.AuthenticationError as e:
            logger.error("Groq authentication failed")
            raise LLMAuthenticationError("Invalid Groq API key") from e

        except groq.APIStatusError as e:
            logger.error(f"Groq API error: {e.status_code} - {e.message}")
            raise LLMServiceError(f"Groq API error: {e.status_code}") from e

        except groq.APIError as e:
            logger.error(f"Groq returned an unusable response: {e}")
            raise LLMServiceError("Groq API error") from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Groq completion in {elapsed_ms:.1f}ms")

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise LLMEmptyResponseError("Empty response from Groq")
        return content.strip()

    def _format_messages(self, messages: list[Message]) -> list[dict]:
        """Format messages for Groq API."""
        return [{"role": msg.role.value, "content": msg.content} for msg in messages]

    def _extract_retry_after(self, error: groq.RateLimitError) -> float:
        """Extract retry-after from rate limit error."""
        if hasattr(error, "response") and error.response:
            retry_after = error.response.headers.get("retry-after")
            if retry_after:
                try:
                    return float(retry_after)
                except ValueError:
                    pass
        return 60.0

    async def close(self) -> None:
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None
