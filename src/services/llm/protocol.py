"""LLM service protocols and data types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol


class Role(str, Enum):
    """Message role in conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True, slots=True)
class Message:
    """A single message in conversation history."""

    role: Role
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


# Labels used when a chat history is flattened into a plain completion prompt
PROMPT_LABELS = {
    Role.SYSTEM: "Instructions",
    Role.USER: "Recipient",
    Role.ASSISTANT: "Agent",
}


@dataclass(frozen=True, slots=True)
class CompletionRequest:
    """A provider-neutral request for the next piece of text."""

    messages: tuple[Message, ...]
    max_tokens: int = 150
    temperature: float = 0.7

    def to_prompt(self) -> str:
        """Flatten the chat history into a single text-completion prompt.

        System messages become a leading instruction block; the prompt ends
        with an open agent label so the model continues as the agent.
        """
        lines: list[str] = []
        for message in self.messages:
            if message.role == Role.SYSTEM:
                lines.append(message.content.strip())
                lines.append("")
                continue
            lines.append(f"{PROMPT_LABELS[message.role]}: {message.content.strip()}")
        lines.append(f"{PROMPT_LABELS[Role.ASSISTANT]}:")
        return "\n".join(lines)


class ChatCompletionProvider(Protocol):
    """Primary provider: role-tagged chat completion."""

    async def complete(
        self,
        messages: list[Message],
        *,
        max_tokens: int = 150,
        temperature: float = 0.7,
    ) -> str:
        """Return the assistant reply for the given conversation."""
        ...


class TextCompletionProvider(Protocol):
    """Fallback provider: single-prompt text completion (no chat roles)."""

    async def complete(
        self,
        prompt: str,
        *,
        max_tokens: int = 150,
        temperature: float = 0.7,
    ) -> str:
        """Return the continuation of the prompt."""
        ...
