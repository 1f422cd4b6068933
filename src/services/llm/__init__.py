"""LLM services (Groq chat, OpenAI completion fallback)."""

from src.services.llm.exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMEmptyResponseError,
    LLMRateLimitError,
    LLMServiceError,
    LLMTimeoutError,
)
from src.services.llm.fallback import (
    ChainResult,
    ChatStrategy,
    CompletionStrategy,
    FallbackChain,
    StaticStrategy,
    TextCompletionStrategy,
)
from src.services.llm.groq import GroqChatService
from src.services.llm.openai_completion import OpenAICompletionService
from src.services.llm.protocol import (
    ChatCompletionProvider,
    CompletionRequest,
    Message,
    Role,
    TextCompletionProvider,
)

__all__ = [
    # Protocol and types
    "ChatCompletionProvider",
    "TextCompletionProvider",
    "CompletionRequest",
    "Message",
    "Role",
    # Implementations
    "GroqChatService",
    "OpenAICompletionService",
    # Fallback
    "FallbackChain",
    "ChainResult",
    "CompletionStrategy",
    "ChatStrategy",
    "TextCompletionStrategy",
    "StaticStrategy",
    # Exceptions
    "LLMServiceError",
    "LLMRateLimitError",
    "LLMConnectionError",
    "LLMAuthenticationError",
    "LLMTimeoutError",
    "LLMEmptyResponseError",
]
