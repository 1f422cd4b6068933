"""Custom exceptions for LLM services."""


class LLMServiceError(Exception):
    """Base exception for LLM service errors."""

    pass


class LLMRateLimitError(LLMServiceError):
    """Raised when rate limit is exceeded."""

    def __init__(self, message: str, retry_after: float = 60.0):
        super().__init__(message)
        self.retry_after = retry_after


class LLMConnectionError(LLMServiceError):
    """Raised when unable to connect to the LLM API (or no key is configured)."""

    pass


class LLMAuthenticationError(LLMServiceError):
    """Raised when API key is invalid."""

    pass


class LLMTimeoutError(LLMServiceError):
    """Raised when a provider does not answer within the call's time budget."""

    pass


class LLMEmptyResponseError(LLMServiceError):
    """Raised when a provider answers with nothing usable."""

    pass
