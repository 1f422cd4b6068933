"""Custom exceptions for TTS services."""


class TTSServiceError(Exception):
    """Base exception for TTS service errors."""

    pass


class TTSSynthesisError(TTSServiceError):
    """Raised when synthesis fails or returns no audio."""

    pass


class TTSConnectionError(TTSServiceError):
    """Raised when unable to reach the TTS provider (or no key is configured)."""

    pass
