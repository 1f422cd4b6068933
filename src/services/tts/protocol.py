"""TTS (Text-to-Speech) service protocol."""

from __future__ import annotations

from typing import Protocol


class SpeechSynthesizer(Protocol):
    """Protocol for speech-synthesis providers.

    Implementations return a complete encoded audio buffer (MP3) suitable for
    playback by the telephony provider, or raise a TTSServiceError.
    """

    async def synthesize(self, text: str) -> bytes:
        """Synthesize text to a complete audio buffer."""
        ...
