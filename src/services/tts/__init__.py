"""Text-to-Speech services.

- ElevenLabsTTSService: hosted synthesis for the calling agent's voice
- AudioCache: per-call audio buffers with an empty-buffer fallback sentinel
"""

from src.services.tts.cache import AudioCache, audio_id
from src.services.tts.elevenlabs import ElevenLabsTTSService
from src.services.tts.exceptions import (
    TTSConnectionError,
    TTSServiceError,
    TTSSynthesisError,
)
from src.services.tts.protocol import SpeechSynthesizer

__all__ = [
    # Services
    "ElevenLabsTTSService",
    "AudioCache",
    "audio_id",
    # Protocol
    "SpeechSynthesizer",
    # Exceptions
    "TTSServiceError",
    "TTSSynthesisError",
    "TTSConnectionError",
]
