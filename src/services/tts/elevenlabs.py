"""ElevenLabs TTS service implementation for high-naturalness speech."""

from __future__ import annotations

import asyncio
import io
import time
from typing import Any

from src.config import Settings, get_settings
from src.logging_config import get_logger
from src.services.tts.exceptions import TTSConnectionError, TTSSynthesisError

logger: Any = get_logger(__name__)

ELEVENLABS_OUTPUT_FORMAT = "mp3_44100_128"
ELEVENLABS_STABILITY = 0.5
ELEVENLABS_SIMILARITY_BOOST = 0.75


class ElevenLabsTTSService:
    """ElevenLabs TTS producing MP3 buffers for telephony playback."""

    def __init__(
        self,
        settings: Settings | None = None,
        voice_id: str | None = None,
        model_id: str | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._voice_id = voice_id or self._settings.elevenlabs_voice_id
        self._model_id = model_id or self._settings.elevenlabs_model_id
        self._client = None

    def _get_client(self):
        if self._client is None:
            if not self._settings.elevenlabs_api_key:
                raise TTSConnectionError("ElevenLabs API key is not configured")
            from elevenlabs import ElevenLabs

            self._client = ElevenLabs(
                api_key=self._settings.elevenlabs_api_key.get_secret_value()
            )
        return self._client

    async def synthesize(self, text: str) -> bytes:
        """Synthesize text to a complete MP3 buffer.

        Raises:
            TTSConnectionError: When the provider is unreachable or not configured
            TTSSynthesisError: When the provider returns no audio
        """
        start_time = time.perf_counter()
        try:
            mp3_bytes = await asyncio.to_thread(self._synthesize_to_mp3, text)
        except TTSConnectionError:
            raise
        except Exception as e:
            logger.error(f"ElevenLabs synthesis error: {e}")
            raise TTSConnectionError(f"ElevenLabs connection failed: {e}") from e

        if not mp3_bytes:
            raise TTSSynthesisError("No audio received from ElevenLabs")

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"ElevenLabs synthesized {len(text)} chars in {elapsed_ms:.1f}ms")
        return mp3_bytes

    def _synthesize_to_mp3(self, text: str) -> bytes:
        from elevenlabs import VoiceSettings

        client = self._get_client()

        audio_chunks = client.text_to_speech.convert(
            text=text,
            voice_id=self._voice_id,
            model_id=self._model_id,
            output_format=ELEVENLABS_OUTPUT_FORMAT,
            voice_settings=VoiceSettings(
                stability=ELEVENLABS_STABILITY,
                similarity_boost=ELEVENLABS_SIMILARITY_BOOST,
            ),
        )

        buffer = io.BytesIO()
        for chunk in audio_chunks:
            buffer.write(chunk)
        return buffer.getvalue()

    async def close(self) -> None:
        self._client = None
