"""In-memory audio cache for synthesized call lines.

Audio ids have the form ``<kind>-<session_id>[-<turn>]``. A zero-length entry
means synthesis failed and the telephony layer should speak the text with its
built-in voice instead; a missing entry means the same thing.

All map mutations happen between awaits, so the cache is safe to share across
concurrent sessions on one event loop without a lock.
"""

from __future__ import annotations

import asyncio
from typing import Any

from src.logging_config import get_logger
from src.observability.metrics import record_tts_fallback
from src.services.tts.exceptions import TTSServiceError
from src.services.tts.protocol import SpeechSynthesizer

logger: Any = get_logger(__name__)


def audio_id(kind: str, session_id: str, turn: int | None = None) -> str:
    """Build a cache key scoped to a session and, optionally, a turn."""
    if turn is None:
        return f"{kind}-{session_id}"
    return f"{kind}-{session_id}-{turn}"


class AudioCache:
    """Synthesize-once, read-many audio buffers keyed by audio id."""

    def __init__(self, synthesizer: SpeechSynthesizer, *, timeout_seconds: float) -> None:
        self._synthesizer = synthesizer
        self._timeout = timeout_seconds
        self._entries: dict[str, bytes] = {}
        self._by_session: dict[str, set[str]] = {}

    async def synthesize(self, audio_id: str, text: str, *, session_id: str) -> None:
        """Populate the cache for ``audio_id``. Never raises.

        On provider failure or timeout a zero-length buffer is stored.
        """
        try:
            audio = await asyncio.wait_for(
                self._synthesizer.synthesize(text), timeout=self._timeout
            )
        except (TTSServiceError, TimeoutError) as e:
            reason = "timed out" if isinstance(e, TimeoutError) else str(e)
            logger.warning(f"TTS failed for {audio_id} ({reason}), using text fallback")
            record_tts_fallback()
            audio = b""
        except Exception:
            logger.exception(f"TTS raised unexpectedly for {audio_id}, using text fallback")
            record_tts_fallback()
            audio = b""

        self._entries[audio_id] = audio
        self._by_session.setdefault(session_id, set()).add(audio_id)

    def get(self, audio_id: str) -> bytes | None:
        return self._entries.get(audio_id)

    def has_valid_audio(self, audio_id: str) -> bool:
        """True only for a present, non-empty buffer."""
        return bool(self._entries.get(audio_id))

    def evict_session(self, session_id: str) -> int:
        """Drop every buffer belonging to a session. Returns the number evicted."""
        ids = self._by_session.pop(session_id, set())
        for key in ids:
            self._entries.pop(key, None)
        if ids:
            logger.debug(f"Evicted {len(ids)} audio entries for session {session_id}")
        return len(ids)

    def session_audio_ids(self, session_id: str) -> set[str]:
        return set(self._by_session.get(session_id, set()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, audio_id: object) -> bool:
        return audio_id in self._entries
