"""Synthesized audio playback for the telephony provider."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from src.api.dependencies import get_driver
from src.core.protocol_driver import CallProtocolDriver

router = APIRouter(prefix="/audio", tags=["Audio"])


@router.get("/{audio_id}")
async def get_audio(
    audio_id: str,
    driver: CallProtocolDriver = Depends(get_driver),
) -> Response:
    """Serve cached MP3 audio. Missing and empty entries are both 404."""
    audio = driver.audio_cache.get(audio_id)
    if not audio:
        raise HTTPException(status_code=404, detail="Audio not found")
    return Response(
        content=audio,
        media_type="audio/mpeg",
        headers={"Cache-Control": "no-store"},
    )
