"""Live transcript stream (Server-Sent Events)."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from src.api.dependencies import get_driver
from src.core.events import EventBus
from src.core.protocol_driver import CallProtocolDriver
from src.logging_config import get_logger

router = APIRouter(prefix="/calls", tags=["Calls"])
logger: Any = get_logger(__name__)


def format_sse(data: dict[str, Any]) -> str:
    return f"data: {json.dumps(data)}\n\n"


async def _event_source(events: EventBus, session_id: str) -> AsyncIterator[str]:
    # Initial comment flushes headers so the browser marks the stream open
    yield ": connected\n\n"
    async for event in events.stream(session_id):
        yield format_sse(event.to_dict())
    logger.debug(f"Event stream for {session_id} closed after completion")


@router.get("/{session_id}/events")
async def stream_call_events(
    session_id: str,
    driver: CallProtocolDriver = Depends(get_driver),
) -> StreamingResponse:
    """Stream status, transcript and completed events until the call ends."""
    return StreamingResponse(
        _event_source(driver.events, session_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
