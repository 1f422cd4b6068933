"""Plivo webhook handlers for the verification call flow.

Handles:
- Answer webhook: starts the session and plays the greeting inside a speech gather
- Speech webhook: runs one protocol turn and replies, or hangs up when finished
- Hangup webhook: aborts sessions that ended before a natural conclusion
- Fallback webhook: error handling
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_driver, get_plivo_service, public_url
from src.config import Settings, get_settings
from src.core.protocol_driver import CallProtocolDriver
from src.core.session import OperationDescriptor, SessionFinishedError
from src.core.session_store import SessionNotFoundError
from src.db.models import CallOutcome, CallStatus
from src.db.repositories.calls import AsyncCallLogRepository
from src.db.session import get_session
from src.logging_config import get_logger, truncate_for_log
from src.prompts.verification import (
    NO_INPUT_GOODBYE,
    NO_INPUT_LINE,
    SERVICE_ERROR_LINE,
    SESSION_LOST_LINE,
    build_result_summary,
)
from src.services.telephony.plivo import PlivoCallInfo, PlivoService

router = APIRouter(prefix="/plivo", tags=["Plivo"])
logger: Any = get_logger(__name__)

# Consecutive silent gathers before the call is given up
MAX_SILENT_PROMPTS = 2


def _xml(content: str) -> Response:
    return Response(content=content, media_type="application/xml")


async def _form_dict(request: Request) -> dict[str, str]:
    form_data = await request.form()
    return {k: str(v) for k, v in form_data.items()}


def _speech_url(settings: Settings, session_id: str, silence: int = 0) -> str:
    params = {"session_id": session_id}
    if silence:
        params["silence"] = str(silence)
    return public_url(settings, f"/api/plivo/webhook/speech?{urlencode(params)}")


def _audio_url(
    settings: Settings, driver: CallProtocolDriver, audio_id: str
) -> str | None:
    """URL for synthesized audio, or None when the text voice must be used."""
    if not driver.audio_cache.has_valid_audio(audio_id):
        return None
    return public_url(settings, f"/api/audio/{audio_id}")


@router.post("/webhook/answer")
async def plivo_answer_webhook(
    request: Request,
    call_log_id: str = Query(...),
    driver: CallProtocolDriver = Depends(get_driver),
    plivo: PlivoService = Depends(get_plivo_service),
    settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_session),
) -> Response:
    """Handle the outbound call being answered.

    Expected form data:
    - CallUUID: Unique call identifier
    - To: Called phone number
    - CallStatus: current call status
    """
    call_info = PlivoCallInfo.from_webhook(await _form_dict(request))

    repo = AsyncCallLogRepository(session)
    call_log = await repo.get_by_id(call_log_id)
    if call_log is None:
        logger.error(f"Answer webhook for unknown call log {call_log_id}")
        return _xml(plivo.generate_hangup_xml(SERVICE_ERROR_LINE))

    await repo.mark_status(
        call_log_id,
        CallStatus.in_progress,
        conversation_id=call_info.call_uuid or None,
    )

    descriptor = OperationDescriptor(
        name=call_log.operation_name,
        location=call_log.location,
        priority=call_log.priority.value,
        notes=call_log.notes,
        target_date=call_log.target_date,
    )
    start = await driver.start_session(descriptor, session_id=call_log_id)
    logger.info(f"Call answered: {call_info.call_uuid} for call log {call_log_id}")

    return _xml(
        plivo.generate_get_input_xml(
            _speech_url(settings, start.session_id),
            text=start.greeting_text,
            audio_url=_audio_url(settings, driver, start.greeting_audio_id),
            no_input_url=_speech_url(settings, start.session_id, silence=1),
        )
    )


@router.post("/webhook/speech")
async def plivo_speech_webhook(
    request: Request,
    session_id: str = Query(...),
    silence: int = Query(default=0, ge=0),
    driver: CallProtocolDriver = Depends(get_driver),
    plivo: PlivoService = Depends(get_plivo_service),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Handle a speech result (or a silent gather) for a live call.

    Expected form data:
    - Speech: recognized caller speech, empty or absent on silence
    """
    form_dict = await _form_dict(request)
    speech = form_dict.get("Speech", "").strip()

    if not speech:
        if silence >= MAX_SILENT_PROMPTS:
            logger.info(f"Session {session_id}: no speech after {silence} prompts, ending")
            await driver.abort_session(session_id)
            return _xml(plivo.generate_hangup_xml(NO_INPUT_GOODBYE))
        return _xml(
            plivo.generate_get_input_xml(
                _speech_url(settings, session_id),
                text=NO_INPUT_LINE,
                no_input_url=_speech_url(settings, session_id, silence=silence + 1),
            )
        )

    logger.debug(f"Speech for {session_id}: '{truncate_for_log(speech)}'")
    try:
        turn = await driver.process_utterance(session_id, speech)
    except (SessionNotFoundError, SessionFinishedError):
        logger.warning(f"Speech webhook for unknown or finished session {session_id}")
        return _xml(plivo.generate_hangup_xml(SESSION_LOST_LINE))

    audio_url = _audio_url(settings, driver, turn.audio_id)
    if turn.is_finished:
        return _xml(plivo.generate_hangup_xml(turn.response_text, audio_url=audio_url))

    return _xml(
        plivo.generate_get_input_xml(
            _speech_url(settings, session_id),
            text=turn.response_text,
            audio_url=audio_url,
            no_input_url=_speech_url(settings, session_id, silence=1),
        )
    )


@router.post("/webhook/hangup")
async def plivo_hangup_webhook(
    request: Request,
    session_id: str = Query(...),
    driver: CallProtocolDriver = Depends(get_driver),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Handle call end.

    Aborts a session that never concluded. A call that was never answered
    (busy, no answer) has no session, so its call log is closed here.
    """
    form_dict = await _form_dict(request)
    call_info = PlivoCallInfo.from_webhook(form_dict)
    hangup_cause = form_dict.get("HangupCause", "")

    if await driver.abort_session(session_id):
        logger.info(f"Call {call_info.call_uuid} hung up early ({hangup_cause})")
        return {"status": "ok", "aborted": True}

    repo = AsyncCallLogRepository(session)
    call_log = await repo.get_by_id(session_id)
    if call_log is not None and call_log.status in (CallStatus.initiated, CallStatus.in_progress):
        outcome = CallOutcome.no_response.value
        await repo.upsert_call_log(
            session_id,
            status=CallStatus.completed,
            outcome=CallOutcome.no_response,
            result=f"{outcome}: {build_result_summary(outcome, [])}",
            duration_seconds=0,
            completed_at=datetime.now(UTC),
        )
        logger.info(f"Call {session_id} ended without a session ({hangup_cause})")

    return {"status": "ok", "aborted": False}


@router.post("/webhook/fallback")
async def plivo_fallback_webhook(
    request: Request,
    plivo: PlivoService = Depends(get_plivo_service),
) -> Response:
    """Handle errors in the primary webhooks.

    Plivo calls this when the answer URL fails; apologize and hang up.
    """
    form_dict = await _form_dict(request)
    logger.error(
        f"Plivo fallback triggered for call {form_dict.get('CallUUID', '')}: "
        f"{form_dict.get('Error', 'unknown error')}"
    )
    return _xml(plivo.generate_hangup_xml(SERVICE_ERROR_LINE))
