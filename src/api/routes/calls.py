"""Outbound verification call endpoints.

- POST /api/calls: create a call log and place the call (demo mode without Plivo)
- GET /api/calls: recent calls
- GET /api/calls/{call_id}: one call, with the live transcript while in progress
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_driver, get_plivo_service, public_url
from src.config import Settings, get_settings
from src.core.protocol_driver import CallProtocolDriver
from src.db.models import CallLog, CallOutcome, CallStatus, OperationPriority
from src.db.repositories.calls import AsyncCallLogRepository
from src.db.session import get_session
from src.logging_config import get_logger, mask_phone
from src.services.telephony.plivo import PlivoService, TelephonyError

router = APIRouter(prefix="/calls", tags=["Calls"])
logger: Any = get_logger(__name__)


# =============================================================================
# Schemas
# =============================================================================


class CallCreate(BaseModel):
    """Request to verify a cleanup site by phone."""

    phone_number: str = Field(min_length=6, max_length=20, pattern=r"^\+?[0-9]+$")
    operation_name: str = Field(min_length=1, max_length=200)
    location: str = Field(default="", max_length=200)
    priority: OperationPriority = OperationPriority.medium
    notes: str = Field(default="", max_length=2000)
    target_date: str | None = Field(default=None, max_length=40)


class CallLogResponse(BaseModel):
    """Response schema for call logs."""

    id: str
    operation_name: str
    location: str
    priority: OperationPriority
    phone_number_masked: str
    status: CallStatus
    outcome: CallOutcome | None
    transcript: str | None
    result: str | None
    duration_seconds: int | None
    total_turns: int = 0
    topics_covered: str | None = None
    conversation_id: str | None
    created_at: datetime
    completed_at: datetime | None

    model_config = {"from_attributes": True}


class CallDetailResponse(CallLogResponse):
    live_transcript: list[dict[str, str]] | None = None


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=CallLogResponse, status_code=status.HTTP_201_CREATED)
async def create_call(
    payload: CallCreate,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    plivo: PlivoService = Depends(get_plivo_service),
) -> CallLogResponse:
    """Create a call log and dial the site contact.

    Without telephony credentials the log is stored in demo mode and no
    call is placed.
    """
    repo = AsyncCallLogRepository(session)
    call_log = await repo.create(
        CallLog(
            operation_name=payload.operation_name,
            location=payload.location,
            priority=payload.priority,
            notes=payload.notes,
            target_date=payload.target_date,
            phone_number_masked=mask_phone(payload.phone_number),
            status=(
                CallStatus.initiated if settings.telephony_configured else CallStatus.demo_mode
            ),
        )
    )
    # The answer webhook may arrive before this request returns
    await session.commit()

    if call_log.status == CallStatus.demo_mode:
        logger.info(f"Call {call_log.id} created in demo mode (telephony not configured)")
        return CallLogResponse.model_validate(call_log)

    query = urlencode({"call_log_id": call_log.id})
    try:
        call_info = await plivo.make_call(
            payload.phone_number,
            public_url(settings, f"/api/plivo/webhook/answer?{query}"),
            hangup_url=public_url(
                settings, f"/api/plivo/webhook/hangup?{urlencode({'session_id': call_log.id})}"
            ),
            fallback_url=public_url(settings, "/api/plivo/webhook/fallback"),
        )
    except TelephonyError as e:
        await repo.mark_status(call_log.id, CallStatus.failed)
        await session.commit()
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    updated = await repo.upsert_call_log(call_log.id, conversation_id=call_info.call_uuid)
    return CallLogResponse.model_validate(updated)


@router.get("", response_model=list[CallLogResponse])
async def list_calls(
    status_filter: CallStatus | None = Query(default=None, alias="status"),
    outcome: CallOutcome | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    session: AsyncSession = Depends(get_session),
) -> list[CallLogResponse]:
    """Most recent calls first."""
    repo = AsyncCallLogRepository(session)
    calls = await repo.list_recent(status=status_filter, outcome=outcome, limit=limit)
    return [CallLogResponse.model_validate(c) for c in calls]


@router.get("/{call_id}", response_model=CallDetailResponse)
async def get_call(
    call_id: str,
    session: AsyncSession = Depends(get_session),
    driver: CallProtocolDriver = Depends(get_driver),
) -> CallDetailResponse:
    """Get a call log; includes the live transcript while the call is running."""
    repo = AsyncCallLogRepository(session)
    call_log = await repo.get_by_id(call_id)
    if not call_log:
        raise HTTPException(status_code=404, detail="Call not found")

    response = CallDetailResponse.model_validate(call_log)
    response.live_transcript = driver.live_transcript(call_id)
    return response
