"""Health check endpoints.

Provides:
- Basic health check (GET /health)
- Detailed health check with dependency status (GET /health/detailed)
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import text

from src.api.dependencies import get_driver
from src.config import Settings, get_settings
from src.core.protocol_driver import CallProtocolDriver
from src.db.session import get_session

router = APIRouter()


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str


class DetailedHealthResponse(BaseModel):
    """Detailed health check response."""

    status: str
    checks: dict[str, str]
    active_sessions: int
    version: str


def _configured(value) -> str:
    return "configured" if value else "missing"


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="healthy")


@router.get("/health/detailed", response_model=DetailedHealthResponse)
async def detailed_health_check(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    driver: CallProtocolDriver = Depends(get_driver),
) -> DetailedHealthResponse:
    """Detailed health check including dependency status.

    Checks:
    - Database connectivity
    - Redis connectivity (call-record retry queue)
    - Provider configuration (keys present, APIs not called)
    """
    checks = {}

    try:
        await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {type(e).__name__}"

    try:
        from arq import create_pool

        redis = await create_pool(settings.redis_settings)
        await redis.ping()
        await redis.close()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"error: {type(e).__name__}"

    # Missing keys only degrade the call to its fallback tiers
    checks["groq"] = _configured(settings.groq_api_key)
    checks["openai"] = _configured(settings.openai_api_key)
    checks["elevenlabs"] = _configured(settings.elevenlabs_api_key)
    checks["plivo"] = _configured(settings.telephony_configured)

    status = "healthy" if checks["database"] == "ok" else "degraded"

    return DetailedHealthResponse(
        status=status,
        checks=checks,
        active_sessions=driver.store.active_count,
        version="0.1.0",
    )
