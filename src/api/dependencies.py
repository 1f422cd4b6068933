"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Depends, Request

from src.config import Settings, get_settings
from src.core.protocol_driver import CallProtocolDriver
from src.services.telephony.plivo import PlivoService


def get_driver(request: Request) -> CallProtocolDriver:
    """The process-wide driver built during application startup."""
    return request.app.state.driver


def get_plivo_service(settings: Settings = Depends(get_settings)) -> PlivoService:
    """Dependency injection for PlivoService."""
    return PlivoService(settings=settings)


def public_url(settings: Settings, path: str) -> str:
    """Absolute URL for a path, as reachable by the telephony provider."""
    return f"{settings.public_base_url.rstrip('/')}{path}"
