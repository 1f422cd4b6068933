"""Observability module for metrics."""

from src.observability.metrics import (
    ACTIVE_SESSIONS,
    CALL_DURATION,
    CALLS_TOTAL,
    PROVIDER_FAILURES,
    PROVIDER_LATENCY,
    TTS_FALLBACK_TOTAL,
    TURNS_TOTAL,
    record_call_metrics,
    record_provider_failure,
    record_provider_latency,
    record_tts_fallback,
)

__all__ = [
    "CALLS_TOTAL",
    "TURNS_TOTAL",
    "PROVIDER_FAILURES",
    "TTS_FALLBACK_TOTAL",
    "ACTIVE_SESSIONS",
    "CALL_DURATION",
    "PROVIDER_LATENCY",
    "record_call_metrics",
    "record_provider_failure",
    "record_provider_latency",
    "record_tts_fallback",
]
