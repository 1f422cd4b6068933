"""Prometheus metrics for the tidecall verification caller.

Provides metrics for call outcomes, provider health, and latency.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

# =============================================================================
# Counters
# =============================================================================

CALLS_TOTAL = Counter(
    "tidecall_calls_total",
    "Total finalized verification calls",
    ["outcome"],
)

TURNS_TOTAL = Counter(
    "tidecall_turns_total",
    "Total caller turns processed",
)

PROVIDER_FAILURES = Counter(
    "tidecall_provider_failures_total",
    "Provider calls that failed or timed out and fell through",
    ["provider"],
)

TTS_FALLBACK_TOTAL = Counter(
    "tidecall_tts_fallback_total",
    "Synthesis attempts that produced no audio (telephony voice used instead)",
)

# =============================================================================
# Gauges
# =============================================================================

ACTIVE_SESSIONS = Gauge(
    "tidecall_active_sessions",
    "Sessions currently held in the session store",
)

# =============================================================================
# Histograms
# =============================================================================

CALL_DURATION = Histogram(
    "tidecall_call_duration_seconds",
    "Call duration from first to last transcript entry",
    buckets=[10, 30, 60, 120, 300, 600, 900],
)

PROVIDER_LATENCY = Histogram(
    "tidecall_provider_latency_seconds",
    "Latency of successful provider calls",
    ["provider"],
    buckets=[0.1, 0.25, 0.5, 0.75, 1.0, 1.5, 2.0, 3.0, 5.0],
)

# =============================================================================
# Helper Functions
# =============================================================================


def record_call_metrics(outcome: str, duration_seconds: float) -> None:
    """Record metrics for a finalized call.

    Args:
        outcome: Stored outcome (accepted, declined, inconclusive, no_response)
        duration_seconds: Seconds between first and last transcript entry
    """
    CALLS_TOTAL.labels(outcome=outcome).inc()
    CALL_DURATION.observe(max(duration_seconds, 0.0))


def record_provider_failure(provider: str) -> None:
    PROVIDER_FAILURES.labels(provider=provider).inc()


def record_provider_latency(provider: str, seconds: float) -> None:
    PROVIDER_LATENCY.labels(provider=provider).observe(seconds)


def record_tts_fallback() -> None:
    TTS_FALLBACK_TOTAL.inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output.

    Returns:
        Metrics in Prometheus text exposition format.
    """
    return generate_latest()


def get_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
