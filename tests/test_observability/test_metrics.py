"""Tests for Prometheus metrics."""

from __future__ import annotations

from src.observability.metrics import (
    CALLS_TOTAL,
    PROVIDER_FAILURES,
    TTS_FALLBACK_TOTAL,
    get_content_type,
    get_metrics,
    record_call_metrics,
    record_provider_failure,
    record_provider_latency,
    record_tts_fallback,
)


class TestMetricsModule:
    """Tests for metrics module functions."""

    def test_get_metrics_returns_bytes(self) -> None:
        assert isinstance(get_metrics(), bytes)

    def test_get_content_type(self) -> None:
        content_type = get_content_type()
        assert "text/plain" in content_type or "text/openmetrics" in content_type

    def test_record_call_metrics(self) -> None:
        before = CALLS_TOTAL.labels(outcome="declined")._value.get()

        record_call_metrics(outcome="declined", duration_seconds=42.0)

        assert CALLS_TOTAL.labels(outcome="declined")._value.get() == before + 1
        output = get_metrics().decode("utf-8")
        assert "tidecall_calls_total" in output
        assert "tidecall_call_duration_seconds" in output

    def test_provider_failure_counter(self) -> None:
        before = PROVIDER_FAILURES.labels(provider="groq")._value.get()

        record_provider_failure("groq")

        assert PROVIDER_FAILURES.labels(provider="groq")._value.get() == before + 1

    def test_provider_latency(self) -> None:
        record_provider_latency("openai", 0.3)
        assert "tidecall_provider_latency_seconds" in get_metrics().decode("utf-8")

    def test_tts_fallback_counter(self) -> None:
        before = TTS_FALLBACK_TOTAL._value.get()

        record_tts_fallback()

        assert TTS_FALLBACK_TOTAL._value.get() == before + 1
