"""Tests for health check endpoints."""

from __future__ import annotations

import pytest


@pytest.fixture
def redis_down(monkeypatch) -> None:
    """Make the arq pool fail fast instead of retrying a real connection."""

    async def refuse(*args, **kwargs):
        raise ConnectionError("redis unavailable")

    monkeypatch.setattr("arq.create_pool", refuse)


class TestHealthEndpoints:
    """Tests for /health endpoints."""

    def test_health_check(self, test_client) -> None:
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_detailed_health_check(self, test_client, redis_down) -> None:
        response = test_client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"] == "ok"
        assert data["checks"]["redis"] == "error: ConnectionError"
        assert data["checks"]["groq"] == "configured"
        assert data["checks"]["openai"] == "configured"
        assert data["checks"]["elevenlabs"] == "configured"
        # No caller number, so calls run in demo mode
        assert data["checks"]["plivo"] == "missing"
        assert data["active_sessions"] == 0
        assert data["version"] == "0.1.0"

    def test_detailed_health_counts_sessions(self, test_client, redis_down) -> None:
        call_id = test_client.post(
            "/api/calls",
            json={"phone_number": "+15557654321", "operation_name": "Coastal Sweep Alpha"},
        ).json()["id"]
        test_client.post("/api/plivo/webhook/answer", params={"call_log_id": call_id}, data={})

        data = test_client.get("/health/detailed").json()

        assert data["active_sessions"] == 1


class TestMetricsEndpoint:
    """Prometheus scrape endpoint."""

    def test_metrics(self, test_client) -> None:
        response = test_client.get("/metrics")

        assert response.status_code == 200
        assert "tidecall_active_sessions" in response.text
