"""Tests for the Plivo webhook call flow."""

from __future__ import annotations

import pytest

from src.api.dependencies import get_plivo_service
from src.prompts.verification import (
    NO_INPUT_GOODBYE,
    SERVICE_ERROR_LINE,
    SESSION_LOST_LINE,
)
from src.services.telephony.plivo import PlivoCallInfo, PlivoService

CALL_PAYLOAD = {
    "phone_number": "+15557654321",
    "operation_name": "Coastal Sweep Alpha",
    "location": "Half Moon Bay",
}


def _create_call(client) -> str:
    return client.post("/api/calls", json=CALL_PAYLOAD).json()["id"]


def _answer(client, call_id: str):
    return client.post(
        "/api/plivo/webhook/answer",
        params={"call_log_id": call_id},
        data={"CallUUID": "uuid-1", "To": "+15557654321", "CallStatus": "in-progress"},
    )


def _speak(client, call_id: str, speech: str | None, silence: int = 0):
    params = {"session_id": call_id}
    if silence:
        params["silence"] = silence
    data = {"Speech": speech} if speech is not None else {}
    return client.post("/api/plivo/webhook/speech", params=params, data=data)


class TestAnswerWebhook:
    """POST /api/plivo/webhook/answer"""

    def test_answer_plays_greeting_in_gather(self, test_client, driver) -> None:
        call_id = _create_call(test_client)

        response = _answer(test_client, call_id)

        assert response.status_code == 200
        assert "application/xml" in response.headers["content-type"]
        assert "<GetInput" in response.text
        assert 'inputType="speech"' in response.text
        assert f"/api/plivo/webhook/speech?session_id={call_id}" in response.text
        assert f"<Play>https://calls.example.test/api/audio/greeting-{call_id}</Play>" in (
            response.text
        )
        assert call_id in driver.store

    def test_repeated_answer_keeps_session(self, test_client, driver, synthesizer) -> None:
        call_id = _create_call(test_client)

        _answer(test_client, call_id)
        _answer(test_client, call_id)

        assert len(synthesizer.texts) == 1
        assert len(driver.live_transcript(call_id)) == 1

    def test_unknown_call_log_hangs_up(self, test_client, driver) -> None:
        response = _answer(test_client, "missing")

        assert response.status_code == 200
        assert SERVICE_ERROR_LINE in response.text
        assert "<Hangup" in response.text
        assert "missing" not in driver.store


class TestAnswerWithoutAudio:
    """TTS failures fall back to the telephony voice."""

    @pytest.fixture
    def synthesizer(self, failing_synthesizer):
        return failing_synthesizer

    def test_answer_speaks_greeting(self, test_client) -> None:
        call_id = _create_call(test_client)

        response = _answer(test_client, call_id)

        assert "<Play>" not in response.text
        assert "<Speak" in response.text
        assert "Coastal Sweep Alpha" in response.text


class TestSpeechWebhook:
    """POST /api/plivo/webhook/speech"""

    def test_turn_returns_next_question(self, test_client, chat_provider) -> None:
        chat_provider.replies.append("Great. Are permits needed?")
        call_id = _create_call(test_client)
        _answer(test_client, call_id)

        response = _speak(test_client, call_id, "the beach is open to the public")

        assert response.status_code == 200
        assert "<GetInput" in response.text
        assert f"/api/audio/turn-{call_id}-1" in response.text
        live = test_client.get(f"/api/calls/{call_id}").json()["live_transcript"]
        assert [entry["text"] for entry in live[1:]] == [
            "the beach is open to the public",
            "Great. Are permits needed?",
        ]

    def test_finished_call_hangs_up_with_closing(
        self, test_client, chat_provider, record_store
    ) -> None:
        chat_provider.verdicts.append("ACCEPTED")
        call_id = _create_call(test_client)
        _answer(test_client, call_id)

        _speak(test_client, call_id, "yeah the beach is open to the public")
        _speak(test_client, call_id, "we could do a weekend morning")
        response = _speak(test_client, call_id, "there's a lot of plastic washed up, pretty bad")

        assert "<Hangup" in response.text
        assert "<GetInput" not in response.text
        # Closing lines are never synthesized, so the line is spoken as text
        assert "cleanup will proceed as planned" in response.text
        assert record_store.records[call_id].outcome == "accepted"

    def test_unknown_session(self, test_client) -> None:
        response = _speak(test_client, "missing", "hello?")

        assert response.status_code == 200
        assert SESSION_LOST_LINE in response.text
        assert "<Hangup" in response.text

    def test_silence_reprompts(self, test_client, driver) -> None:
        call_id = _create_call(test_client)
        _answer(test_client, call_id)

        response = _speak(test_client, call_id, None)

        assert "<GetInput" in response.text
        assert "catch that" in response.text
        assert "silence=1" in response.text
        assert driver.store.require(call_id).turn_count == 0

    def test_repeated_silence_ends_call(self, test_client, driver, record_store) -> None:
        call_id = _create_call(test_client)
        _answer(test_client, call_id)

        response = _speak(test_client, call_id, "  ", silence=2)

        assert NO_INPUT_GOODBYE in response.text
        assert "<Hangup" in response.text
        assert call_id not in driver.store
        assert record_store.records[call_id].outcome == "no_response"


class TestHangupWebhook:
    """POST /api/plivo/webhook/hangup"""

    def test_hangup_aborts_live_session(self, test_client, driver, record_store) -> None:
        call_id = _create_call(test_client)
        _answer(test_client, call_id)
        _speak(test_client, call_id, "the beach is open")

        response = test_client.post(
            "/api/plivo/webhook/hangup",
            params={"session_id": call_id},
            data={"CallUUID": "uuid-1", "HangupCause": "NORMAL_CLEARING"},
        )

        assert response.json() == {"status": "ok", "aborted": True}
        assert call_id not in driver.store
        assert record_store.records[call_id].outcome == "inconclusive"

    def test_hangup_after_finish_is_noop(self, test_client, record_store) -> None:
        response = test_client.post(
            "/api/plivo/webhook/hangup", params={"session_id": "missing"}, data={}
        )

        assert response.json() == {"status": "ok", "aborted": False}
        assert record_store.writes == []


class TestUnansweredCall:
    """A dialed call that never connects is closed by the hangup webhook."""

    @pytest.fixture
    def settings(self, settings_factory):
        return settings_factory(plivo_from_number="+15550001111")

    @pytest.fixture
    def plivo(self, settings):
        class DialingPlivo(PlivoService):
            async def make_call(self, to_number, answer_url, **kwargs):
                return PlivoCallInfo(
                    call_uuid="req-123",
                    from_number="+15550001111",
                    to_number=to_number,
                    direction="outbound",
                )

        return DialingPlivo(settings=settings)

    def test_no_answer_closes_call_log(self, test_client, plivo) -> None:
        test_client.app.dependency_overrides[get_plivo_service] = lambda: plivo
        call_id = _create_call(test_client)

        response = test_client.post(
            "/api/plivo/webhook/hangup",
            params={"session_id": call_id},
            data={"CallUUID": "req-123", "HangupCause": "NO_ANSWER"},
        )

        assert response.json() == {"status": "ok", "aborted": False}
        call = test_client.get(f"/api/calls/{call_id}").json()
        assert call["status"] == "completed"
        assert call["outcome"] == "no_response"
        assert call["result"].startswith("no_response: No meaningful response")
        assert call["duration_seconds"] == 0


def test_fallback_webhook(test_client) -> None:
    response = test_client.post(
        "/api/plivo/webhook/fallback", data={"CallUUID": "uuid-1", "Error": "timeout"}
    )

    assert response.status_code == 200
    assert SERVICE_ERROR_LINE in response.text
    assert "<Hangup" in response.text
