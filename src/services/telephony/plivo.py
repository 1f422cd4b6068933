"""Plivo telephony service for the verification caller.

Handles:
- XML response generation for the speech-gather call flow
- Outbound call placement via the Plivo SDK
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal
from xml.etree.ElementTree import Element, SubElement, tostring

from src.config import Settings, get_settings
from src.logging_config import get_logger, mask_phone

if TYPE_CHECKING:
    import plivo

logger: Any = get_logger(__name__)

# Plivo detects end of speech itself; execution timeout bounds the whole gather
SPEECH_END_TIMEOUT = "auto"
GATHER_EXECUTION_TIMEOUT = 15


class TelephonyError(Exception):
    """Raised when the telephony provider rejects or cannot place a call."""

    pass


@dataclass(frozen=True, slots=True)
class PlivoCallInfo:
    """Information about a Plivo call."""

    call_uuid: str
    from_number: str
    to_number: str
    direction: Literal["inbound", "outbound"]
    status: str = "initiated"
    answered_at: datetime | None = None

    @classmethod
    def from_webhook(cls, form_data: dict[str, str]) -> PlivoCallInfo:
        """Create from Plivo webhook form data."""
        return cls(
            call_uuid=form_data.get("CallUUID", ""),
            from_number=form_data.get("From", ""),
            to_number=form_data.get("To", ""),
            direction=form_data.get("Direction", "outbound"),  # type: ignore[arg-type]
            status=form_data.get("CallStatus", "initiated"),
            answered_at=datetime.now(UTC) if form_data.get("CallStatus") == "in-progress" else None,
        )


def _to_xml(response: Element) -> str:
    xml_str = tostring(response, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>{xml_str}'


class PlivoService:
    """Service for Plivo telephony operations."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._client: plivo.RestClient | None = None

    @property
    def client(self) -> plivo.RestClient:
        """Lazy-initialize Plivo REST client."""
        if self._client is None:
            if not self._settings.telephony_configured:
                raise TelephonyError("Plivo credentials are not configured")
            import plivo

            self._client = plivo.RestClient(
                auth_id=self._settings.plivo_auth_id,
                auth_token=self._settings.plivo_auth_token.get_secret_value(),
            )
        return self._client

    def _add_line(self, parent: Element, *, text: str, audio_url: str | None) -> None:
        """Append a Play element when audio is available, else a Speak element."""
        if audio_url:
            play = SubElement(parent, "Play")
            play.text = audio_url
            return
        speak = SubElement(parent, "Speak")
        speak.set("voice", self._settings.fallback_voice)
        speak.set("language", self._settings.speech_language)
        speak.text = text

    def generate_get_input_xml(
        self,
        action_url: str,
        *,
        text: str,
        audio_url: str | None = None,
        no_input_url: str | None = None,
    ) -> str:
        """Generate Plivo XML that speaks a line and gathers the reply as speech.

        Args:
            action_url: Webhook receiving the ``Speech`` result
            text: Line to speak when no synthesized audio is available
            audio_url: URL of synthesized audio for the same line
            no_input_url: Where to redirect if the caller says nothing

        Returns:
            XML string for Plivo response
        """
        response = Element("Response")

        get_input = SubElement(response, "GetInput")
        get_input.set("action", action_url)
        get_input.set("method", "POST")
        get_input.set("inputType", "speech")
        get_input.set("language", self._settings.speech_language)
        get_input.set("speechEndTimeout", SPEECH_END_TIMEOUT)
        get_input.set("executionTimeout", str(GATHER_EXECUTION_TIMEOUT))
        get_input.set("redirect", "true")
        self._add_line(get_input, text=text, audio_url=audio_url)

        if no_input_url:
            redirect = SubElement(response, "Redirect")
            redirect.set("method", "POST")
            redirect.text = no_input_url

        return _to_xml(response)

    def generate_hangup_xml(self, text: str = "", *, audio_url: str | None = None) -> str:
        """Generate Plivo XML that optionally speaks a closing line, then hangs up."""
        response = Element("Response")

        if text or audio_url:
            self._add_line(response, text=text, audio_url=audio_url)

        SubElement(response, "Hangup")
        return _to_xml(response)

    async def make_call(
        self,
        to_number: str,
        answer_url: str,
        *,
        hangup_url: str | None = None,
        fallback_url: str | None = None,
    ) -> PlivoCallInfo:
        """Initiate an outbound call from the configured Plivo number.

        Raises:
            TelephonyError: If credentials are missing or Plivo rejects the call
        """
        from_number = self._settings.plivo_from_number or ""
        params: dict[str, Any] = {
            "from_": from_number,
            "to_": to_number,
            "answer_url": answer_url,
            "answer_method": "POST",
        }
        if hangup_url:
            params["hangup_url"] = hangup_url
            params["hangup_method"] = "POST"
        if fallback_url:
            params["fallback_url"] = fallback_url

        client = self.client
        try:
            # Run sync SDK call in thread pool
            response = await asyncio.to_thread(lambda: client.calls.create(**params))
        except Exception as e:
            logger.error(f"Plivo call to {mask_phone(to_number)} failed: {e}")
            raise TelephonyError(f"Failed to place call: {e}") from e

        logger.info(f"Placed call to {mask_phone(to_number)} (request {response.request_uuid})")
        return PlivoCallInfo(
            call_uuid=response.request_uuid,
            from_number=from_number,
            to_number=to_number,
            direction="outbound",
            status="initiated",
        )
