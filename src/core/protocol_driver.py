"""Call protocol driver: the per-call state machine.

    INITIATED -> IN_PROGRESS* -> ACCEPTED | DECLINED | INCONCLUSIVE -> FINALIZED

Every session that is started is finalized exactly once: by the turn that
concludes it, or by ``abort_session`` when the line drops first. Provider
failures are absorbed by the classifier, generator and audio-cache fallbacks;
the only error surfaced to callers is an unknown or expired session id.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from src.core.classifier import OutcomeClassifier, Verdict
from src.core.dialogue import DialogueGenerator
from src.core.events import EventBus
from src.core.records import CallRecord, CallRecordStore
from src.core.session import (
    EVENT_ROLES,
    CallSession,
    OperationDescriptor,
    Outcome,
    SessionFinishedError,
    Speaker,
    TranscriptEntry,
)
from src.core.session_store import SessionNotFoundError, SessionStore
from src.logging_config import get_logger, truncate_for_log
from src.observability.metrics import TURNS_TOTAL, record_call_metrics
from src.prompts.verification import (
    build_accepted_closing,
    build_declined_closing,
    build_forced_closing,
    build_greeting,
    build_result_summary,
)
from src.services.tts.cache import AudioCache, audio_id

logger: Any = get_logger(__name__)

NO_RESPONSE = "no_response"

PersistFailureHook = Callable[[str, CallRecord], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class SessionStart:
    session_id: str
    greeting_audio_id: str
    greeting_text: str


@dataclass(frozen=True, slots=True)
class TurnResult:
    """What the telephony layer needs to answer one speech callback."""

    response_text: str
    audio_id: str
    is_finished: bool
    outcome: Outcome | None = None


class CallProtocolDriver:
    """Drives sessions from greeting to finalization."""

    def __init__(
        self,
        *,
        store: SessionStore,
        audio_cache: AudioCache,
        classifier: OutcomeClassifier,
        generator: DialogueGenerator,
        events: EventBus,
        record_store: CallRecordStore,
        max_turns: int = 6,
        min_topics: int = 2,
        record_timeout_seconds: float = 5.0,
        agent_name: str = "OceanGuard",
        on_persist_failure: PersistFailureHook | None = None,
        closeables: Sequence[Any] = (),
    ) -> None:
        self.store = store
        self.audio_cache = audio_cache
        self.events = events
        self._classifier = classifier
        self._generator = generator
        self._records = record_store
        self._max_turns = max_turns
        self._min_topics = min_topics
        self._record_timeout = record_timeout_seconds
        self._agent_name = agent_name
        self._on_persist_failure = on_persist_failure
        self._closeables = list(closeables)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start_session(
        self,
        descriptor: OperationDescriptor,
        *,
        session_id: str | None = None,
    ) -> SessionStart:
        """Register a session, synthesize its greeting and announce it.

        Starting an id that is already live returns the existing greeting,
        so a repeated answer webhook does not reset the call.
        """
        session_id = session_id or str(uuid.uuid4())

        async with self.store.lock_for(session_id):
            existing = self.store.get(session_id)
            if existing is not None:
                logger.info(f"Session {session_id} already started, reusing greeting")
                return SessionStart(
                    session_id=session_id,
                    greeting_audio_id=existing.greeting_audio_id or "",
                    greeting_text=existing.transcript[0].text if existing.transcript else "",
                )

            greeting = build_greeting(descriptor, self._agent_name)
            greeting_audio_id = audio_id("greeting", session_id)
            await self.audio_cache.synthesize(greeting_audio_id, greeting, session_id=session_id)

            # Registered only once the greeting exists, so a live session always has one
            session = self.store.create(session_id, descriptor)
            session.greeting_audio_id = greeting_audio_id
            entry = session.record_agent(greeting)

            self.events.status(session_id, "connected")
            self._emit_transcript(session_id, entry)

        logger.info(f"Session {session_id} started for '{descriptor.name}'")
        return SessionStart(
            session_id=session_id,
            greeting_audio_id=greeting_audio_id,
            greeting_text=greeting,
        )

    async def process_utterance(self, session_id: str, text: str) -> TurnResult:
        """Turn one caller utterance into the agent's reply.

        Raises:
            SessionNotFoundError: For an unknown or already-finalized session
            SessionFinishedError: If the session concluded but is not yet evicted
        """
        async with self.store.lock(session_id):
            # A concurrent turn may have finalized the session while we waited
            session = self.store.require(session_id)
            if session.is_terminal:
                raise SessionFinishedError(session_id)

            session.turn_count += 1
            TURNS_TOTAL.inc()
            self._emit_transcript(session_id, session.record_caller(text))
            logger.debug(
                f"Session {session_id} turn {session.turn_count}: '{truncate_for_log(text)}'"
            )

            classification = await self._classifier.classify(session, text)
            session.add_topics(classification.topics_covered)
            topics = [topic.value for topic in session.covered_topics()]

            outcome: Outcome | None = None
            if classification.verdict == Verdict.ACCEPTED:
                outcome = Outcome.ACCEPTED
                response = build_accepted_closing(session.descriptor, topics)
            elif classification.verdict == Verdict.DECLINED:
                outcome = Outcome.DECLINED
                response = build_declined_closing(session.descriptor)
            elif session.turn_count >= self._max_turns:
                outcome = (
                    Outcome.ACCEPTED
                    if len(session.topics_covered) >= self._min_topics
                    else Outcome.INCONCLUSIVE
                )
                response = build_forced_closing(session.descriptor)
                logger.info(
                    f"Session {session_id} hit the {self._max_turns}-turn ceiling, "
                    f"ending as {outcome.value}"
                )
            else:
                response = await self._generator.next_utterance(session)

            self._emit_transcript(session_id, session.record_agent(response))

            turn_audio_id = audio_id("turn", session_id, session.turn_count)
            if outcome is None:
                await self.audio_cache.synthesize(turn_audio_id, response, session_id=session_id)
            else:
                # Finalize evicts the call's audio before playback, so closings go out as text
                session.conclude(outcome)
                await self._finalize(session)

            return TurnResult(
                response_text=response,
                audio_id=turn_audio_id,
                is_finished=outcome is not None,
                outcome=outcome,
            )

    async def finalize(self, session_id: str) -> bool:
        """Finalize a concluded session that is still registered.

        Returns False when the session is already gone.
        """
        try:
            async with self.store.lock(session_id):
                session = self.store.get(session_id)
                if session is None:
                    return False
                if not session.is_terminal:
                    raise ValueError(f"Session {session_id} has no outcome yet")
                await self._finalize(session)
                return True
        except SessionNotFoundError:
            return False

    async def abort_session(self, session_id: str) -> bool:
        """End a live session that never concluded (caller hung up, line dropped).

        Returns True if this call finalized the session.
        """
        try:
            async with self.store.lock(session_id):
                session = self.store.get(session_id)
                if session is None or session.is_terminal:
                    return False
                session.conclude(Outcome.INCONCLUSIVE)
                logger.info(f"Session {session_id} aborted after {session.turn_count} turns")
                await self._finalize(session)
                return True
        except SessionNotFoundError:
            logger.debug(f"Abort for unknown session {session_id} ignored")
            return False

    def live_transcript(self, session_id: str) -> list[dict[str, str]] | None:
        """Transcript of a session still in progress, or None."""
        session = self.store.get(session_id)
        if session is None:
            return None
        return [entry.to_dict() for entry in session.transcript]

    async def close(self) -> None:
        """Release provider clients the driver was built with."""
        for resource in self._closeables:
            try:
                await resource.close()
            except Exception:
                logger.exception(f"Failed to close {type(resource).__name__}")
        self._closeables.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _emit_transcript(self, session_id: str, entry: TranscriptEntry) -> None:
        self.events.transcript(session_id, EVENT_ROLES[entry.speaker], entry.text, entry.timestamp)

    async def _finalize(self, session: CallSession) -> None:
        """Persist, notify, evict. Caller holds the session lock."""
        session_id = session.session_id
        outcome = (session.outcome or Outcome.INCONCLUSIVE).value
        if not any(entry.speaker == Speaker.CALLER for entry in session.transcript):
            outcome = NO_RESPONSE

        topics = [topic.value for topic in session.covered_topics()]
        summary = build_result_summary(outcome, topics)
        duration = session.duration_seconds()
        record = CallRecord(
            status="completed",
            transcript=session.transcript_text(),
            outcome=outcome,
            result=f"{outcome}: {summary}",
            duration_seconds=duration,
            turn_count=session.turn_count,
            topics_covered=topics,
        )

        try:
            await asyncio.wait_for(
                self._records.update_call_record(session_id, record),
                timeout=self._record_timeout,
            )
        except Exception as e:
            reason = "timed out" if isinstance(e, TimeoutError) else str(e)
            logger.error(f"Failed to persist call record for {session_id}: {reason}")
            await self._handle_persist_failure(session_id, record)

        self.events.completed(
            session_id,
            outcome=outcome,
            result=summary,
            transcript=[entry.to_dict() for entry in session.transcript],
            duration=duration,
        )

        self.store.delete(session_id)
        self.audio_cache.evict_session(session_id)
        record_call_metrics(outcome, duration)
        logger.info(
            f"Session {session_id} finalized: {outcome} after {session.turn_count} turns, "
            f"{duration}s"
        )

    async def _handle_persist_failure(self, session_id: str, record: CallRecord) -> None:
        if self._on_persist_failure is None:
            logger.warning(f"No retry configured, call record for {session_id} dropped")
            return
        try:
            await asyncio.wait_for(
                self._on_persist_failure(session_id, record),
                timeout=self._record_timeout,
            )
        except TimeoutError:
            logger.error(f"Queueing retry for {session_id} timed out, call record dropped")
        except Exception:
            logger.exception(f"Could not queue retry for {session_id}, call record dropped")
