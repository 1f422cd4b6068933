"""Core call protocol components.

This module provides the orchestration for verification calls:
- CallProtocolDriver: per-call state machine from greeting to finalization
- SessionStore: in-memory registry of live calls
- OutcomeClassifier / DialogueGenerator: decide and phrase each turn
- EventBus: live transcript fan-out
"""

from src.core.classifier import Classification, OutcomeClassifier, Verdict
from src.core.dialogue import DialogueGenerator
from src.core.events import EventBus, EventType, TranscriptEvent
from src.core.factory import build_call_driver
from src.core.protocol_driver import CallProtocolDriver, SessionStart, TurnResult
from src.core.records import CallRecord, CallRecordStore
from src.core.session import (
    CallSession,
    OperationDescriptor,
    Outcome,
    SessionFinishedError,
    Speaker,
    TranscriptEntry,
)
from src.core.session_store import SessionExistsError, SessionNotFoundError, SessionStore
from src.core.topics import Topic, detect_topics

__all__ = [
    # Driver
    "CallProtocolDriver",
    "SessionStart",
    "TurnResult",
    "build_call_driver",
    # Session state
    "CallSession",
    "OperationDescriptor",
    "Outcome",
    "Speaker",
    "TranscriptEntry",
    "SessionStore",
    "SessionNotFoundError",
    "SessionExistsError",
    "SessionFinishedError",
    # Decisions
    "OutcomeClassifier",
    "Classification",
    "Verdict",
    "DialogueGenerator",
    "Topic",
    "detect_topics",
    # Events and records
    "EventBus",
    "EventType",
    "TranscriptEvent",
    "CallRecord",
    "CallRecordStore",
]
