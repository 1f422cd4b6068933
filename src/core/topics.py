"""Feasibility topics probed during a verification call.

A topic counts as covered the first time any of its patterns appears in a
caller utterance. Coverage only ever grows for the life of a call.
"""

from __future__ import annotations

import re
from enum import Enum


class Topic(str, Enum):
    """Feasibility dimension the call must probe before concluding.

    Declaration order is the order topics are suggested to the generator.
    """

    ACCESS = "access"
    PERMITS = "permits"
    TIMING = "timing"
    CONDITIONS = "conditions"
    SAFETY = "safety"


_DAYS = r"monday|tuesday|wednesday|thursday|friday|saturday|sunday"

TOPIC_PATTERNS: dict[Topic, re.Pattern[str]] = {
    Topic.ACCESS: re.compile(
        r"\b(open to the public|public|open|access(ible)?|entrance|entry|parking"
        r"|path|trail|gate|reach(able)?)\b",
        re.IGNORECASE,
    ),
    Topic.PERMITS: re.compile(
        r"\b(permits?|permission|approvals?|authori[sz]ation|licen[cs]e|council"
        r"|rangers?|paperwork)\b",
        re.IGNORECASE,
    ),
    Topic.TIMING: re.compile(
        rf"\b(weekends?|weekdays?|mornings?|afternoons?|evenings?|{_DAYS}|tomorrow"
        r"|today|tonight|next week|schedule[sd]?|times?|timing|dates?|hours|days?)\b",
        re.IGNORECASE,
    ),
    Topic.CONDITIONS: re.compile(
        r"\b(debris|trash|plastics?|litter|garbage|waste|washed up|conditions?|weather"
        r"|wind[sy]?|waves?|surf|tides?|algae|pollut\w*|dirty|messy|bad)\b",
        re.IGNORECASE,
    ),
    Topic.SAFETY: re.compile(
        r"\b(safe|safety|hazard\w*|danger\w*|risk\w*|injur\w*|sharp|needles?|glass"
        r"|rip currents?|slippery|gloves|equipment|first aid|lifeguards?)\b",
        re.IGNORECASE,
    ),
}


def detect_topics(utterance: str) -> set[Topic]:
    """Return every topic whose patterns match the utterance."""
    return {topic for topic, pattern in TOPIC_PATTERNS.items() if pattern.search(utterance)}


def ordered(topics: set[Topic]) -> list[Topic]:
    """Sort topics into declaration order."""
    return [topic for topic in Topic if topic in topics]


def uncovered(topics: set[Topic]) -> list[Topic]:
    return [topic for topic in Topic if topic not in topics]
