"""Prompt templates and fixed call lines."""

from src.prompts.verification import (
    FALLBACK_FOLLOW_UP,
    OUTCOME_SUMMARIES,
    build_accepted_closing,
    build_classifier_prompt,
    build_declined_closing,
    build_forced_closing,
    build_greeting,
    build_result_summary,
    build_system_prompt,
)

__all__ = [
    "FALLBACK_FOLLOW_UP",
    "OUTCOME_SUMMARIES",
    "build_greeting",
    "build_system_prompt",
    "build_classifier_prompt",
    "build_accepted_closing",
    "build_declined_closing",
    "build_forced_closing",
    "build_result_summary",
]
