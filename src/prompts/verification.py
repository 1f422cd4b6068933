"""Prompt templates and fixed lines for cleanup-site verification calls.

The greeting, closing lines and summaries are spoken or stored verbatim.
The system and classifier prompts are sent to the language model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.core.session import OperationDescriptor

# Used when every generator provider fails
FALLBACK_FOLLOW_UP = "That's good to know — could you also tell me about timing?"

# Spoken when a webhook arrives for a call we no longer know about
SESSION_LOST_LINE = (
    "I'm sorry, we've lost track of this call on our side. "
    "Someone from the team will follow up with you. Goodbye."
)
NO_INPUT_LINE = "Sorry, I didn't catch that. Could you say that again?"
NO_INPUT_GOODBYE = "I'm having trouble hearing you, so we'll follow up another time. Goodbye."
SERVICE_ERROR_LINE = "We're sorry, we're having technical difficulties. Please try again later."

TOPIC_QUESTIONS = {
    "access": "whether the site is open and easy to reach",
    "permits": "any permits or permissions the crew would need",
    "timing": "which days or times would work for the crew",
    "conditions": "the current debris and weather conditions",
    "safety": "any hazards the volunteers should know about",
}

OUTCOME_SUMMARIES = {
    "accepted": "Site availability confirmed - cleanup can proceed as planned.",
    "declined": "Site not available or conditions unfavorable for cleanup operation.",
    "inconclusive": (
        "Call completed but availability status unclear - manual follow-up recommended."
    ),
    "no_response": "No meaningful response received - recommend retry or manual contact.",
}

CLASSIFIER_LABELS = ("ACCEPTED", "DECLINED", "CONTINUE")


def _location(descriptor: OperationDescriptor) -> str:
    return descriptor.location or "your area"


def build_greeting(descriptor: OperationDescriptor, agent_name: str = "OceanGuard") -> str:
    return (
        f"Hello! This is {agent_name}'s automated verification system calling about the "
        f"{descriptor.name} cleanup operation in {_location(descriptor)}. "
        "We're reaching out to verify site conditions and availability. "
        "Can you tell me about the current status at the cleanup location?"
    )


def build_system_prompt(
    descriptor: OperationDescriptor,
    uncovered_topics: list[str],
    agent_name: str = "OceanGuard",
) -> str:
    """Build the generator's system prompt, including the next-topic hint."""
    details = [
        f"- Operation name: {descriptor.name}",
        f"- Location: {descriptor.location or 'a monitored coastal area'}",
        f"- Priority: {descriptor.priority}",
    ]
    if descriptor.target_date:
        details.append(f"- Target date: {descriptor.target_date}")
    if descriptor.notes:
        details.append(f"- Notes: {descriptor.notes}")

    if uncovered_topics:
        next_topic = uncovered_topics[0]
        hint = (
            f"Ask about {next_topic} next ({TOPIC_QUESTIONS.get(next_topic, next_topic)}). "
            f"Still not discussed: {', '.join(uncovered_topics)}."
        )
    else:
        hint = "Every topic has come up. Ask them to confirm the site can be used."

    return (
        f"You are a calling agent for {agent_name}, an ocean health monitoring platform. "
        "You are on an outbound phone call to verify the availability and conditions "
        "at a marine cleanup site.\n\n"
        "CONTEXT:\n" + "\n".join(details) + "\n\n"
        "GUIDELINES:\n"
        "- Ask exactly one short question per reply, one or two sentences at most\n"
        "- Be professional, warm, and concise; this is spoken aloud\n"
        "- Acknowledge what they just said before asking the next question\n"
        "- Never prefix your reply with a speaker label\n\n"
        f"NEXT STEP: {hint}"
    )


def build_classifier_prompt(transcript: str, latest_utterance: str) -> str:
    return (
        "You are reviewing a phone call that verifies whether a coastal site can host "
        "a marine cleanup operation.\n\n"
        f"TRANSCRIPT SO FAR:\n{transcript}\n\n"
        f"LATEST REPLY FROM THE RECIPIENT:\n{latest_utterance}\n\n"
        "Decide whether the call can end. A single positive-sounding reply is NOT enough: "
        "access, timing and conditions must be corroborated across the conversation "
        "before the site counts as confirmed. A clear refusal or closure counts as declined.\n\n"
        "Answer with exactly one word:\n"
        "ACCEPTED - the site is confirmed available and suitable\n"
        "DECLINED - the site is unavailable or unsuitable\n"
        "CONTINUE - more information is needed"
    )


def build_accepted_closing(descriptor: OperationDescriptor, topics: list[str]) -> str:
    covered = ", ".join(topics) if topics else "the site"
    return (
        f"Thank you, that's really helpful. I've noted what you told me about {covered}. "
        f"The {descriptor.name} cleanup will proceed as planned, and the details will be "
        "logged in our system. Have a great day!"
    )


def build_declined_closing(descriptor: OperationDescriptor) -> str:
    return (
        f"I understand, thank you for letting us know that {_location(descriptor)} isn't "
        "suitable right now. We'll hold off on the operation, and we'd be glad to reconnect "
        "if things change. Take care!"
    )


def build_forced_closing(descriptor: OperationDescriptor) -> str:
    return (
        f"Thank you so much for your time. I've noted everything about {_location(descriptor)}, "
        "and someone from our team will follow up with you shortly. Goodbye!"
    )


def build_result_summary(outcome: str, topics: list[str]) -> str:
    """Human-readable summary for an outcome, listing covered topics."""
    summary = OUTCOME_SUMMARIES[outcome]
    if topics:
        summary = f"{summary} Topics covered: {', '.join(topics)}."
    return summary
