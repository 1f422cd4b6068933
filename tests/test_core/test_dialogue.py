"""Tests for the dialogue generator and reply cleanup."""

from __future__ import annotations

import pytest

from src.core.dialogue import DialogueGenerator, normalize_response_text, strip_role_labels
from src.core.session import CallSession, OperationDescriptor
from src.core.topics import Topic
from src.prompts.verification import FALLBACK_FOLLOW_UP
from src.services.llm.protocol import Role


@pytest.fixture
def session() -> CallSession:
    session = CallSession(
        session_id="call-1",
        descriptor=OperationDescriptor(name="Coastal Sweep Alpha", location="Half Moon Bay"),
    )
    session.record_agent("Hello! Can you tell me about the site?")
    session.record_caller("yeah the beach is open to the public")
    session.add_topics({Topic.ACCESS})
    return session


class TestStripRoleLabels:
    """Speaker labels never reach the caller."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Agent: When would suit you?", "When would suit you?"),
            ("OceanGuard: Thanks!", "Thanks!"),
            ("assistant:   Great.", "Great."),
            ('Agent: OceanGuard: "Any permits needed?"', "Any permits needed?"),
            ("No label here.", "No label here."),
        ],
    )
    def test_strip(self, raw: str, expected: str) -> None:
        assert strip_role_labels(raw) == expected


class TestNormalizeResponseText:
    """Voice-friendly cleanup of model replies."""

    def test_limits_sentences(self) -> None:
        text = "Thanks for that. What about permits? And parking? And safety?"
        assert normalize_response_text(text) == "Thanks for that. What about permits?"

    def test_drops_repeated_sentences(self) -> None:
        text = "Great. Great. When could the crew come?"
        assert normalize_response_text(text) == "Great. When could the crew come?"

    def test_collapses_whitespace(self) -> None:
        assert normalize_response_text("  When\n\nworks   best? ") == "When works best?"

    def test_adds_terminal_punctuation(self) -> None:
        assert normalize_response_text("Agent: Is the lot open on weekends") == (
            "Is the lot open on weekends?"
        )

    def test_caps_length(self) -> None:
        result = normalize_response_text("word " * 200)
        assert len(result) <= 321

    def test_empty(self) -> None:
        assert normalize_response_text("   ") == ""
        assert normalize_response_text("Agent:") == ""


class TestDialogueGenerator:
    """Provider fallback order for the next agent line."""

    @pytest.mark.asyncio
    async def test_uses_chat_provider(
        self, session, chat_factory, completion_provider
    ) -> None:
        chat = chat_factory(replies=["Agent: Good to hear. Which days work best?"])
        generator = DialogueGenerator(chat, completion_provider, timeout_seconds=1.0)

        line = await generator.next_utterance(session)

        assert line == "Good to hear. Which days work best?"
        assert completion_provider.prompts == []

    @pytest.mark.asyncio
    async def test_system_prompt_and_history(
        self, session, chat_provider, completion_provider
    ) -> None:
        generator = DialogueGenerator(chat_provider, completion_provider, timeout_seconds=1.0)

        await generator.next_utterance(session)

        messages = chat_provider.calls[0]
        assert messages[0].role == Role.SYSTEM
        assert "Coastal Sweep Alpha" in messages[0].content
        # Access is covered, so the next suggested topic is permits
        assert "Ask about permits next" in messages[0].content
        assert [m.role for m in messages[1:]] == [Role.ASSISTANT, Role.USER]

    @pytest.mark.asyncio
    async def test_falls_back_to_completion(
        self, session, failing_chat, completion_factory
    ) -> None:
        completion = completion_factory(text=" Which days would suit the crew?  ")
        generator = DialogueGenerator(failing_chat, completion, timeout_seconds=1.0)

        line = await generator.next_utterance(session)

        assert line == "Which days would suit the crew?"
        prompt = completion.prompts[0]
        assert "Recipient: yeah the beach is open to the public" in prompt
        assert prompt.endswith("Agent:")

    @pytest.mark.asyncio
    async def test_empty_chat_reply_falls_through(
        self, session, chat_factory, completion_provider
    ) -> None:
        chat = chat_factory(replies=["Agent:   "])
        generator = DialogueGenerator(chat, completion_provider, timeout_seconds=1.0)

        line = await generator.next_utterance(session)

        assert line == "Which days would suit the crew?"

    @pytest.mark.asyncio
    async def test_static_line_when_everything_fails(
        self, session, failing_chat, failing_completion
    ) -> None:
        generator = DialogueGenerator(failing_chat, failing_completion, timeout_seconds=1.0)

        line = await generator.next_utterance(session)

        assert line == FALLBACK_FOLLOW_UP

    @pytest.mark.asyncio
    async def test_slow_chat_times_out(self, session, chat_factory, completion_provider) -> None:
        chat = chat_factory(replies=["Too late."], delay=0.5)
        generator = DialogueGenerator(chat, completion_provider, timeout_seconds=0.05)

        line = await generator.next_utterance(session)

        assert line == "Which days would suit the crew?"
