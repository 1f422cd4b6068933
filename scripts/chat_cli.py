#!/usr/bin/env python3
"""Interactive CLI to rehearse a verification call.

Drives the real protocol driver from the terminal without Plivo: type the
site contact's replies and watch topics, verdicts and the final record.
Providers come from settings; any missing key falls back like a live call.

Usage:
    python scripts/chat_cli.py --operation "Coastal Sweep Alpha" --location "Half Moon Bay"
"""

import argparse
import asyncio

from src.config import get_settings
from src.core.factory import build_call_driver
from src.core.protocol_driver import CallProtocolDriver
from src.core.records import CallRecord
from src.core.session import OperationDescriptor
from src.logging_config import setup_logging
from src.services.tts.exceptions import TTSSynthesisError


class PrintingRecordStore:
    """Shows the terminal record instead of writing it to the database."""

    async def update_call_record(self, session_id: str, record: CallRecord) -> None:
        print("\n" + "=" * 60)
        print(f"📋 Record for {session_id}")
        print(f"   Result:   {record.result}")
        print(f"   Duration: {record.duration_seconds}s, turns: {record.turn_count}")
        print("=" * 60)


class SilentSynthesizer:
    """Skips speech synthesis so rehearsals don't spend TTS credits."""

    async def synthesize(self, text: str) -> bytes:
        raise TTSSynthesisError("synthesis disabled for CLI rehearsal")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rehearse a cleanup-site verification call")
    parser.add_argument("--operation", default="Coastal Sweep Alpha")
    parser.add_argument("--location", default="Half Moon Bay")
    parser.add_argument("--priority", default="medium")
    parser.add_argument("--notes", default="")
    parser.add_argument("--tts", action="store_true", help="Synthesize audio with ElevenLabs")
    parser.add_argument("--log-level", default="WARNING")
    return parser.parse_args()


async def main(args: argparse.Namespace) -> None:
    setup_logging(level=args.log_level, enable_file=False)
    settings = get_settings()
    driver = build_call_driver(
        settings,
        record_store=PrintingRecordStore(),
        synthesizer=None if args.tts else SilentSynthesizer(),
    )
    descriptor = OperationDescriptor(
        name=args.operation,
        location=args.location,
        priority=args.priority,
        notes=args.notes,
    )
    try:
        await converse(driver, descriptor, settings.agent_name)
    finally:
        await driver.close()


async def converse(
    driver: CallProtocolDriver, descriptor: OperationDescriptor, agent_name: str
) -> None:
    print("=" * 60)
    print(f"📞 {agent_name} verification call - {descriptor.name}")
    print("=" * 60)
    print("\nReply as the site contact. Commands: /state, /hangup, /quit\n")

    start = await driver.start_session(descriptor)
    print(f"🤖 Agent: {start.greeting_text}\n")

    while True:
        user_input = input("👤 You: ").strip()
        if not user_input:
            continue

        if user_input.lower() == "/quit":
            await driver.abort_session(start.session_id)
            print("\n👋 Goodbye!")
            return

        if user_input.lower() == "/hangup":
            await driver.abort_session(start.session_id)
            return

        if user_input.lower() == "/state":
            session = driver.store.get(start.session_id)
            if session:
                topics = ", ".join(t.value for t in session.covered_topics()) or "none"
                print(f"\n  📊 Turn {session.turn_count}, topics: {topics}\n")
            continue

        turn = await driver.process_utterance(start.session_id, user_input)
        print(f"\n🤖 Agent: {turn.response_text}")
        if turn.is_finished:
            print(f"\n✅ Call finished: {turn.outcome.value if turn.outcome else 'unknown'}")
            return
        print()


if __name__ == "__main__":
    asyncio.run(main(parse_args()))
