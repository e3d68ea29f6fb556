"""Local CLI REPL connector for development and testing."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from mnemo.connectors.base import IncomingMessage
from mnemo.memory.embedding import EmbeddingServiceError
from mnemo.memory.index import IndexCorruptionError

if TYPE_CHECKING:
    from mnemo.connectors.base import MessageHandler
    from mnemo.streaming.capture import StreamingResult

logger = logging.getLogger(__name__)

_CLI_CHAT_ID = "cli"
_CLI_SENDER = "user"


class CLIConnector:
    """Interactive REPL connector — reads from stdin, streams replies to stdout."""

    def __init__(self) -> None:
        self._running = False

    @property
    def name(self) -> str:
        return "cli"

    async def start(self, handler: MessageHandler) -> None:
        self._running = True
        loop = asyncio.get_event_loop()

        print("mnemo (type 'exit' or Ctrl+C to quit)")
        print("-" * 40)

        while self._running:
            try:
                line = await loop.run_in_executor(None, self._read_input)
            except (EOFError, KeyboardInterrupt):
                print("\nBye!")
                break

            if line is None or line.strip().lower() in ("exit", "quit"):
                print("Bye!")
                break

            text = line.strip()
            if not text:
                continue

            msg = IncomingMessage(
                text=text,
                chat_id=_CLI_CHAT_ID,
                sender=_CLI_SENDER,
                connector_name=self.name,
            )

            sys.stdout.write("\nmnemo: ")
            sys.stdout.flush()
            try:
                result = await handler(msg, on_token=self._write_token, on_replace=self._replace)
            except (EmbeddingServiceError, IndexCorruptionError) as e:
                print(f"\n[memory error: {e}]")
                continue
            self.report(result)

    def _read_input(self) -> str | None:
        try:
            sys.stdout.write("\nYou: ")
            sys.stdout.flush()
            raw = sys.stdin.buffer.readline()
            if not raw:
                return None
            return raw.decode("utf-8", errors="replace").rstrip("\n")
        except EOFError:
            return None

    @staticmethod
    def _write_token(token: str) -> None:
        sys.stdout.write(token)
        sys.stdout.flush()

    @staticmethod
    def _replace(text: str) -> None:
        # Streamed text was the raw envelope; start the reply over.
        sys.stdout.write(f"\n\nmnemo: {text}")
        sys.stdout.flush()

    async def stop(self) -> None:
        self._running = False

    def report(self, result: StreamingResult) -> None:
        print()
        if result.mutations_applied:
            files = ", ".join(f"{m.action} {m.file}" for m in result.mutations_applied)
            print(f"  [memory: {files}]", file=sys.stderr)
        for reminder in result.reminder_mutations:
            when = reminder.datetime or reminder.rrule
            print(f"  [reminder: {reminder.title} @ {when}]", file=sys.stderr)
