"""Generative provider protocol and shared types."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, Protocol, runtime_checkable

Role = Literal["system", "user", "assistant"]

# Callback for streamed text tokens
TokenCallback = Callable[[str], None]
ErrorCallback = Callable[[Exception], None]


@dataclass
class Message:
    """One chat message sent to a provider."""

    role: Role
    content: str


@dataclass
class StreamCallbacks:
    on_token: TokenCallback | None = None
    on_error: ErrorCallback | None = None


def split_system(messages: list[Message]) -> tuple[str, list[Message]]:
    """Join system messages into one instruction, keep the rest in order."""
    system = "\n".join(m.content for m in messages if m.role == "system")
    return system, [m for m in messages if m.role != "system"]


@runtime_checkable
class GenerativeProvider(Protocol):
    """Protocol that all generative backends must implement."""

    @property
    def name(self) -> str: ...

    async def stream(
        self, messages: list[Message], callbacks: StreamCallbacks | None = None
    ) -> str:
        """Stream a reply token by token and return the full text."""
        ...

    async def close(self) -> None: ...
