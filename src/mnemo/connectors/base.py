"""Connector protocol and shared types."""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mnemo.streaming.capture import StreamingResult


@dataclass
class IncomingMessage:
    """A message received from any connector."""

    text: str
    chat_id: str
    sender: str = ""
    connector_name: str = ""
    metadata: dict = field(default_factory=dict)


# Callback type: core.Mnemo.handle_message (accepts on_token / on_replace keywords)
MessageHandler = Callable[..., Awaitable["StreamingResult"]]


@runtime_checkable
class Connector(Protocol):
    """Protocol that all input connectors must implement."""

    @property
    def name(self) -> str: ...

    async def start(self, handler: MessageHandler) -> None:
        """Start listening for messages. Call handler for each incoming message."""
        ...

    async def stop(self) -> None:
        """Gracefully stop the connector."""
        ...
