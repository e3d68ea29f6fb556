"""Anthropic API provider: streamed messages, no tool use."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from mnemo.providers.base import Message, StreamCallbacks, split_system

logger = logging.getLogger(__name__)


@dataclass
class AnthropicProvider:
    """Direct Anthropic API via the `anthropic` SDK."""

    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 4096
    timeout: int = 120
    client: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.client is not None:
            return
        try:
            import anthropic
        except ImportError:
            raise ImportError("anthropic package required. Install with: pip install anthropic")
        self.client = anthropic.AsyncAnthropic(timeout=self.timeout)

    @property
    def name(self) -> str:
        return f"anthropic_api ({self.model})"

    async def stream(
        self, messages: list[Message], callbacks: StreamCallbacks | None = None
    ) -> str:
        callbacks = callbacks or StreamCallbacks()
        system, conversation = split_system(messages)

        kwargs: dict = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": m.role, "content": m.content} for m in conversation],
        }
        if system:
            kwargs["system"] = system

        parts: list[str] = []
        try:
            async with self.client.messages.stream(**kwargs) as stream:
                async for text in stream.text_stream:
                    if not text:
                        continue
                    parts.append(text)
                    if callbacks.on_token:
                        callbacks.on_token(text)
        except Exception as e:
            logger.error("Anthropic API error: %s", e)
            if callbacks.on_error:
                callbacks.on_error(e)
            raise

        full_text = "".join(parts)
        logger.debug("Anthropic stream complete (%d chunks, %d chars)", len(parts), len(full_text))
        return full_text

    async def close(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()
