"""Drive one generative call while capturing and applying memory mutations."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from mnemo.memory.mutations import Mutation, ReminderMutation
from mnemo.providers.base import Message, StreamCallbacks
from mnemo.streaming.filter import MutationStreamFilter
from mnemo.streaming.parser import extract_marker_mutations, parse_envelope

if TYPE_CHECKING:
    from mnemo.memory.store import DocumentStore
    from mnemo.providers.base import GenerativeProvider

logger = logging.getLogger(__name__)

MutationCallback = Callable[[Mutation], Awaitable[None]]


@dataclass
class StreamingResult:
    visible_text: str
    mutations_applied: list[Mutation] = field(default_factory=list)
    reminder_mutations: list[ReminderMutation] = field(default_factory=list)
    mode: Literal["envelope", "markers"] = "markers"


async def stream_with_mutation_capture(
    provider: GenerativeProvider,
    messages: list[Message],
    store: DocumentStore,
    *,
    on_token: Callable[[str], None] | None = None,
    on_replace: Callable[[str], None] | None = None,
    on_mutation: MutationCallback | None = None,
) -> StreamingResult:
    """Stream a reply, hide the control protocol, then apply what it carried.

    ``on_token`` receives passthrough text as it arrives. When the reply turns
    out to be a structured envelope, its ``response`` supersedes that text and
    is handed to ``on_replace``.
    """
    stream_filter = MutationStreamFilter(sink=on_token)

    logger.info("Starting stream capture (provider: %s)", provider.name)
    await provider.stream(messages, StreamCallbacks(on_token=stream_filter.feed))

    raw = stream_filter.raw_text
    logger.info("Stream ended after %d tokens, %d chars", stream_filter.token_count, len(raw))
    if stream_filter.unterminated:
        logger.warning("Stream ended but memory mutation block was never closed")

    envelope = parse_envelope(raw)
    if envelope is not None:
        result = StreamingResult(
            visible_text=envelope.response,
            reminder_mutations=envelope.reminders,
            mode="envelope",
        )
        mutations = envelope.mutations
        if on_replace:
            on_replace(envelope.response)
    else:
        result = StreamingResult(visible_text=stream_filter.visible_text, mode="markers")
        mutations = extract_marker_mutations(raw)

    for mutation in mutations:
        try:
            applied = store.apply(mutation)
        except (OSError, ValueError) as e:
            logger.error("Failed to apply memory mutation to %s: %s", mutation.file, e)
            continue
        if applied is None:
            continue
        result.mutations_applied.append(applied)

        if on_mutation:
            try:
                await on_mutation(applied)
            except Exception as e:
                logger.error("Error in mutation callback for %s: %s", applied.file, e)

    logger.info(
        "Processing complete (%s mode): %d mutations applied, %d reminders",
        result.mode,
        len(result.mutations_applied),
        len(result.reminder_mutations),
    )
    return result
