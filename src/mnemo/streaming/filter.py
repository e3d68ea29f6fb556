"""Per-token filter that hides the inline mutation protocol from the user.

Two states. In PASSTHROUGH a token is forwarded to the visible sink unless it
contains the start marker, which switches to SUPPRESSED and withholds the
token. In SUPPRESSED every token is withheld; one containing the end marker
switches back to PASSTHROUGH. The end marker is only looked for in tokens after
the one that opened the block. Every token lands in the raw accumulator.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

START_MARKER = "===MEMORY_MUTATION_START==="
END_MARKER = "===MEMORY_MUTATION_END==="


class StreamState(enum.Enum):
    PASSTHROUGH = "passthrough"
    SUPPRESSED = "suppressed"


class MutationStreamFilter:
    """State for one streaming session. Not reusable across backend calls."""

    def __init__(self, sink: Callable[[str], None] | None = None) -> None:
        self.sink = sink
        self.state = StreamState.PASSTHROUGH
        self.token_count = 0
        self._raw: list[str] = []
        self._visible: list[str] = []

    @property
    def raw_text(self) -> str:
        return "".join(self._raw)

    @property
    def visible_text(self) -> str:
        return "".join(self._visible)

    @property
    def unterminated(self) -> bool:
        return self.state is StreamState.SUPPRESSED

    def feed(self, token: str) -> None:
        self._raw.append(token)
        self.token_count += 1

        if self.state is StreamState.PASSTHROUGH:
            if START_MARKER in token:
                self.state = StreamState.SUPPRESSED
                logger.debug("Mutation START at token %d, hiding output", self.token_count)
                return
            if token:
                self._visible.append(token)
                if self.sink:
                    self.sink(token)
            return

        if END_MARKER in token:
            self.state = StreamState.PASSTHROUGH
            logger.debug("Mutation END at token %d, resuming output", self.token_count)
