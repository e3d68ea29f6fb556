"""mnemo orchestrator — one memory-augmented turn from message to applied mutations.

Responsibilities:
1. Receive messages from any connector (IncomingMessage)
2. Lane Queue — serialize per chat_id so turns never interleave their writes
3. Retrieval — refresh the index, search, assemble MEMORY_CONTEXT
4. Generation — stream through the injected provider with mutation capture
5. Feedback — re-index after the reply changed memory files
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from mnemo.config import MnemoConfig
from mnemo.context import build_context, format_context_block
from mnemo.memory.embedding import EmbeddingClient, EmbeddingServiceError
from mnemo.memory.index import MemoryIndex, VectorTable
from mnemo.memory.store import DocumentStore
from mnemo.prompt import build_messages
from mnemo.streaming.capture import StreamingResult, stream_with_mutation_capture

if TYPE_CHECKING:
    from collections.abc import Callable

    from mnemo.connectors.base import Connector, IncomingMessage
    from mnemo.memory.index import Embedder
    from mnemo.providers.base import GenerativeProvider
    from mnemo.streaming.capture import MutationCallback

logger = logging.getLogger(__name__)


class Mnemo:
    """Owns the document store, embedding client and vector index for one memory dir.

    Build once at startup, hand to connectors, ``close()`` on shutdown.
    """

    def __init__(
        self,
        config: MnemoConfig,
        provider: GenerativeProvider,
        *,
        embedder: Embedder | None = None,
        on_mutation: MutationCallback | None = None,
    ) -> None:
        self.config = config
        self.provider = provider
        self.store = DocumentStore(config.memory_dir)
        self.embedder = embedder or EmbeddingClient(
            config.embedding.url, config.embedding.model, timeout=config.embedding.timeout
        )
        self.index = MemoryIndex(
            self.store,
            VectorTable(config.db_path),
            self.embedder,
            chunk_size=config.embedding.chunk_size,
            top_k=config.embedding.top_k,
        )
        self._on_mutation = on_mutation
        self._connectors: list[Connector] = []
        self._lane_locks: dict[str, asyncio.Lock] = {}

    # ── Connector management ─────────────────────────────────

    def add_connector(self, connector: Connector) -> None:
        self._connectors.append(connector)
        logger.info("Registered connector: %s", connector.name)

    # ── Lane Queue (per-chat serialization) ──────────────────

    def _get_lane_lock(self, chat_id: str) -> asyncio.Lock:
        if chat_id not in self._lane_locks:
            self._lane_locks[chat_id] = asyncio.Lock()
        return self._lane_locks[chat_id]

    # ── Message handling (the core loop) ─────────────────────

    async def handle_message(
        self,
        msg: IncomingMessage,
        *,
        on_token: Callable[[str], None] | None = None,
        on_replace: Callable[[str], None] | None = None,
    ) -> StreamingResult:
        """Process an incoming message, the main entry point for all connectors."""
        lock = self._get_lane_lock(msg.chat_id)
        async with lock:
            return await self._process(msg, on_token=on_token, on_replace=on_replace)

    async def _process(
        self,
        msg: IncomingMessage,
        *,
        on_token: Callable[[str], None] | None,
        on_replace: Callable[[str], None] | None,
    ) -> StreamingResult:
        # 1. Bring the index up to date, then retrieve
        await self.index.refresh()
        results = await self.index.search(msg.text)

        # 2. Assemble context and prompt
        entries = build_context(results, self.store, self.config.embedding.top_k)
        messages = build_messages(msg.text, format_context_block(entries))

        # 3. Stream with mutation capture
        result = await stream_with_mutation_capture(
            self.provider,
            messages,
            self.store,
            on_token=on_token,
            on_replace=on_replace,
            on_mutation=self._on_mutation,
        )

        # 4. Memory changed: re-index now, a failure is retried next turn
        if result.mutations_applied:
            try:
                await self.index.refresh()
            except EmbeddingServiceError as e:
                logger.warning("Re-index after mutations failed, will retry next turn: %s", e)

        return result

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Start all connectors (each listens for messages)."""
        tasks = [connector.start(self.handle_message) for connector in self._connectors]
        if tasks:
            await asyncio.gather(*tasks)

    async def stop(self) -> None:
        """Stop connectors and release the provider, HTTP client and database."""
        for connector in self._connectors:
            await connector.stop()
        await self.close()

    async def close(self) -> None:
        close_embedder = getattr(self.embedder, "close", None)
        if close_embedder is not None:
            await close_embedder()
        await self.provider.close()
        self.index.close()
