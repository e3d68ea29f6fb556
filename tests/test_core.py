"""Tests for the mnemo core orchestrator."""

import asyncio
import json

import pytest
from pathlib import Path

from mnemo.config import EmbeddingConfig, MnemoConfig, ProviderConfig
from mnemo.connectors.base import IncomingMessage
from mnemo.core import Mnemo
from mnemo.memory.embedding import EmbeddingServiceError
from mnemo.streaming.filter import END_MARKER, START_MARKER


class MockProvider:
    def __init__(self, tokens: list[str] | None = None, delay: float = 0.0):
        self.tokens = tokens if tokens is not None else ["Mock response"]
        self.delay = delay
        self.calls: list[list] = []
        self.active = 0
        self.max_active = 0
        self.closed = False

    @property
    def name(self) -> str:
        return "mock"

    async def stream(self, messages, callbacks=None) -> str:
        self.calls.append(list(messages))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            for token in self.tokens:
                if self.delay:
                    await asyncio.sleep(self.delay)
                if callbacks and callbacks.on_token:
                    callbacks.on_token(token)
        finally:
            self.active -= 1
        return "".join(self.tokens)

    async def close(self) -> None:
        self.closed = True


class MockEmbedder:
    def __init__(self, fail: bool = False):
        self.calls: list[str] = []
        self.fail = fail
        self.closed = False

    async def get_embedding(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingServiceError("embedding service down")
        return [1.0, float(len(text) % 7), 0.5]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def config(tmp_path: Path) -> MnemoConfig:
    return MnemoConfig(
        provider=ProviderConfig(name="mock"),
        embedding=EmbeddingConfig(chunk_size=200, top_k=3),
        memory_dir=tmp_path / "memory",
        db_path=tmp_path / "index.db",
    )


def message(text: str = "Hello", chat_id: str = "test-1") -> IncomingMessage:
    return IncomingMessage(text=text, chat_id=chat_id, sender="user", connector_name="cli")


def marker_reply(text: str, payload: dict) -> list[str]:
    return [text, START_MARKER, json.dumps(payload), END_MARKER]


class TestMnemoCore:
    @pytest.mark.asyncio
    async def test_handle_message(self, config: MnemoConfig):
        provider = MockProvider(["Hi", " there"])
        mnemo = Mnemo(config, provider, embedder=MockEmbedder())
        tokens: list[str] = []

        result = await mnemo.handle_message(message(), on_token=tokens.append)

        assert result.visible_text == "Hi there"
        assert tokens == ["Hi", " there"]
        assert result.mutations_applied == []
        await mnemo.close()

    @pytest.mark.asyncio
    async def test_prompt_carries_user_file_and_message(self, config: MnemoConfig):
        provider = MockProvider()
        mnemo = Mnemo(config, provider, embedder=MockEmbedder())
        mnemo.store.path_for("user").write_text(
            "---\nid: user\ntype: person\n---\n\nPrefers uv over pip\n", encoding="utf-8"
        )

        await mnemo.handle_message(message("What tooling do I like?"))

        system, user = provider.calls[0]
        assert system.role == "system"
        assert user.content.startswith("MEMORY_CONTEXT:")
        assert "[FILE: user.md]" in user.content
        assert "Prefers uv over pip" in user.content
        assert user.content.endswith("USER_MESSAGE:\nWhat tooling do I like?")
        await mnemo.close()

    @pytest.mark.asyncio
    async def test_mutation_applied_and_reindexed(self, config: MnemoConfig):
        payload = {"action": "create", "file": "trip", "changes": {"append": "Hiking in Norway"}}
        provider = MockProvider(marker_reply("Noted!", payload))
        embedder = MockEmbedder()
        mnemo = Mnemo(config, provider, embedder=embedder)

        result = await mnemo.handle_message(message("I went hiking"))

        assert result.visible_text == "Noted!"
        assert [m.file for m in result.mutations_applied] == ["trip"]
        assert mnemo.store.path_for("trip").exists()
        assert mnemo.index.table.files() == {"trip.md"}
        assert any("Hiking in Norway" in call for call in embedder.calls)
        await mnemo.close()

    @pytest.mark.asyncio
    async def test_on_mutation_callback(self, config: MnemoConfig):
        payload = {"action": "update", "file": "user", "changes": {"metadata": {"mood": "calm"}}}
        seen: list[str] = []

        async def notify(mutation) -> None:
            seen.append(mutation.file)

        mnemo = Mnemo(
            config, MockProvider(marker_reply("ok", payload)), embedder=MockEmbedder(), on_mutation=notify
        )
        await mnemo.handle_message(message())
        assert seen == ["user"]
        await mnemo.close()

    @pytest.mark.asyncio
    async def test_retrieval_failure_propagates(self, config: MnemoConfig):
        provider = MockProvider()
        mnemo = Mnemo(config, provider, embedder=MockEmbedder(fail=True))
        mnemo.store.path_for("user").write_text("---\nid: user\n---\nx\n", encoding="utf-8")

        with pytest.raises(EmbeddingServiceError):
            await mnemo.handle_message(message())
        assert provider.calls == []
        await mnemo.close()

    @pytest.mark.asyncio
    async def test_lane_serialization(self, config: MnemoConfig):
        """Messages for the same chat_id never overlap."""
        provider = MockProvider(["a", "b", "c"], delay=0.01)
        mnemo = Mnemo(config, provider, embedder=MockEmbedder())

        await asyncio.gather(
            mnemo.handle_message(message("First")),
            mnemo.handle_message(message("Second")),
        )
        assert provider.max_active == 1
        assert len(provider.calls) == 2
        await mnemo.close()

    @pytest.mark.asyncio
    async def test_separate_lanes_run_concurrently(self, config: MnemoConfig):
        provider = MockProvider(["a", "b", "c"], delay=0.01)
        mnemo = Mnemo(config, provider, embedder=MockEmbedder())

        await asyncio.gather(
            mnemo.handle_message(message("First", chat_id="a")),
            mnemo.handle_message(message("Second", chat_id="b")),
        )
        assert provider.max_active == 2
        await mnemo.close()

    @pytest.mark.asyncio
    async def test_close_releases_resources(self, config: MnemoConfig):
        provider = MockProvider()
        embedder = MockEmbedder()
        mnemo = Mnemo(config, provider, embedder=embedder)
        await mnemo.close()
        assert provider.closed is True
        assert embedder.closed is True
