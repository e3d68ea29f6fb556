"""Tests for configuration loading."""

import pytest
from pathlib import Path

from mnemo.config import load_config

_ENV_KEYS = [
    "MNEMO_PROVIDER",
    "MNEMO_MODEL",
    "MNEMO_TIMEOUT",
    "MNEMO_MEMORY_DIR",
    "MNEMO_DB_PATH",
    "MNEMO_EMBEDDING_URL",
    "MNEMO_EMBEDDING_MODEL",
    "MNEMO_CHUNK_SIZE",
    "MNEMO_TOP_K",
    "MNEMO_LOG_LEVEL",
]


@pytest.fixture
def clean_env(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestConfig:
    def test_defaults(self, clean_env):
        config = load_config()
        assert config.provider.name == "anthropic_api"
        assert config.provider.timeout == 120
        assert config.embedding.chunk_size == 800
        assert config.embedding.top_k == 6
        assert config.embedding.model == "qwen3-embedding:0.6b"
        assert config.memory_dir.name == "memory"
        assert config.db_path.name == "memory_index.db"

    def test_env_override(self, clean_env, monkeypatch):
        monkeypatch.setenv("MNEMO_PROVIDER", "ollama")
        monkeypatch.setenv("MNEMO_TOP_K", "3")
        monkeypatch.setenv("MNEMO_MEMORY_DIR", "/tmp/somewhere/notes")

        config = load_config()
        assert config.provider.name == "ollama"
        assert config.embedding.top_k == 3
        assert config.memory_dir == Path("/tmp/somewhere/notes")

    def test_toml_file(self, clean_env, tmp_path: Path):
        toml_path = tmp_path / "mnemo.toml"
        toml_path.write_text("""
memory_dir = "/data/memory"
log_level = "DEBUG"

[provider]
name = "ollama"
model = "llama3.1"
base_url = "http://gpu:11434/api/chat"

[embedding]
chunk_size = 400
url = "http://gpu:11434/api/embeddings"
""")
        config = load_config(toml_path)
        assert config.provider.name == "ollama"
        assert config.provider.model == "llama3.1"
        assert config.provider.base_url == "http://gpu:11434/api/chat"
        assert config.embedding.chunk_size == 400
        assert config.embedding.url == "http://gpu:11434/api/embeddings"
        assert config.memory_dir == Path("/data/memory")
        assert config.log_level == "DEBUG"

    def test_toml_discovered_in_cwd(self, clean_env, tmp_path: Path):
        (tmp_path / "mnemo.toml").write_text('[embedding]\ntop_k = 2\n')
        assert load_config().embedding.top_k == 2

    def test_env_overrides_toml(self, clean_env, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("MNEMO_CHUNK_SIZE", "100")
        toml_path = tmp_path / "mnemo.toml"
        toml_path.write_text("[embedding]\nchunk_size = 400\n")
        config = load_config(toml_path)
        assert config.embedding.chunk_size == 100  # env wins
