"""Configuration loading from environment variables and mnemo.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_HOME = Path.home() / ".mnemo"
_DEFAULT_MEMORY_DIR = _DEFAULT_HOME / "memory"
_DEFAULT_DB_PATH = _DEFAULT_HOME / "memory_index.db"
_CONFIG_FILENAME = "mnemo.toml"


@dataclass
class ProviderConfig:
    """Configuration for the generative backend."""

    name: str = "anthropic_api"
    model: str | None = None
    max_tokens: int = 4096
    base_url: str = "http://localhost:11434/api/chat"
    timeout: int = 120


@dataclass
class EmbeddingConfig:
    """Embedding service and retrieval settings."""

    url: str = "http://localhost:11434/api/embeddings"
    model: str = "qwen3-embedding:0.6b"
    chunk_size: int = 800
    top_k: int = 6
    timeout: int = 60


@dataclass
class MnemoConfig:
    """Top-level mnemo configuration."""

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    memory_dir: Path = _DEFAULT_MEMORY_DIR
    db_path: Path = _DEFAULT_DB_PATH
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> MnemoConfig:
    """Load configuration from environment variables and optional mnemo.toml.

    Priority: environment variables > mnemo.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        for candidate in [Path.cwd() / _CONFIG_FILENAME, _DEFAULT_HOME / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    provider_data = file_data.get("provider", {})
    embedding_data = file_data.get("embedding", {})

    config = MnemoConfig(
        provider=ProviderConfig(
            name=os.getenv("MNEMO_PROVIDER", provider_data.get("name", "anthropic_api")),
            model=os.getenv("MNEMO_MODEL", provider_data.get("model")),
            max_tokens=int(provider_data.get("max_tokens", 4096)),
            base_url=provider_data.get("base_url", "http://localhost:11434/api/chat"),
            timeout=int(os.getenv("MNEMO_TIMEOUT", provider_data.get("timeout", 120))),
        ),
        embedding=EmbeddingConfig(
            url=os.getenv(
                "MNEMO_EMBEDDING_URL",
                embedding_data.get("url", "http://localhost:11434/api/embeddings"),
            ),
            model=os.getenv(
                "MNEMO_EMBEDDING_MODEL", embedding_data.get("model", "qwen3-embedding:0.6b")
            ),
            chunk_size=int(os.getenv("MNEMO_CHUNK_SIZE", embedding_data.get("chunk_size", 800))),
            top_k=int(os.getenv("MNEMO_TOP_K", embedding_data.get("top_k", 6))),
            timeout=int(embedding_data.get("timeout", 60)),
        ),
        memory_dir=Path(
            os.getenv("MNEMO_MEMORY_DIR", file_data.get("memory_dir", str(_DEFAULT_MEMORY_DIR)))
        ).expanduser(),
        db_path=Path(
            os.getenv("MNEMO_DB_PATH", file_data.get("db_path", str(_DEFAULT_DB_PATH)))
        ).expanduser(),
        log_level=os.getenv("MNEMO_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
