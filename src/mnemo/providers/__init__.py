"""Generative providers, constructed once from configuration and injected."""

from __future__ import annotations

from mnemo.config import ProviderConfig
from mnemo.providers.base import GenerativeProvider


def build_provider(config: ProviderConfig) -> GenerativeProvider:
    if config.name == "anthropic_api":
        from mnemo.providers.anthropic_api import AnthropicProvider

        kwargs = {"model": config.model} if config.model else {}
        return AnthropicProvider(max_tokens=config.max_tokens, timeout=config.timeout, **kwargs)
    if config.name == "ollama":
        from mnemo.providers.ollama import OllamaProvider

        kwargs = {"model": config.model} if config.model else {}
        return OllamaProvider(url=config.base_url, timeout=config.timeout, **kwargs)
    raise ValueError(f"Unknown provider: {config.name}")
