"""Ollama chat provider: NDJSON streaming over httpx."""

from __future__ import annotations

import json
import logging

import httpx

from mnemo.providers.base import Message, StreamCallbacks

logger = logging.getLogger(__name__)


class OllamaProvider:
    """Streams ``POST /api/chat`` replies from a local Ollama server."""

    def __init__(
        self,
        model: str = "llama3.1",
        *,
        url: str = "http://localhost:11434/api/chat",
        timeout: float = 120,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.model = model
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def name(self) -> str:
        return f"ollama ({self.model})"

    async def stream(
        self, messages: list[Message], callbacks: StreamCallbacks | None = None
    ) -> str:
        callbacks = callbacks or StreamCallbacks()
        payload = {
            "model": self.model,
            "stream": True,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }

        parts: list[str] = []
        try:
            async with self._client.stream("POST", self.url, json=payload) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    data = json.loads(line)
                    if data.get("error"):
                        raise RuntimeError(f"Ollama error: {data['error']}")
                    text = (data.get("message") or {}).get("content", "")
                    if text:
                        parts.append(text)
                        if callbacks.on_token:
                            callbacks.on_token(text)
                    if data.get("done"):
                        break
        except (httpx.HTTPError, ValueError, RuntimeError) as e:
            logger.error("Ollama stream error: %s", e)
            if callbacks.on_error:
                callbacks.on_error(e)
            raise

        return "".join(parts)

    async def close(self) -> None:
        await self._client.aclose()
