"""Embedding service client (Ollama-style ``POST {model, prompt}`` endpoint)."""

from __future__ import annotations

import logging

import httpx

from mnemo.memory.vectors import is_number_array

logger = logging.getLogger(__name__)


class EmbeddingServiceError(RuntimeError):
    """The embedding service failed or answered with an unusable body."""


class EmbeddingClient:
    """Turns text into a vector with one HTTP call per text."""

    def __init__(
        self,
        url: str,
        model: str,
        *,
        timeout: float = 60,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.model = model
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def get_embedding(self, text: str) -> list[float]:
        try:
            response = await self._client.post(
                self.url, json={"model": self.model, "prompt": text}
            )
        except httpx.HTTPError as e:
            raise EmbeddingServiceError(f"Embedding request failed: {e}") from e

        if not response.is_success:
            raise EmbeddingServiceError(
                f"Embedding service error: {response.status_code} {response.reason_phrase}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise EmbeddingServiceError("Embedding service returned a non-JSON body") from e

        embedding = data.get("embedding") if isinstance(data, dict) else None
        if not is_number_array(embedding):
            raise EmbeddingServiceError("Invalid response format from embedding model")

        logger.debug("Embedded %d chars -> %d dims", len(text), len(embedding))
        return [float(v) for v in embedding]

    async def close(self) -> None:
        await self._client.aclose()
