"""Retrieval context: load ranked memory files and format them for the prompt."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mnemo.memory.index import SearchResult
    from mnemo.memory.store import DocumentStore

logger = logging.getLogger(__name__)

USER_FILE = "user.md"


@dataclass
class ContextEntry:
    filename: str
    score: float
    content: str


def build_context(
    results: list[SearchResult], store: DocumentStore, max_results: int = 6
) -> list[ContextEntry]:
    """user.md first (score 1.0) when present, then ranked files up to ``max_results``."""
    entries: list[ContextEntry] = []

    user = store.read_text(USER_FILE)
    if user is not None:
        entries.append(ContextEntry(filename=USER_FILE, score=1.0, content=user.strip()))

    for result in results:
        if len(entries) >= max_results:
            break
        if result.file == USER_FILE:
            continue
        content = store.read_text(result.file)
        if content is None:
            logger.warning("Search hit %s no longer exists on disk", result.file)
            continue
        entries.append(ContextEntry(filename=result.file, score=result.score, content=content.strip()))

    return entries


def format_context(entries: list[ContextEntry]) -> str:
    if not entries:
        return "No relevant memory found."
    return "\n\n".join(
        f"[FILE: {entry.filename}]\n"
        f"RELEVANCE_SCORE: {entry.score:.4f}\n"
        f"---\n{entry.content}\n---"
        for entry in entries
    )


def format_context_block(entries: list[ContextEntry]) -> str:
    return f"MEMORY_CONTEXT:\n\n{format_context(entries)}"
