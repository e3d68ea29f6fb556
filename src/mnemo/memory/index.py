"""Incremental vector index over the memory directory.

Rows are (file, chunk_index, hash, text, vector) tuples in SQLite. All rows of
a file share the content hash of the file at the time they were computed; a
hash mismatch replaces the whole chunk set of that file, never part of it.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from mnemo.memory.document import Document, build_embedding_text, content_hash
from mnemo.memory.store import DocumentStore
from mnemo.memory.vectors import chunk_text, cosine_similarity, is_number_array, normalize_vector

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS embeddings (
    id TEXT PRIMARY KEY,
    file TEXT NOT NULL,
    chunk_index INTEGER NOT NULL,
    hash TEXT NOT NULL,
    text TEXT NOT NULL,
    vector TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_file ON embeddings(file);
"""


class IndexCorruptionError(RuntimeError):
    """A persisted vector does not decode to a numeric array."""


class Embedder(Protocol):
    async def get_embedding(self, text: str) -> list[float]: ...


@dataclass
class VectorRow:
    file: str
    chunk_index: int
    vector: str


@dataclass
class SearchResult:
    file: str
    score: float

    @property
    def name(self) -> str:
        return Path(self.file).stem


@dataclass
class RefreshReport:
    synced: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)


class VectorTable:
    """SQLite persistence for chunk embeddings."""

    def __init__(self, db_path: Path | str) -> None:
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path))
        self._conn.executescript(_SCHEMA_SQL)

    def get_file_hash(self, file: str) -> str | None:
        row = self._conn.execute(
            "SELECT hash FROM embeddings WHERE file = ? ORDER BY chunk_index LIMIT 1", (file,)
        ).fetchone()
        return row[0] if row else None

    def files(self) -> set[str]:
        return {row[0] for row in self._conn.execute("SELECT DISTINCT file FROM embeddings")}

    def delete_file(self, file: str) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM embeddings WHERE file = ?", (file,))

    def replace_file(
        self, file: str, file_hash: str, chunks: list[str], vectors: list[list[float]]
    ) -> None:
        """Swap a file's whole chunk set in one transaction."""
        with self._conn:
            self._conn.execute("DELETE FROM embeddings WHERE file = ?", (file,))
            self._conn.executemany(
                "INSERT INTO embeddings (id, file, chunk_index, hash, text, vector) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (f"{file}_{i}", file, i, file_hash, chunk, json.dumps(vector))
                    for i, (chunk, vector) in enumerate(zip(chunks, vectors))
                ],
            )

    def all_vectors(self) -> list[VectorRow]:
        return [
            VectorRow(file=file, chunk_index=idx, vector=vector)
            for file, idx, vector in self._conn.execute(
                "SELECT file, chunk_index, vector FROM embeddings"
            )
        ]

    def close(self) -> None:
        self._conn.close()


def rank_documents(
    query_vector: list[float], rows: Iterable[VectorRow], top_k: int
) -> list[SearchResult]:
    """Best chunk score per file, highest first, ties by filename."""
    best: dict[str, float] = {}
    for row in rows:
        try:
            vector = json.loads(row.vector)
        except (TypeError, ValueError) as e:
            raise IndexCorruptionError(
                f"Invalid vector format in {row.file} chunk {row.chunk_index}"
            ) from e
        if not is_number_array(vector):
            raise IndexCorruptionError(
                f"Invalid vector format in {row.file} chunk {row.chunk_index}"
            )

        score = cosine_similarity(query_vector, vector)
        if row.file not in best or score > best[row.file]:
            best[row.file] = score

    ranked = sorted(best.items(), key=lambda item: (-item[1], item[0]))
    return [SearchResult(file=file, score=score) for file, score in ranked[:top_k]]


class MemoryIndex:
    """Keeps the vector table in sync with the document store and searches it."""

    def __init__(
        self,
        store: DocumentStore,
        table: VectorTable,
        embedder: Embedder,
        *,
        chunk_size: int = 800,
        top_k: int = 6,
    ) -> None:
        self.store = store
        self.table = table
        self.embedder = embedder
        self.chunk_size = chunk_size
        self.top_k = top_k

    async def refresh(self) -> RefreshReport:
        """Re-embed every document whose content hash changed.

        Embedding calls are sequential, file by file then chunk by chunk. An
        embedding failure aborts the rest of the pass; files finished before
        it keep their new rows and the failing file keeps its old ones.
        """
        report = RefreshReport()
        paths = self.store.list_files()

        present = {p.name for p in paths}
        for stale in sorted(self.table.files() - present):
            self.table.delete_file(stale)
            report.pruned.append(stale)
            logger.info("Pruned index rows for removed file: %s", stale)

        for path in paths:
            raw = path.read_bytes()
            file_hash = content_hash(raw)
            if self.table.get_file_hash(path.name) == file_hash:
                report.skipped.append(path.name)
                continue

            document = Document.from_text(path.stem, raw.decode("utf-8"))
            chunks = chunk_text(build_embedding_text(document), self.chunk_size)
            vectors = []
            for chunk in chunks:
                vectors.append(normalize_vector(await self.embedder.get_embedding(chunk)))

            self.table.replace_file(path.name, file_hash, chunks, vectors)
            report.synced.append(path.name)
            logger.info("Synced: %s (%d chunks)", path.name, len(chunks))

        return report

    async def search(self, query: str, top_k: int | None = None) -> list[SearchResult]:
        query_vector = normalize_vector(await self.embedder.get_embedding(query))
        return rank_documents(
            query_vector, self.table.all_vectors(), top_k if top_k is not None else self.top_k
        )

    def close(self) -> None:
        self.table.close()
