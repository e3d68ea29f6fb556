"""Document store: the memory directory on disk.

Markdown files are the source of truth. Each ``<name>.md`` directly under the
root is one document; ``.versions/`` keeps timestamped copies taken before
every rewrite.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path

from mnemo.memory.document import Document
from mnemo.memory.mutations import Mutation, apply_mutation

logger = logging.getLogger(__name__)

VERSIONS_DIR = ".versions"
MAX_VERSIONS = 10


class DocumentStore:
    """Read/write access to the memory directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._ensure_initialized()

    def _ensure_initialized(self) -> None:
        """Ensure the memory and versions directories exist. Idempotent."""
        (self.root / VERSIONS_DIR).mkdir(parents=True, exist_ok=True)

    # ── Reads ─────────────────────────────────────────────────

    def path_for(self, name: str) -> Path:
        return self.root / f"{name}.md"

    def list_files(self) -> list[Path]:
        """All document files, sorted by filename."""
        return sorted(p for p in self.root.glob("*.md") if p.is_file())

    def read_text(self, filename: str) -> str | None:
        """Raw content of ``filename`` (e.g. ``user.md``), or None if missing."""
        path = self.root / filename
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def read(self, name: str) -> Document | None:
        raw = self.read_text(f"{name}.md")
        if raw is None:
            return None
        return Document.from_text(name, raw)

    # ── Writes ────────────────────────────────────────────────

    def apply(self, mutation: Mutation) -> Mutation | None:
        """Back up the target (if any), then apply the mutation."""
        self._backup(self.path_for(mutation.file))
        return apply_mutation(mutation, self.root)

    def _backup(self, path: Path) -> None:
        """Copy to .versions/, keep at most MAX_VERSIONS per document."""
        if not path.exists():
            return
        versions_dir = self.root / VERSIONS_DIR
        versions_dir.mkdir(exist_ok=True)
        ts = datetime.now().strftime("%Y%m%dT%H%M%S%f")
        (versions_dir / f"{path.stem}-{ts}.md").write_bytes(path.read_bytes())
        for f in self.versions(path.stem)[:-MAX_VERSIONS]:
            f.unlink()

    def versions(self, name: str) -> list[Path]:
        """Backups of one document, oldest first."""
        versions_dir = self.root / VERSIONS_DIR
        if not versions_dir.is_dir():
            return []
        pattern = re.compile(rf"{re.escape(name)}-\d{{8}}T\d{{12}}\.md")
        return sorted(p for p in versions_dir.iterdir() if pattern.fullmatch(p.name))
