"""Memory document format: flat frontmatter + markdown body.

The frontmatter grammar is intentionally restricted and is NOT YAML:

    ---
    key: value
    list_key: [a, b, c]
    ---
    <body>

- The opening delimiter must be the very first line of the file.
- The closing delimiter is the next line that reads ``---``.
- One ``key: value`` pair per line, split on the first ``:``. Keys are
  lower-cased, values trimmed. Lines without ``:`` are ignored.
- A value written as ``[a, b]`` becomes a list of trimmed strings; every
  other value stays a string. No nesting, no multi-line scalars, no quoting.
- The body is everything after the closing delimiter line, untouched.

A file without a well-formed block has no metadata and is all body.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any

DELIMITER = "---"


@dataclass
class Document:
    """A parsed memory file. Identity is the filename stem."""

    name: str
    metadata: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    content_hash: str = ""

    @classmethod
    def from_text(cls, name: str, raw: str) -> Document:
        metadata, body = parse_document(raw)
        return cls(name=name, metadata=metadata, body=body, content_hash=content_hash(raw))


def content_hash(raw: str | bytes) -> str:
    """SHA-256 hex digest of the raw file content."""
    data = raw.encode("utf-8") if isinstance(raw, str) else raw
    return hashlib.sha256(data).hexdigest()


# ── Parsing ──────────────────────────────────────────────────


def _is_delimiter(line: str) -> bool:
    return line.rstrip() == DELIMITER


def _split_frontmatter(raw: str) -> tuple[list[str], str] | None:
    """Return (frontmatter lines, body), or None without a well-formed block."""
    lines = raw.splitlines(keepends=True)
    if not lines or not _is_delimiter(lines[0]):
        return None

    offset = len(lines[0])
    for i, line in enumerate(lines[1:], start=1):
        if _is_delimiter(line):
            inner = [entry.rstrip("\r\n") for entry in lines[1:i]]
            return inner, raw[offset + len(line) :]
        offset += len(line)
    return None


def _parse_value(value: str) -> str | list[str]:
    if value.startswith("[") and value.endswith("]"):
        return [item.strip() for item in value[1:-1].split(",") if item.strip()]
    return value


def parse_document(raw: str) -> tuple[dict[str, Any], str]:
    """Split raw file content into (metadata, body). Never raises."""
    split = _split_frontmatter(raw)
    if split is None:
        return {}, raw

    fm_lines, body = split
    metadata: dict[str, Any] = {}
    for line in fm_lines:
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        if not key:
            continue
        metadata[key] = _parse_value(value.strip())
    return metadata, body


# ── Serialization ────────────────────────────────────────────


def format_metadata_value(value: Any) -> str:
    """Render one metadata value as it appears after ``key: ``."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_metadata_value(v) for v in value) + "]"
    if isinstance(value, dict):
        # Fallback only; the flat parser reads this back as a plain string.
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False).replace('"', "'")
    return str(value)


def serialize_document(metadata: dict[str, Any], body: str) -> str:
    """Render metadata in mapping order, then the body verbatim."""
    lines = [f"{key}: {format_metadata_value(value)}" for key, value in metadata.items()]
    return "\n".join([DELIMITER, *lines, DELIMITER]) + "\n" + body


def new_document(name: str) -> str:
    """Minimal skeleton for a freshly created memory file."""
    return serialize_document({"id": name, "type": ""}, "\n")


# ── Partial edits (used by the mutation engine) ──────────────


def _head_and_body(raw: str) -> tuple[str, str] | None:
    split = _split_frontmatter(raw)
    if split is None:
        return None
    body = split[1]
    return raw[: len(raw) - len(body)], body


def patch_metadata(raw: str, patch: dict[str, Any]) -> str:
    """Merge ``patch`` into the frontmatter. New keys go last, existing keys keep their slot."""
    normalized = {str(key).strip().lower(): value for key, value in patch.items()}
    if _split_frontmatter(raw) is None:
        return serialize_document(normalized, "\n" + raw)

    metadata, body = parse_document(raw)
    metadata.update(normalized)
    return serialize_document(metadata, body)


def delete_lines(raw: str, patterns: list[str]) -> str:
    """Drop body lines containing any pattern. Delimiter lines always survive."""
    patterns = [p for p in patterns if p]
    if not patterns:
        return raw

    split = _head_and_body(raw)
    head, body = split if split is not None else ("", raw)
    kept = [
        line
        for line in body.split("\n")
        if _is_delimiter(line) or not any(p in line for p in patterns)
    ]
    return head + "\n".join(kept)


def prepend_entry(raw: str, text: str) -> str:
    """Insert ``text`` right after the frontmatter, before the existing body."""
    split = _head_and_body(raw)
    head, body = split if split is not None else ("", raw)
    if head and not head.endswith("\n"):
        head += "\n"

    rest = body.lstrip("\n")
    tail = "\n\n" + rest if rest else "\n"
    if not head:
        return text + tail
    return head + "\n" + text + tail


# ── Embedding text ───────────────────────────────────────────


def _as_list(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [format_metadata_value(v) for v in value]
    if not value:
        return []
    text = str(value).strip()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1]
    return [item.strip() for item in text.split(",") if item.strip()]


def build_embedding_text(document: Document) -> str:
    """Identity header (id, type, aliases, roles) above the body."""
    meta = document.metadata
    header = "\n".join(
        [
            f"ID: {format_metadata_value(meta.get('id', ''))}",
            f"TYPE: {format_metadata_value(meta.get('type', ''))}",
            f"ALIASES: {', '.join(_as_list(meta.get('aliases')))}",
            f"ROLES: {', '.join(_as_list(meta.get('roles')))}",
        ]
    )
    return f"{header}\n\n{document.body.strip()}".strip()
