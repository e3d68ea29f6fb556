"""Memory mutations: validation of untrusted payloads and application to disk.

Wire format (one mutation):

    {"action": "create" | "update" | "delete",
     "file": "lowercase_identifier",
     "changes": {"metadata": {...}, "append": "...", "delete_lines": ["..."]}}

Validation is a parse step: ``parse_mutation`` turns an arbitrary JSON value
into ``Accepted(mutation)`` or ``Rejected(field, reason)``; nothing partial is
ever built from an invalid payload. ``validate_mutation`` is the raising form.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Literal, Union

from mnemo.memory.document import delete_lines, new_document, patch_metadata, prepend_entry

logger = logging.getLogger(__name__)

Action = Literal["create", "update", "delete"]

ACTIONS = ("create", "update", "delete")
FILE_PATTERN = re.compile(r"[a-z0-9_'-]+")

REMINDER_TYPES = ("one_time", "recurring")


class ValidationError(ValueError):
    """An untrusted mutation payload violated a constraint."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(reason)
        self.field = field
        self.reason = reason


@dataclass(frozen=True)
class MutationChanges:
    metadata: dict[str, Any] | None = None
    append: str | None = None
    delete_lines: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Mutation:
    """A validated edit to one memory file."""

    action: Action
    file: str
    changes: MutationChanges = field(default_factory=MutationChanges)

    @property
    def filename(self) -> str:
        return f"{self.file}.md"


@dataclass(frozen=True)
class ReminderMutation:
    """A validated reminder request. Scheduling happens elsewhere."""

    type: Literal["one_time", "recurring"]
    title: str
    body: str = ""
    datetime: str | None = None
    rrule: str | None = None


@dataclass(frozen=True)
class Accepted:
    value: Any

    ok = True


@dataclass(frozen=True)
class Rejected:
    field: str
    reason: str

    ok = False


ParseResult = Union[Accepted, Rejected]


# ── Parsing ──────────────────────────────────────────────────


def parse_mutation(payload: Any) -> ParseResult:
    """Parse an untrusted JSON value. Returns the first violated constraint."""
    if not isinstance(payload, dict):
        return Rejected("payload", "Mutation must be a JSON object")

    action = payload.get("action")
    if not isinstance(action, str) or action not in ACTIONS:
        return Rejected("action", 'Action must be "create", "update", or "delete"')

    file = payload.get("file")
    if not isinstance(file, str) or not FILE_PATTERN.fullmatch(file):
        return Rejected(
            "file",
            "File must be a valid identifier "
            "(lowercase alphanumeric, underscore, hyphen, or apostrophe)",
        )

    changes = payload.get("changes")
    if not isinstance(changes, dict):
        return Rejected("changes", "Changes must be an object")

    metadata = changes.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        return Rejected("metadata", "Metadata must be an object")

    append = changes.get("append")
    if append is not None and not isinstance(append, str):
        return Rejected("append", "Append must be a string")

    patterns = changes.get("delete_lines")
    if patterns is not None:
        if not isinstance(patterns, list):
            return Rejected("delete_lines", "delete_lines must be an array of strings")
        if not all(isinstance(item, str) for item in patterns):
            return Rejected("delete_lines", "All items in delete_lines must be strings")

    return Accepted(
        Mutation(
            action=action,
            file=file,
            changes=MutationChanges(
                metadata=dict(metadata) if metadata is not None else None,
                append=append,
                delete_lines=list(patterns or []),
            ),
        )
    )


def validate_mutation(payload: Any) -> Mutation:
    """Raising form of ``parse_mutation``."""
    result = parse_mutation(payload)
    if isinstance(result, Rejected):
        raise ValidationError(result.field, result.reason)
    return result.value


def parse_reminder(payload: Any) -> ParseResult:
    """Parse one element of an envelope's ``reminders`` array."""
    if not isinstance(payload, dict):
        return Rejected("payload", "Reminder must be a JSON object")
    if payload.get("action", "create_reminder") != "create_reminder":
        return Rejected("action", 'Reminder action must be "create_reminder"')

    kind = payload.get("type")
    if kind not in REMINDER_TYPES:
        return Rejected("type", 'Reminder type must be "one_time" or "recurring"')

    title = payload.get("title")
    if not isinstance(title, str) or not title.strip():
        return Rejected("title", "Reminder title must be a non-empty string")

    body = payload.get("body", "")
    if body is None:
        body = ""
    if not isinstance(body, str):
        return Rejected("body", "Reminder body must be a string")

    when = payload.get("datetime")
    rrule = payload.get("rrule")
    if kind == "one_time" and not isinstance(when, str):
        return Rejected("datetime", "One-time reminder requires a datetime string")
    if kind == "recurring" and not isinstance(rrule, str):
        return Rejected("rrule", "Recurring reminder requires an rrule string")

    return Accepted(
        ReminderMutation(
            type=kind,
            title=title,
            body=body,
            datetime=when if kind == "one_time" else None,
            rrule=rrule if kind == "recurring" else None,
        )
    )


# ── Application ──────────────────────────────────────────────


def apply_mutation(mutation: Mutation, memory_dir: Path) -> Mutation | None:
    """Apply a validated mutation as a full-file rewrite.

    Returns the mutation actually applied (``update`` on a missing file comes
    back as ``create``), or None when a ``delete`` target does not exist.
    """
    path = Path(memory_dir) / mutation.filename

    if mutation.action == "delete":
        if not path.exists():
            logger.warning("File %s not found for delete operation", path)
            return None
        content = path.read_text(encoding="utf-8")
    elif mutation.action == "update":
        if path.exists():
            content = path.read_text(encoding="utf-8")
        else:
            logger.warning("File %s does not exist. Converting update to create.", path)
            mutation = replace(mutation, action="create")
            content = new_document(mutation.file)
    else:
        content = (
            path.read_text(encoding="utf-8") if path.exists() else new_document(mutation.file)
        )

    changes = mutation.changes
    if changes.metadata:
        content = patch_metadata(content, changes.metadata)
    if changes.delete_lines:
        content = delete_lines(content, changes.delete_lines)
    if changes.append:
        content = prepend_entry(content, changes.append)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("Applied mutation: %s %s", mutation.action, mutation.file)
    return mutation
