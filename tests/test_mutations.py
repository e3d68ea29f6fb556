"""Tests for mutation validation and application."""

from __future__ import annotations

import logging

import pytest
from pathlib import Path

from mnemo.memory.document import parse_document
from mnemo.memory.mutations import (
    Accepted,
    Mutation,
    MutationChanges,
    Rejected,
    ReminderMutation,
    ValidationError,
    apply_mutation,
    parse_mutation,
    parse_reminder,
    validate_mutation,
)


def payload(**overrides) -> dict:
    data = {"action": "update", "file": "user", "changes": {}}
    data.update(overrides)
    return data


class TestValidateMutation:
    def test_valid_full_payload(self):
        mutation = validate_mutation(
            payload(
                changes={
                    "metadata": {"type": "person"},
                    "append": "hello",
                    "delete_lines": ["old"],
                }
            )
        )
        assert mutation == Mutation(
            action="update",
            file="user",
            changes=MutationChanges(metadata={"type": "person"}, append="hello", delete_lines=["old"]),
        )

    def test_minimal_payload(self):
        mutation = validate_mutation(payload())
        assert mutation.changes == MutationChanges()
        assert mutation.filename == "user.md"

    @pytest.mark.parametrize(
        "data, field",
        [
            ("not an object", "payload"),
            (["list"], "payload"),
            (payload(action="rename"), "action"),
            (payload(action=None), "action"),
            (payload(file="Bad Name"), "file"),
            (payload(file="../etc/passwd"), "file"),
            (payload(file=""), "file"),
            (payload(file=3), "file"),
            (payload(changes=None), "changes"),
            (payload(changes="text"), "changes"),
            (payload(changes={"metadata": ["a"]}), "metadata"),
            (payload(changes={"append": 5}), "append"),
            (payload(changes={"delete_lines": "old"}), "delete_lines"),
            (payload(changes={"delete_lines": ["ok", 1]}), "delete_lines"),
        ],
    )
    def test_rejections(self, data, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_mutation(data)
        assert exc_info.value.field == field

    def test_first_violation_reported(self):
        result = parse_mutation({"action": "bogus", "file": "BAD", "changes": None})
        assert isinstance(result, Rejected)
        assert result.field == "action"

    def test_missing_changes(self):
        result = parse_mutation({"action": "create", "file": "trip"})
        assert isinstance(result, Rejected)
        assert result.field == "changes"

    def test_apostrophe_and_hyphen_allowed(self):
        result = parse_mutation(payload(file="o'brien-notes_2"))
        assert isinstance(result, Accepted)
        assert result.ok


class TestParseReminder:
    def test_one_time(self):
        result = parse_reminder(
            {
                "action": "create_reminder",
                "type": "one_time",
                "title": "Dishes",
                "datetime": "2026-10-20T10:00:00Z",
            }
        )
        assert result.value == ReminderMutation(
            type="one_time", title="Dishes", datetime="2026-10-20T10:00:00Z"
        )

    def test_recurring_requires_rrule(self):
        result = parse_reminder({"type": "recurring", "title": "Stretch"})
        assert isinstance(result, Rejected)
        assert result.field == "rrule"

    def test_unknown_type(self):
        result = parse_reminder({"type": "weekly", "title": "x"})
        assert result.field == "type"

    def test_blank_title(self):
        result = parse_reminder({"type": "one_time", "title": " ", "datetime": "x"})
        assert result.field == "title"


class TestApplyMutation:
    def test_create_scenario(self, tmp_path: Path):
        mutation = validate_mutation(
            {
                "action": "create",
                "file": "trip",
                "changes": {
                    "metadata": {"id": "trip", "type": "event"},
                    "append": "## Description\nWent hiking",
                },
            }
        )
        applied = apply_mutation(mutation, tmp_path)
        assert applied.action == "create"

        content = (tmp_path / "trip.md").read_text(encoding="utf-8")
        assert content == "---\nid: trip\ntype: event\n---\n\n## Description\nWent hiking\n"
        metadata, body = parse_document(content)
        assert metadata == {"id": "trip", "type": "event"}
        assert "## Description" in body

    def test_update_missing_file_matches_create(self, tmp_path: Path, caplog):
        changes = MutationChanges(metadata={"type": "place", "tags": ["a", "b"]}, append="Cozy")
        create_dir = tmp_path / "create"
        update_dir = tmp_path / "update"
        create_dir.mkdir()
        update_dir.mkdir()

        apply_mutation(Mutation("create", "cafe", changes), create_dir)
        with caplog.at_level(logging.WARNING):
            applied = apply_mutation(Mutation("update", "cafe", changes), update_dir)

        assert applied.action == "create"
        assert "Converting update to create" in caplog.text
        assert (update_dir / "cafe.md").read_bytes() == (create_dir / "cafe.md").read_bytes()

    def test_update_existing(self, tmp_path: Path):
        path = tmp_path / "user.md"
        path.write_text("---\nid: user\ntype: person\n---\n\n- likes tea\n", encoding="utf-8")
        applied = apply_mutation(
            Mutation("update", "user", MutationChanges(metadata={"mood": "happy"}, append="- likes hiking")),
            tmp_path,
        )
        assert applied.action == "update"
        assert path.read_text(encoding="utf-8") == (
            "---\nid: user\ntype: person\nmood: happy\n---\n\n- likes hiking\n\n- likes tea\n"
        )

    def test_delete_missing_file_is_noop(self, tmp_path: Path, caplog):
        with caplog.at_level(logging.WARNING):
            result = apply_mutation(
                Mutation("delete", "ghost", MutationChanges(delete_lines=["x"])), tmp_path
            )
        assert result is None
        assert not (tmp_path / "ghost.md").exists()
        assert "not found" in caplog.text

    def test_delete_lines_keeps_delimiters(self, tmp_path: Path):
        path = tmp_path / "user.md"
        path.write_text("---\nid: user\n---\n- task one\n- task two\n", encoding="utf-8")
        apply_mutation(Mutation("delete", "user", MutationChanges(delete_lines=["-"])), tmp_path)
        content = path.read_text(encoding="utf-8")
        assert content == "---\nid: user\n---\n"

    def test_apply_order_metadata_then_delete_then_append(self, tmp_path: Path):
        path = tmp_path / "user.md"
        path.write_text("---\nid: user\n---\n\nold task\n", encoding="utf-8")
        apply_mutation(
            Mutation(
                "update",
                "user",
                MutationChanges(metadata={"status": "busy"}, append="new task", delete_lines=["task"]),
            ),
            tmp_path,
        )
        content = path.read_text(encoding="utf-8")
        assert "old task" not in content
        assert "new task" in content
        assert "status: busy" in content

    def test_original_mutation_untouched(self, tmp_path: Path):
        mutation = Mutation("update", "fresh", MutationChanges(append="x"))
        apply_mutation(mutation, tmp_path)
        assert mutation.action == "update"
