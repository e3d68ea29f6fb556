"""Post-stream extraction of mutations in either of the two encodings.

Mode A, the structured envelope: the whole reply (optionally inside a code
fence) is one JSON object ``{"response": str, "mutations": [...],
"reminders": [...]}``.

Mode B, the legacy marker protocol: mutations are JSON objects between
``START_MARKER`` and ``END_MARKER`` inside ordinary text.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from mnemo.memory.mutations import (
    Mutation,
    ParseResult,
    Rejected,
    ReminderMutation,
    parse_mutation,
    parse_reminder,
)
from mnemo.streaming.filter import END_MARKER, START_MARKER

logger = logging.getLogger(__name__)

MUTATION_BLOCK = re.compile(re.escape(START_MARKER) + r"(.*?)" + re.escape(END_MARKER), re.DOTALL)
JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class Envelope:
    response: str
    mutations: list[Mutation] = field(default_factory=list)
    reminders: list[ReminderMutation] = field(default_factory=list)


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def _accept_each(items: Any, parse: Callable[[Any], ParseResult], kind: str) -> list:
    if items is None:
        return []
    if not isinstance(items, list):
        logger.warning("Envelope field for %s is not an array, ignoring", kind)
        return []

    accepted = []
    for item in items:
        result = parse(item)
        if isinstance(result, Rejected):
            logger.warning("Invalid %s in JSON response, skipping: %s", kind, result.reason)
            continue
        accepted.append(result.value)
    return accepted


def parse_envelope(text: str) -> Envelope | None:
    """Parse the full reply as a structured envelope, or None if it is not one."""
    try:
        data = json.loads(strip_code_fences(text))
    except ValueError:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("response"), str):
        return None

    return Envelope(
        response=data["response"],
        mutations=_accept_each(data.get("mutations"), parse_mutation, "mutation"),
        reminders=_accept_each(data.get("reminders"), parse_reminder, "reminder"),
    )


def extract_marker_mutations(text: str) -> list[Mutation]:
    """Parse every closed marker block independently; bad blocks are skipped."""
    mutations: list[Mutation] = []
    count = 0
    for count, match in enumerate(MUTATION_BLOCK.finditer(text), start=1):
        block = match.group(1)
        json_match = JSON_OBJECT.search(block)
        if not json_match:
            logger.warning("No JSON found in mutation block #%d: %.200s", count, block)
            continue

        try:
            payload = json.loads(json_match.group())
        except ValueError as e:
            logger.warning("Failed to parse mutation block #%d: %s", count, e)
            continue

        result = parse_mutation(payload)
        if isinstance(result, Rejected):
            logger.warning("Invalid mutation in block #%d: %s", count, result.reason)
            continue
        mutations.append(result.value)

    if count == 0:
        logger.debug("No memory mutations found in the final output")
    return mutations
