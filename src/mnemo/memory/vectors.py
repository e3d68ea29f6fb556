"""Text chunking and vector arithmetic for the memory index."""

from __future__ import annotations

import math
from collections.abc import Sequence


def chunk_text(text: str, size: int) -> list[str]:
    """Split into consecutive, non-overlapping slices of ``size`` characters."""
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [text[i : i + size] for i in range(0, len(text), size)]


def normalize_vector(vec: Sequence[float]) -> list[float]:
    """Scale to unit length. A zero vector comes back unchanged."""
    norm = math.sqrt(sum(v * v for v in vec))
    if norm == 0:
        return list(vec)
    return [v / norm for v in vec]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Dot product of two vectors that are already unit length."""
    if len(a) != len(b):
        raise ValueError(
            f"Cannot calculate similarity: vector lengths differ ({len(a)} != {len(b)})"
        )
    return sum(x * y for x, y in zip(a, b))


def is_number_array(value: object) -> bool:
    """True for a non-empty list of real numbers (bools excluded)."""
    return (
        isinstance(value, list)
        and len(value) > 0
        and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value)
    )
