"""Block-range helpers for the tracking engine.

All ranges are inclusive on both ends: [start, end].
"""

from __future__ import annotations

from collections.abc import Generator, Sequence


def iter_chunks(a: int, b: int, step: int) -> Generator[tuple[int, int], None, None]:
    """Yield inclusive [start, end] block ranges of size at most `step`."""
    if step <= 0:
        raise ValueError("step must be positive")
    x = a
    while x <= b:
        y = min(b, x + step - 1)
        yield (x, y)
        x = y + 1


def filter_key(addresses: Sequence[str]) -> str:
    """Stable cursor key for a filter (order-insensitive, lowercased)."""
    uniq = sorted({(a or "").lower() for a in addresses if a})
    return "+".join(uniq) if uniq else "none"
