"""Authoritative highlight ranges per message and part.

Holds ``message_id -> part_id -> [Range]``.  Within one part the list is kept
sorted by start offset and no two stored ranges overlap or touch: ``add_range``
merges on insert and ``remove_range`` subtracts.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from marginalia.highlight.range import merge, subtract, touches

if TYPE_CHECKING:
    from collections.abc import Iterator

    from marginalia.highlight.range import Range

logger = logging.getLogger(__name__)


class HighlightStore:
    """In-memory ``HighlightedPartInfo`` with merge/split semantics."""

    def __init__(self) -> None:
        self._parts: dict[int, dict[str, list[Range]]] = {}

    def add_range(self, message_id: int, part_id: str, rng: Range) -> Range:
        """Insert *rng*, absorbing every stored range it overlaps or touches.

        Args:
            message_id: Owning message.
            part_id: Span id within the message.
            rng: Range to highlight.

        Returns:
            The stored range *rng* ended up in after merging.
        """
        merged = rng
        kept: list[Range] = []
        # Stored ranges are disjoint and sorted, so absorbing into ``merged``
        # in one ordered pass reaches the same fixpoint as repeated merging.
        for existing in self._parts.get(message_id, {}).get(part_id, []):
            if touches(existing, merged):
                merged = merge(existing, merged)
            else:
                kept.append(existing)
        kept.append(merged)
        kept.sort()
        self._parts.setdefault(message_id, {})[part_id] = kept
        logger.debug(
            "Highlight added msg=%s part=%s range=%s stored=%s",
            message_id,
            part_id,
            rng,
            merged,
        )
        return merged

    def remove_range(self, message_id: int, part_id: str, rng: Range) -> None:
        """Remove the characters covered by *rng* from every stored range.

        Stored ranges that *rng* splits leave a before and an after fragment.
        Ranges *rng* does not overlap are untouched.
        """
        parts = self._parts.get(message_id)
        if parts is None or part_id not in parts:
            return

        remaining: list[Range] = []
        for existing in parts[part_id]:
            remaining.extend(subtract(existing, rng))

        if remaining:
            parts[part_id] = remaining
        else:
            del parts[part_id]
            if not parts:
                del self._parts[message_id]
        logger.debug(
            "Highlight removed msg=%s part=%s range=%s remaining=%d",
            message_id,
            part_id,
            rng,
            len(remaining),
        )

    def query(self, message_id: int, part_id: str) -> tuple[Range, ...]:
        """Return the sorted ranges for one part (empty if none)."""
        return tuple(self._parts.get(message_id, {}).get(part_id, ()))

    def parts_for_message(self, message_id: int) -> dict[str, tuple[Range, ...]]:
        """Return ``part_id -> ranges`` for every highlighted part of a message."""
        return {
            part_id: tuple(ranges)
            for part_id, ranges in self._parts.get(message_id, {}).items()
        }

    def contains_exact(self, message_id: int, part_id: str, rng: Range) -> bool:
        """Return True if *rng* is stored exactly as given."""
        return rng in self._parts.get(message_id, {}).get(part_id, ())

    def items(self) -> Iterator[tuple[int, str, Range]]:
        """Iterate ``(message_id, part_id, range)`` over the whole store."""
        for message_id, parts in self._parts.items():
            for part_id, ranges in parts.items():
                for rng in ranges:
                    yield message_id, part_id, rng

    def clear(self) -> None:
        self._parts.clear()

    def __len__(self) -> int:
        return sum(len(r) for parts in self._parts.values() for r in parts.values())
