"""Annotation stores keyed by exact highlight range.

Two parallel stores share one shape, ``message_id -> part_id -> [entry]``:
the memo store holds free-text notes and the supplementary store holds
follow-up message threads.  Lookup, update and delete match ranges exactly
(both offsets equal), never by overlap: the user edits the precise highlight
they are looking at, not whichever stored range happens to intersect it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from marginalia.highlight.range import Range
    from marginalia.models import Message

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Payload variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MemoPayload:
    """A free-text note."""

    text: str


@dataclass(frozen=True, slots=True)
class SupplementaryPayload:
    """An ordered thread of follow-up messages about the highlighted text."""

    messages: tuple[Message, ...]

    def appended(self, message: Message) -> SupplementaryPayload:
        """Return a new payload with *message* added to the thread."""
        return SupplementaryPayload((*self.messages, message))


type AnnotationPayload = MemoPayload | SupplementaryPayload


@dataclass(frozen=True, slots=True)
class AnnotationEntry[P: AnnotationPayload]:
    """A payload attached to one exact range."""

    range: Range
    payload: P


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class AnnotationStore[P: AnnotationPayload]:
    """``message_id -> part_id -> [AnnotationEntry]`` with exact-range identity."""

    kind = "annotation"

    def __init__(self) -> None:
        self._entries: dict[int, dict[str, list[AnnotationEntry[P]]]] = {}

    def upsert(self, message_id: int, part_id: str, rng: Range, payload: P) -> bool:
        """Attach *payload* to *rng*, replacing any entry with the same range.

        Args:
            message_id: Owning message.
            part_id: Span id within the message.
            rng: Exact highlight range.
            payload: New payload.

        Returns:
            True if an existing entry was updated, False if one was appended.
        """
        entries = self._entries.setdefault(message_id, {}).setdefault(part_id, [])
        for index, entry in enumerate(entries):
            if entry.range == rng:
                entries[index] = AnnotationEntry(rng, payload)
                logger.debug(
                    "Updated %s msg=%s part=%s range=%s",
                    self.kind,
                    message_id,
                    part_id,
                    rng,
                )
                return True
        entries.append(AnnotationEntry(rng, payload))
        logger.debug(
            "Added %s msg=%s part=%s range=%s", self.kind, message_id, part_id, rng
        )
        return False

    def remove_exact(self, message_id: int, part_id: str, rng: Range) -> bool:
        """Delete the entry whose range equals *rng*.

        Returns:
            True if an entry was removed; False (no-op) if none matched.
        """
        parts = self._entries.get(message_id)
        if parts is None or part_id not in parts:
            return False
        entries = parts[part_id]
        remaining = [e for e in entries if e.range != rng]
        if len(remaining) == len(entries):
            return False
        if remaining:
            parts[part_id] = remaining
        else:
            del parts[part_id]
            if not parts:
                del self._entries[message_id]
        logger.debug(
            "Removed %s msg=%s part=%s range=%s", self.kind, message_id, part_id, rng
        )
        return True

    def find_exact(self, message_id: int, part_id: str, rng: Range) -> P | None:
        """Return the payload attached to exactly *rng*, or None."""
        for entry in self._entries.get(message_id, {}).get(part_id, ()):
            if entry.range == rng:
                return entry.payload
        return None

    def entries(self, message_id: int, part_id: str) -> tuple[AnnotationEntry[P], ...]:
        """Return entries for one part in insertion order."""
        return tuple(self._entries.get(message_id, {}).get(part_id, ()))

    def parts_for_message(
        self, message_id: int
    ) -> dict[str, tuple[AnnotationEntry[P], ...]]:
        """Return ``part_id -> entries`` for one message."""
        return {
            part_id: tuple(entries)
            for part_id, entries in self._entries.get(message_id, {}).items()
        }

    def message_ids(self) -> list[int]:
        return list(self._entries)

    def items(self) -> Iterator[tuple[int, str, AnnotationEntry[P]]]:
        """Iterate ``(message_id, part_id, entry)`` over the whole store."""
        for message_id, parts in self._entries.items():
            for part_id, entries in parts.items():
                for entry in entries:
                    yield message_id, part_id, entry

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return sum(len(e) for parts in self._entries.values() for e in parts.values())


class MemoStore(AnnotationStore[MemoPayload]):
    """Free-text memos attached to highlights."""

    kind = "memo"

    def set_memo(self, message_id: int, part_id: str, rng: Range, text: str) -> bool:
        """Create or edit the memo on *rng*."""
        return self.upsert(message_id, part_id, rng, MemoPayload(text))

    def memo_text(self, message_id: int, part_id: str, rng: Range) -> str | None:
        """Return the memo text on *rng*, or None."""
        payload = self.find_exact(message_id, part_id, rng)
        return payload.text if payload is not None else None


class SupplementaryStore(AnnotationStore[SupplementaryPayload]):
    """Follow-up message threads attached to highlights."""

    kind = "supplementary"

    def append_message(
        self, message_id: int, part_id: str, rng: Range, message: Message
    ) -> SupplementaryPayload:
        """Append *message* to the thread on *rng*, starting one if needed."""
        current = self.find_exact(message_id, part_id, rng)
        thread = (current or SupplementaryPayload(())).appended(message)
        self.upsert(message_id, part_id, rng, thread)
        return thread
