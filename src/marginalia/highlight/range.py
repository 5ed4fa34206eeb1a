"""Absolute character-offset ranges within a single span's text.

A ``Range`` is a half-open ``[start_offset, end_offset)`` pair.  Ranges are
immutable value objects: every operation that changes extent returns new
``Range`` instances.
"""

from __future__ import annotations

from dataclasses import dataclass


class InvalidRangeError(ValueError):
    """Raised when a range is constructed with malformed offsets."""

    def __init__(self, start_offset: int, end_offset: int) -> None:
        self.start_offset = start_offset
        self.end_offset = end_offset
        super().__init__(
            f"Invalid range [{start_offset}, {end_offset}): offsets must be "
            "non-negative and start must be strictly less than end"
        )


@dataclass(frozen=True, slots=True, order=True)
class Range:
    """A non-empty ``[start_offset, end_offset)`` interval of span text.

    Attributes:
        start_offset: First character index (inclusive).
        end_offset: One past the last character index (exclusive).

    Raises:
        InvalidRangeError: If either offset is negative or
            ``start_offset >= end_offset``.
    """

    start_offset: int
    end_offset: int

    def __post_init__(self) -> None:
        if (
            self.start_offset < 0
            or self.end_offset < 0
            or self.start_offset >= self.end_offset
        ):
            raise InvalidRangeError(self.start_offset, self.end_offset)

    def __len__(self) -> int:
        return self.end_offset - self.start_offset

    def overlaps(self, other: Range) -> bool:
        """Return True if the two ranges share at least one character."""
        return overlaps(self, other)

    def touches(self, other: Range) -> bool:
        """Return True if the ranges overlap or abut end-to-start."""
        return touches(self, other)

    def contains(self, offset: int) -> bool:
        """Return True if *offset* falls inside this range."""
        return contains(self, offset)

    def covers(self, other: Range) -> bool:
        """Return True if *other* lies entirely within this range."""
        return (
            self.start_offset <= other.start_offset
            and other.end_offset <= self.end_offset
        )

    def slice(self, text: str) -> str:
        """Return the portion of *text* this range addresses."""
        return text[self.start_offset : self.end_offset]


def overlaps(a: Range, b: Range) -> bool:
    """Check whether *a* and *b* share at least one character."""
    return a.start_offset < b.end_offset and b.start_offset < a.end_offset


def touches(a: Range, b: Range) -> bool:
    """Check whether *a* and *b* overlap or are adjacent.

    Adjacency is inclusive: ``[0, 5)`` touches ``[5, 10)``.
    """
    return a.start_offset <= b.end_offset and b.start_offset <= a.end_offset


def contains(a: Range, offset: int) -> bool:
    """Check whether character *offset* lies inside *a*."""
    return a.start_offset <= offset < a.end_offset


def merge(a: Range, b: Range) -> Range:
    """Merge two overlapping or adjacent ranges into their union.

    Args:
        a: First range.
        b: Second range.

    Returns:
        A range spanning ``min(start)`` to ``max(end)``.

    Raises:
        ValueError: If the ranges are disjoint (a gap separates them).
    """
    if not touches(a, b):
        msg = f"Cannot merge disjoint ranges {a} and {b}"
        raise ValueError(msg)
    return Range(
        min(a.start_offset, b.start_offset),
        max(a.end_offset, b.end_offset),
    )


def subtract(a: Range, cut: Range) -> list[Range]:
    """Remove the part of *a* covered by *cut*.

    Yields zero fragments when *cut* covers *a* entirely, one when it clips an
    edge, and two (before and after) when it lies strictly inside *a*.  A
    *cut* that does not overlap *a* leaves it unchanged.

    Args:
        a: The range to cut from.
        cut: The range to remove.  Being a ``Range`` it is never zero-length.

    Returns:
        Remaining fragments, sorted by start offset.
    """
    if not overlaps(a, cut):
        return [a]

    fragments: list[Range] = []
    if a.start_offset < cut.start_offset:
        fragments.append(Range(a.start_offset, cut.start_offset))
    if cut.end_offset < a.end_offset:
        fragments.append(Range(cut.end_offset, a.end_offset))
    return fragments
