"""Tests for Range construction and interval algebra."""

from __future__ import annotations

import pytest

from marginalia.highlight.range import (
    InvalidRangeError,
    Range,
    contains,
    merge,
    overlaps,
    subtract,
    touches,
)


class TestRangeConstruction:
    """Range rejects malformed offsets at construction."""

    def test_valid_range(self) -> None:
        """Start below end is accepted."""
        rng = Range(4, 9)
        assert (rng.start_offset, rng.end_offset) == (4, 9)
        assert len(rng) == 5

    @pytest.mark.parametrize(("start", "end"), [(5, 5), (6, 5), (-1, 3), (0, -2)])
    def test_invalid_range_rejected(self, start: int, end: int) -> None:
        """Empty, reversed or negative ranges raise InvalidRangeError."""
        with pytest.raises(InvalidRangeError):
            Range(start, end)

    def test_invalid_range_is_value_error(self) -> None:
        """InvalidRangeError is a ValueError carrying the offsets."""
        with pytest.raises(ValueError, match=r"\[3, 1\)") as excinfo:
            Range(3, 1)
        assert excinfo.value.start_offset == 3  # type: ignore[attr-defined]

    def test_ranges_sort_by_start(self) -> None:
        """Ranges order by start offset, then end offset."""
        assert sorted([Range(5, 8), Range(0, 3), Range(0, 2)]) == [
            Range(0, 2),
            Range(0, 3),
            Range(5, 8),
        ]

    def test_slice(self) -> None:
        """slice() returns the addressed text."""
        assert Range(4, 9).slice("The quick brown fox") == "quick"


class TestOverlapsAndTouches:
    """Overlap is strict; touching includes adjacency."""

    def test_overlapping(self) -> None:
        """Ranges sharing a character overlap."""
        assert overlaps(Range(0, 5), Range(4, 8))
        assert Range(4, 8).overlaps(Range(0, 5))

    def test_adjacent_do_not_overlap(self) -> None:
        """Abutting ranges do not overlap."""
        assert not overlaps(Range(0, 5), Range(5, 10))

    def test_adjacent_touch(self) -> None:
        """Abutting ranges touch."""
        assert touches(Range(0, 5), Range(5, 10))
        assert Range(5, 10).touches(Range(0, 5))

    def test_gap_does_not_touch(self) -> None:
        """A one-character gap separates ranges."""
        assert not touches(Range(0, 5), Range(6, 10))

    def test_contains_is_half_open(self) -> None:
        """contains() includes start and excludes end."""
        rng = Range(2, 4)
        assert contains(rng, 2)
        assert contains(rng, 3)
        assert not contains(rng, 4)
        assert not rng.contains(1)

    def test_covers(self) -> None:
        """covers() is true only for ranges lying inside."""
        assert Range(0, 10).covers(Range(2, 5))
        assert Range(0, 10).covers(Range(0, 10))
        assert not Range(0, 10).covers(Range(8, 12))


class TestMerge:
    """merge() unions overlapping or adjacent ranges."""

    def test_merge_overlapping(self) -> None:
        """Overlapping ranges merge to their hull."""
        assert merge(Range(0, 5), Range(3, 8)) == Range(0, 8)

    def test_merge_adjacent(self) -> None:
        """Adjacent ranges merge."""
        assert merge(Range(5, 10), Range(0, 5)) == Range(0, 10)

    def test_merge_contained(self) -> None:
        """Merging a contained range returns the outer one."""
        assert merge(Range(0, 10), Range(2, 4)) == Range(0, 10)

    def test_merge_disjoint_raises(self) -> None:
        """Disjoint ranges cannot be merged."""
        with pytest.raises(ValueError, match="disjoint"):
            merge(Range(0, 2), Range(3, 5))


class TestSubtract:
    """subtract() yields zero, one or two fragments."""

    def test_interior_cut_splits(self) -> None:
        """A cut strictly inside leaves before and after fragments."""
        assert subtract(Range(0, 10), Range(4, 6)) == [Range(0, 4), Range(6, 10)]

    def test_full_cover_removes(self) -> None:
        """A covering cut leaves nothing."""
        assert subtract(Range(0, 10), Range(0, 10)) == []
        assert subtract(Range(2, 5), Range(0, 10)) == []

    def test_edge_cut_trims(self) -> None:
        """A cut over one edge leaves one fragment."""
        assert subtract(Range(0, 10), Range(0, 3)) == [Range(3, 10)]
        assert subtract(Range(0, 10), Range(7, 12)) == [Range(0, 7)]

    def test_non_overlapping_cut_is_noop(self) -> None:
        """A cut outside the range (even adjacent) changes nothing."""
        assert subtract(Range(0, 5), Range(5, 8)) == [Range(0, 5)]
