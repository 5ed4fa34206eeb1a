"""Tests for segmenting span text around highlights."""

from __future__ import annotations

import pytest

from marginalia.highlight.range import Range
from marginalia.highlight.segmenter import Segment, segment_text

QUICK_FOX = "The quick brown fox"


class TestSegmentText:
    """segment_text covers the whole text without gaps."""

    def test_no_ranges_single_plain_segment(self) -> None:
        """Zero ranges give one plain segment for the whole text."""
        assert segment_text(QUICK_FOX, []) == [Segment(QUICK_FOX, False, 0, 19)]

    def test_empty_text_no_ranges(self) -> None:
        """Empty text still yields one (empty) segment."""
        assert segment_text("", []) == [Segment("", False, 0, 0)]

    def test_single_highlight(self) -> None:
        """A middle highlight yields plain, highlight, plain."""
        assert segment_text(QUICK_FOX, [Range(4, 9)]) == [
            Segment("The ", False, 0, 4),
            Segment("quick", True, 4, 9),
            Segment(" brown fox", False, 9, 19),
        ]

    def test_highlight_at_edges(self) -> None:
        """Highlights at start and end leave no empty segments."""
        segments = segment_text(QUICK_FOX, [Range(0, 3), Range(16, 19)])
        assert [s.text for s in segments] == ["The", " quick brown ", "fox"]
        assert [s.highlighted for s in segments] == [True, False, True]

    def test_ranges_past_end_are_clipped(self) -> None:
        """Stale ranges beyond the text are clipped to it."""
        segments = segment_text("short", [Range(3, 40)])
        assert segments == [Segment("sho", False, 0, 3), Segment("rt", True, 3, 5)]

    @pytest.mark.parametrize(
        "ranges",
        [
            [],
            [Range(0, 19)],
            [Range(1, 2), Range(4, 9), Range(10, 15)],
            [Range(0, 1), Range(18, 19)],
        ],
    )
    def test_concatenation_reproduces_text(self, ranges: list[Range]) -> None:
        """Joining segment texts in order gives back the span text."""
        segments = segment_text(QUICK_FOX, ranges)
        assert "".join(s.text for s in segments) == QUICK_FOX
        assert segments[0].start == 0
        assert segments[-1].end == len(QUICK_FOX)
        for left, right in zip(segments, segments[1:], strict=False):
            assert left.end == right.start

    def test_is_pure(self) -> None:
        """Same input gives the same output."""
        ranges = [Range(4, 9)]
        assert segment_text(QUICK_FOX, ranges) == segment_text(QUICK_FOX, ranges)
