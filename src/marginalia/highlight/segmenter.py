"""Cut a span's text into highlighted and plain segments for rendering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from marginalia.highlight.range import Range


@dataclass(frozen=True, slots=True)
class Segment:
    """A contiguous slice of span text.

    Attributes:
        text: The slice content.
        highlighted: Whether the slice is a stored highlight.
        start: Absolute start offset in the span text (inclusive).
        end: Absolute end offset in the span text (exclusive).
    """

    text: str
    highlighted: bool
    start: int
    end: int


def segment_text(text: str, ranges: Sequence[Range]) -> list[Segment]:
    """Split *text* into ordered segments around highlight *ranges*.

    *ranges* come from the highlight store and are therefore sorted and
    non-overlapping.  Segments cover ``[0, len(text))`` with no gaps, so
    joining their texts reproduces *text* exactly.  Ranges reaching past the
    end of *text* (stale offsets) are clipped to it.

    Args:
        text: The span's flattened text.
        ranges: Highlight ranges for the span.

    Returns:
        Segments in document order.  With no ranges this is a single plain
        segment holding the whole text, even when the text is empty.
    """
    if not ranges:
        return [Segment(text, False, 0, len(text))]

    segments: list[Segment] = []
    cursor = 0
    length = len(text)

    for rng in ranges:
        start = min(rng.start_offset, length)
        end = min(rng.end_offset, length)
        if cursor < start:
            segments.append(Segment(text[cursor:start], False, cursor, start))
        if start < end:
            segments.append(Segment(text[start:end], True, start, end))
        cursor = max(cursor, end)

    if cursor < length:
        segments.append(Segment(text[cursor:], False, cursor, length))

    return segments
