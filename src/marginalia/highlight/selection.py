"""Resolve a user's text selection inside a rendered segment.

The interaction layer reports the selection as it sees it in the rendered
tree: the text nodes at either end, offsets local to the segment's text node,
and the ``data-offset-start`` / ``data-highlighted`` attributes of the
enclosing segment element.  This module turns that into an absolute range in
the span text plus the action the selection implies.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from marginalia.highlight.range import Range

if TYPE_CHECKING:
    from collections.abc import Hashable

    from marginalia.highlight.segmenter import Segment


class SelectionMode(StrEnum):
    """What a resolved selection asks the engine to do."""

    ADD = "add"
    REMOVE = "remove"


class SelectionError(ValueError):
    """Base class for selections the engine does not act on."""


class CrossNodeSelectionError(SelectionError):
    """The selection spans more than one text node."""


class CollapsedSelectionError(SelectionError):
    """The selection is empty (caret only)."""


class OutOfSegmentSelectionError(SelectionError):
    """A local offset falls outside the segment's text."""


@dataclass(frozen=True, slots=True)
class SelectionEvent:
    """A raw selection event localized to one rendered segment.

    Attributes:
        start_node: Identity of the text node where the selection starts.
        end_node: Identity of the text node where the selection ends.
        local_start: Start offset within the start node's text.
        local_end: End offset within the end node's text.
        segment_start: Absolute offset of the segment within the span text.
        segment_end: Absolute end offset of the segment (exclusive).
        highlighted: Whether the enclosing segment is a highlight.
        is_text_node: False when the selection container is an element.
    """

    start_node: Hashable
    end_node: Hashable
    local_start: int
    local_end: int
    segment_start: int
    segment_end: int
    highlighted: bool
    is_text_node: bool = True

    @classmethod
    def within(
        cls,
        segment: Segment,
        local_start: int,
        local_end: int,
        node: Hashable | None = None,
    ) -> SelectionEvent:
        """Build an event for a selection inside a single segment."""
        key = node if node is not None else (segment.start, segment.end)
        return cls(
            start_node=key,
            end_node=key,
            local_start=local_start,
            local_end=local_end,
            segment_start=segment.start,
            segment_end=segment.end,
            highlighted=segment.highlighted,
        )


@dataclass(frozen=True, slots=True)
class ResolvedSelection:
    """Absolute selection range within the span and the requested action."""

    range: Range
    mode: SelectionMode

    @property
    def absolute_start(self) -> int:
        return self.range.start_offset

    @property
    def absolute_end(self) -> int:
        return self.range.end_offset


def resolve_selection(event: SelectionEvent) -> ResolvedSelection:
    """Compute the absolute range and mode for *event*.

    Args:
        event: The selection as reported by the interaction layer.

    Returns:
        ``ResolvedSelection`` whose range is ``segment_start`` plus the local
        offsets.  Mode is ``REMOVE`` inside a highlighted segment, ``ADD``
        otherwise.

    Raises:
        CrossNodeSelectionError: If the selection does not start and end in
            the same text node.
        CollapsedSelectionError: If the selection is empty.
        OutOfSegmentSelectionError: If an offset lies outside the segment.
    """
    if event.start_node != event.end_node or not event.is_text_node:
        msg = "Selection spans more than one text node"
        raise CrossNodeSelectionError(msg)

    local_start, local_end = sorted((event.local_start, event.local_end))
    length = event.segment_end - event.segment_start
    if event.segment_start < 0 or local_start < 0 or local_end > length:
        msg = (
            f"Selection [{local_start}, {local_end}) is outside the segment "
            f"[{event.segment_start}, {event.segment_end})"
        )
        raise OutOfSegmentSelectionError(msg)
    if local_start == local_end:
        msg = "Selection is collapsed"
        raise CollapsedSelectionError(msg)

    rng = Range(event.segment_start + local_start, event.segment_start + local_end)
    mode = SelectionMode.REMOVE if event.highlighted else SelectionMode.ADD
    return ResolvedSelection(range=rng, mode=mode)
