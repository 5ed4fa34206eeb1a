"""Highlight engine: ranges, span ids, segmentation, selection, storage."""

from marginalia.highlight.range import (
    InvalidRangeError,
    Range,
    contains,
    merge,
    overlaps,
    subtract,
    touches,
)
from marginalia.highlight.segmenter import Segment, segment_text
from marginalia.highlight.selection import (
    CollapsedSelectionError,
    CrossNodeSelectionError,
    OutOfSegmentSelectionError,
    ResolvedSelection,
    SelectionError,
    SelectionEvent,
    SelectionMode,
    resolve_selection,
)
from marginalia.highlight.span_ids import (
    EphemeralSpanId,
    SourcePosition,
    SpanId,
    SpanIdResolver,
    StableSpanId,
    is_ephemeral,
)
from marginalia.highlight.store import HighlightStore

__all__ = [
    "CollapsedSelectionError",
    "CrossNodeSelectionError",
    "OutOfSegmentSelectionError",
    "EphemeralSpanId",
    "HighlightStore",
    "InvalidRangeError",
    "Range",
    "ResolvedSelection",
    "Segment",
    "SelectionError",
    "SelectionEvent",
    "SelectionMode",
    "SourcePosition",
    "SpanId",
    "SpanIdResolver",
    "StableSpanId",
    "contains",
    "is_ephemeral",
    "merge",
    "overlaps",
    "resolve_selection",
    "segment_text",
    "subtract",
    "touches",
]
