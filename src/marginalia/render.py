"""Render highlighted spans as HTML.

Every segment becomes its own ``<span>`` carrying its absolute offsets, so a
mouse-up inside one text node maps back to span-text offsets:

    <p data-id="p-1-1">
      <span data-offset-start="0" data-offset-end="4"
            data-highlighted="false">The </span>
      <span data-offset-start="4" data-offset-end="15"
            data-highlighted="true" class="marginalia-highlight">quick brown</span>
      ...
    </p>
"""

from __future__ import annotations

import html
from typing import TYPE_CHECKING

from marginalia.highlight.segmenter import segment_text

if TYPE_CHECKING:
    from collections.abc import Sequence

    from marginalia.annotations.engine import AnnotationEngine
    from marginalia.highlight.range import Range
    from marginalia.highlight.segmenter import Segment
    from marginalia.markdown import TextSpan

HIGHLIGHT_CLASS = "marginalia-highlight"


def render_segment(segment: Segment) -> str:
    """Render one segment as an offset-tagged ``<span>``."""
    highlighted = "true" if segment.highlighted else "false"
    css = f' class="{HIGHLIGHT_CLASS}"' if segment.highlighted else ""
    return (
        f'<span data-offset-start="{segment.start}" '
        f'data-offset-end="{segment.end}" '
        f'data-highlighted="{highlighted}"{css}>'
        f"{html.escape(segment.text)}</span>"
    )


def render_span(span: TextSpan, ranges: Sequence[Range]) -> str:
    """Render a span's text, cut by *ranges*, inside its block element."""
    body = "".join(render_segment(s) for s in segment_text(span.text, ranges))
    return f'<{span.kind} data-id="{html.escape(span.part_id)}">{body}</{span.kind}>'


def render_message(
    engine: AnnotationEngine, message_id: int, spans: Sequence[TextSpan]
) -> str:
    """Render all spans of one message against the engine's highlights."""
    return "\n".join(
        render_span(span, engine.highlights.query(message_id, span.part_id))
        for span in spans
    )
