"""Extract annotatable text spans from Markdown.

Paragraphs, headings and list items become ``TextSpan`` objects carrying the
flattened inline text (markup removed) and a span id.  markdown-it-py reports
0-based source lines per block token (``token.map``); these are converted to
the 1-based line/column the span ids are built from.  The column is where the
block's inline content begins on its first source line.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from markdown_it import MarkdownIt

from marginalia.highlight.span_ids import SourcePosition, SpanIdResolver

if TYPE_CHECKING:
    from markdown_it.token import Token

    from marginalia.highlight.span_ids import SpanId

logger = logging.getLogger(__name__)

_HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})


@dataclass(frozen=True, slots=True)
class TextSpan:
    """One renderable text unit of a Markdown document.

    Attributes:
        kind: Element kind (``"p"``, ``"h1"`` .. ``"h6"``, ``"li"``).
        span_id: Stable or ephemeral id.
        text: Flattened inline text; selection offsets index into this.
        position: 1-based source position, when known.
    """

    kind: str
    span_id: SpanId
    text: str
    position: SourcePosition | None = None

    @property
    def part_id(self) -> str:
        return str(self.span_id)


def _parser() -> MarkdownIt:
    return MarkdownIt("commonmark")


def flatten_inline(token: Token) -> str:
    """Concatenate the text content of an inline token's children."""
    parts: list[str] = []
    for child in token.children or ():
        match child.type:
            case "text" | "code_inline":
                parts.append(child.content)
            case "softbreak" | "hardbreak":
                parts.append("\n")
            case "image":
                parts.append(child.content)
            case _:
                pass
    return "".join(parts)


def _position(token: Token, inline: Token, lines: list[str]) -> SourcePosition | None:
    if not token.map:
        return None
    line_index = token.map[0]
    source_line = lines[line_index] if line_index < len(lines) else ""
    first = inline.content.split("\n", 1)[0]
    column = source_line.find(first) if first else -1
    if column < 0:
        column = len(source_line) - len(source_line.lstrip())
    return SourcePosition(line=line_index + 1, column=column + 1)


def extract_spans(
    source: str, resolver: SpanIdResolver | None = None
) -> list[TextSpan]:
    """List the annotatable spans of *source* in document order.

    Args:
        source: Markdown text (a whole or partially streamed message).
        resolver: Span id resolver for the current render tree.  A fresh one
            is used when omitted.

    Returns:
        Spans for every paragraph, heading and list item.  Paragraphs inside
        a list item are reported with kind ``"li"``.
    """
    resolver = resolver or SpanIdResolver()
    tokens = _parser().parse(source)
    lines = source.splitlines()
    spans: list[TextSpan] = []
    list_depth = 0

    for index, token in enumerate(tokens):
        if token.type == "list_item_open":
            list_depth += 1
            continue
        if token.type == "list_item_close":
            list_depth -= 1
            continue
        if token.type == "heading_open" and token.tag in _HEADING_TAGS:
            kind = token.tag
        elif token.type == "paragraph_open":
            kind = "li" if list_depth else "p"
        else:
            continue

        inline = tokens[index + 1]
        if inline.type != "inline":
            continue
        position = _position(token, inline, lines)
        span_id = resolver.resolve(kind, position, node_key=index)
        spans.append(TextSpan(kind, span_id, flatten_inline(inline), position))

    logger.debug("Extracted %d spans from %d source lines", len(spans), len(lines))
    return spans
