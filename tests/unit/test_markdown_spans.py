"""Tests for extracting annotatable spans from Markdown."""

from __future__ import annotations

from marginalia.highlight.span_ids import SourcePosition, SpanIdResolver, StableSpanId
from marginalia.markdown import TextSpan, extract_spans

DOC = """# Foxes

The **quick** brown fox
jumps over the `lazy` dog.

- first item
- second *item*

1. Ordered

   Loose paragraph
"""


class TestExtractSpans:
    """Paragraphs, headings and list items become spans."""

    def test_kinds_in_document_order(self) -> None:
        """Every block is reported once, in order."""
        spans = extract_spans(DOC)
        assert [s.kind for s in spans] == ["h1", "p", "li", "li", "li", "li"]

    def test_heading_id_and_text(self) -> None:
        """Heading ids use the inline content's column."""
        heading = extract_spans(DOC)[0]
        assert heading == TextSpan(
            "h1", StableSpanId("h1-1-3"), "Foxes", SourcePosition(1, 3)
        )

    def test_paragraph_flattens_inline_markup(self) -> None:
        """Emphasis and code markers are removed; soft breaks become newlines."""
        paragraph = extract_spans(DOC)[1]
        assert paragraph.part_id == "p-3-1"
        assert paragraph.text == "The quick brown fox\njumps over the lazy dog."

    def test_list_items(self) -> None:
        """List item ids point past the bullet marker."""
        first, second = extract_spans(DOC)[2:4]
        assert (first.part_id, first.text) == ("li-6-3", "first item")
        assert (second.part_id, second.text) == ("li-7-3", "second item")

    def test_loose_list_paragraphs(self) -> None:
        """Each paragraph of a loose list item is its own span."""
        ordered, loose = extract_spans(DOC)[4:]
        assert ordered.part_id == "li-9-4"
        assert loose.part_id == "li-11-4"
        assert loose.text == "Loose paragraph"

    def test_reparse_gives_same_ids(self) -> None:
        """Ids are stable across parses of the same source."""
        first = [s.part_id for s in extract_spans(DOC)]
        second = [s.part_id for s in extract_spans(DOC, SpanIdResolver())]
        assert first == second

    def test_streaming_prefix_keeps_earlier_ids(self) -> None:
        """Appending content does not change ids of earlier blocks."""
        partial = extract_spans("# Foxes\n\nThe quick")
        full = extract_spans("# Foxes\n\nThe quick brown fox\n\nMore.")
        assert [s.part_id for s in partial] == [s.part_id for s in full[:2]]
        assert full[1].text.startswith(partial[1].text)

    def test_code_blocks_are_not_spans(self) -> None:
        """Fenced code is not annotatable."""
        spans = extract_spans("```\ncode\n```\n\nafter")
        assert [(s.kind, s.text) for s in spans] == [("p", "after")]

    def test_empty_source(self) -> None:
        """Empty Markdown has no spans."""
        assert extract_spans("") == []
