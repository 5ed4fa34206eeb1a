"""Tests for span id resolution."""

from __future__ import annotations

from marginalia.highlight.span_ids import (
    EphemeralSpanId,
    SourcePosition,
    SpanIdResolver,
    StableSpanId,
    is_ephemeral,
    parse_span_id,
    stable_span_id,
)


class TestStableIds:
    """Positional ids are deterministic."""

    def test_format(self) -> None:
        """Stable ids read kind-line-column."""
        assert str(stable_span_id("p", SourcePosition(3, 1))) == "p-3-1"
        assert str(stable_span_id("h1", SourcePosition(1, 3))) == "h1-1-3"

    def test_same_position_same_id(self) -> None:
        """Two resolvers agree on positional ids."""
        pos = SourcePosition(7, 4)
        first = SpanIdResolver().resolve("li", pos)
        second = SpanIdResolver().resolve("li", pos)
        assert first == second
        assert isinstance(first, StableSpanId)
        assert first.is_persistable


class TestEphemeralIds:
    """Fallback ids are random but cached per node for one render."""

    def test_no_position_gives_ephemeral(self) -> None:
        """Missing position yields an EphemeralSpanId."""
        span_id = SpanIdResolver().resolve("p", None, node_key="n1")
        assert isinstance(span_id, EphemeralSpanId)
        assert not span_id.is_persistable
        assert is_ephemeral(str(span_id))

    def test_cached_per_node_key(self) -> None:
        """The same node keeps its id for the resolver's lifetime."""
        resolver = SpanIdResolver()
        assert resolver.resolve("p", None, "n1") == resolver.resolve("p", None, "n1")

    def test_distinct_nodes_distinct_ids(self) -> None:
        """Different nodes get different ids."""
        resolver = SpanIdResolver()
        assert resolver.resolve("p", None, "n1") != resolver.resolve("p", None, "n2")

    def test_clear_forgets_ids(self) -> None:
        """A new render tree (clear) assigns fresh ids."""
        resolver = SpanIdResolver()
        before = resolver.resolve("p", None, "n1")
        resolver.clear()
        assert resolver.resolve("p", None, "n1") != before

    def test_no_node_key_is_never_cached(self) -> None:
        """Without a node key every call generates a new id."""
        resolver = SpanIdResolver()
        assert resolver.resolve("p", None) != resolver.resolve("p", None)


class TestParseSpanId:
    """Persisted part ids are classified by prefix."""

    def test_parse_stable(self) -> None:
        """Plain ids parse as stable."""
        assert parse_span_id("p-1-1") == StableSpanId("p-1-1")

    def test_parse_ephemeral(self) -> None:
        """Prefixed ids parse as ephemeral."""
        assert isinstance(parse_span_id("eph-p-00ff"), EphemeralSpanId)
