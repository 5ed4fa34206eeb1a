"""Span identifier resolution for renderable Markdown nodes.

Every text-bearing node (paragraph, heading, list item) gets a ``part_id``
string that keys its highlights and annotations.  When the parser reports a
source position the id is derived from it (``"{kind}-{line}-{column}"``) and
re-parsing the same Markdown yields the same id.  Without a position the
resolver falls back to a random token that is only valid for the lifetime of
one render; annotations keyed by such ids are orphaned on reload.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Hashable

logger = logging.getLogger(__name__)

EPHEMERAL_PREFIX = "eph-"
_TOKEN_BYTES = 8


@dataclass(frozen=True, slots=True)
class SourcePosition:
    """1-based line and column of a node's first character in the source."""

    line: int
    column: int


@dataclass(frozen=True, slots=True)
class StableSpanId:
    """Span id derived from structural position; reproducible across parses."""

    value: str

    @property
    def is_persistable(self) -> bool:
        return True

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class EphemeralSpanId:
    """Randomly generated span id, valid only for one render tree."""

    value: str

    @property
    def is_persistable(self) -> bool:
        return False

    def __str__(self) -> str:
        return self.value


type SpanId = StableSpanId | EphemeralSpanId


def stable_span_id(kind: str, position: SourcePosition) -> StableSpanId:
    """Build the positional id ``"{kind}-{line}-{column}"``."""
    return StableSpanId(f"{kind}-{position.line}-{position.column}")


def is_ephemeral(part_id: str) -> bool:
    """Return True if *part_id* was produced by the random fallback."""
    return part_id.startswith(EPHEMERAL_PREFIX)


def parse_span_id(part_id: str) -> SpanId:
    """Classify a persisted ``part_id`` string back into its variant."""
    if is_ephemeral(part_id):
        return EphemeralSpanId(part_id)
    return StableSpanId(part_id)


class SpanIdResolver:
    """Assigns span ids for one render pass.

    Fallback ids are cached by node key so the same node keeps its id for as
    long as this resolver (i.e. the render tree) lives.  Create a new resolver
    per render tree.
    """

    def __init__(self) -> None:
        self._ephemeral: dict[Hashable, EphemeralSpanId] = {}

    def resolve(
        self,
        kind: str,
        position: SourcePosition | None,
        node_key: Hashable | None = None,
    ) -> SpanId:
        """Return the span id for a node.

        Args:
            kind: Element kind tag (``"p"``, ``"h1"``, ``"li"`` ...).
            position: Source position, if the parser reported one.
            node_key: Identity of the node within this render, used to cache
                fallback ids.  ``None`` always generates a fresh id.

        Returns:
            A ``StableSpanId`` when *position* is known, otherwise an
            ``EphemeralSpanId``.
        """
        if position is not None:
            return stable_span_id(kind, position)

        if node_key is not None and node_key in self._ephemeral:
            return self._ephemeral[node_key]

        span_id = EphemeralSpanId(
            f"{EPHEMERAL_PREFIX}{kind}-{secrets.token_hex(_TOKEN_BYTES)}"
        )
        logger.debug("No source position for %s node; assigned %s", kind, span_id)
        if node_key is not None:
            self._ephemeral[node_key] = span_id
        return span_id

    def clear(self) -> None:
        """Forget cached fallback ids (the render tree was discarded)."""
        self._ephemeral.clear()
