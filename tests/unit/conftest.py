"""Shared fixtures for unit tests."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from marginalia.annotations.engine import AnnotationEngine
from marginalia.models import Role, StreamingBuffer, Usage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from marginalia.models import Message

QUICK_FOX = "The quick brown fox"

FIXED_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


class FakeTransport:
    """ChatTransport that replays canned chunks and records its requests."""

    def __init__(
        self,
        chunks: Sequence[str] = ("An adjective ", "meaning fast."),
        usage: Usage | None = None,
        error: Exception | None = None,
    ) -> None:
        self.chunks = list(chunks)
        self.usage = usage or Usage(prompt_tokens=120, completion_tokens=30)
        self.error = error
        self.requests: list[list[Message]] = []
        self.systems: list[str | None] = []

    async def stream(
        self,
        messages: Sequence[Message],
        buffer: StreamingBuffer,
        *,
        system: str | None = None,
    ) -> Usage:
        self.requests.append(list(messages))
        self.systems.append(system)
        buffer.model = "claude-sonnet-4-20250514"
        for chunk in self.chunks:
            buffer.append(chunk)
        if self.error is not None:
            raise self.error
        return self.usage


@pytest.fixture
def engine() -> AnnotationEngine:
    """Engine holding one user prompt and one assistant reply (ids 1 and 2)."""
    eng = AnnotationEngine()
    eng.add_message(Role.USER, "Describe the fox")
    eng.add_message(
        Role.ASSISTANT,
        QUICK_FOX,
        model="claude-sonnet-4-20250514",
        usage=Usage(prompt_tokens=1000, completion_tokens=200),
    )
    return eng


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_transport() -> type[FakeTransport]:
    """The FakeTransport class, for tests needing custom chunks or errors."""
    return FakeTransport
