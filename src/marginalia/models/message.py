"""Chat message models.

These are plain dataclasses for in-memory use.  The persisted shape lives in
``marginalia.session.records``; the SQL tables in ``marginalia.db.models``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


class Role(StrEnum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Usage:
    """Token usage reported by the chat transport when a stream completes."""

    prompt_tokens: int
    completion_tokens: int


@dataclass(frozen=True)
class Message:
    """A committed chat message.

    Attributes:
        id: Process-assigned, monotonically increasing identifier.
        role: Who produced the message.
        content: Full message text (Markdown for assistant output).
        model: Model identifier for assistant messages.
        timestamp: Creation time.
        input_tokens: Prompt tokens billed for producing this message.
        output_tokens: Completion tokens billed for producing this message.
        cost: Cost in dollars as loaded from a persisted record.  Freshly
            generated messages carry token counts instead and leave this None.
    """

    id: int
    role: Role
    content: str
    model: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)
    input_tokens: int | None = None
    output_tokens: int | None = None
    cost: float | None = None

    def with_usage(self, usage: Usage) -> Message:
        """Return a copy carrying *usage* token counts."""
        return replace(
            self,
            input_tokens=usage.prompt_tokens,
            output_tokens=usage.completion_tokens,
        )


class NonAppendMutationError(ValueError):
    """Raised when streaming content would change already-emitted text."""


class StreamingBuffer:
    """Content of an assistant message still being generated.

    Content only ever grows by appending, and each append bumps ``version``.
    A range captured against version ``v`` stays valid for every later
    version because earlier characters never change.
    """

    def __init__(self, role: Role = Role.ASSISTANT, model: str | None = None) -> None:
        self.role = role
        self.model = model
        self._chunks: list[str] = []
        self._length = 0
        self._version = 0
        self._text_cache: str | None = ""

    @property
    def version(self) -> int:
        return self._version

    @property
    def content(self) -> str:
        if self._text_cache is None:
            self._text_cache = "".join(self._chunks)
        return self._text_cache

    def __len__(self) -> int:
        return self._length

    def append(self, chunk: str) -> int:
        """Append a streamed chunk and return the new version.

        Empty chunks are ignored and do not bump the version.
        """
        if chunk:
            self._chunks.append(chunk)
            self._length += len(chunk)
            self._version += 1
            self._text_cache = None
        return self._version

    def extend_to(self, content: str) -> int:
        """Advance to *content*, which must start with the current content.

        Transports that report the full text so far (instead of deltas) use
        this; only the new suffix is appended.

        Raises:
            NonAppendMutationError: If *content* rewrites existing text.
        """
        current = self.content
        if not content.startswith(current):
            msg = (
                f"Streaming content changed before offset {len(current)}; "
                "only appends are allowed"
            )
            raise NonAppendMutationError(msg)
        return self.append(content[len(current) :])

    def is_valid_since(self, version: int, end_offset: int) -> bool:
        """Check that a range ending at *end_offset* captured at *version* holds.

        Append-only growth keeps captured ranges valid as long as the text
        they reference had already been streamed.
        """
        return version <= self._version and end_offset <= self._length

    def commit(self, message_id: int, usage: Usage | None = None) -> Message:
        """Freeze the buffer into a committed ``Message``."""
        return Message(
            id=message_id,
            role=self.role,
            content=self.content,
            model=self.model,
            input_tokens=usage.prompt_tokens if usage else None,
            output_tokens=usage.completion_tokens if usage else None,
        )
