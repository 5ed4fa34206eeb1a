"""Persisted chat-session record shape.

The record is JSON-compatible and uses camelCase keys on the wire
(``clientSideId``, ``rangeStart``, ``supplementaryMessages`` ...).  Python code
uses the snake_case attribute names; ``to_payload()`` produces the wire form
and ``ChatSessionRecord.model_validate`` accepts it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from marginalia.models import Role


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_payload(self) -> dict[str, Any]:
        """Dump to the JSON-compatible wire form."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class _RangedRecord(_Record):
    client_side_id: str
    range_start: int = Field(ge=0)
    range_end: int

    @model_validator(mode="after")
    def _range_not_empty(self) -> Self:
        if self.range_end <= self.range_start:
            msg = (
                f"rangeEnd ({self.range_end}) must be greater than "
                f"rangeStart ({self.range_start})"
            )
            raise ValueError(msg)
        return self


class MemoRecord(_RangedRecord):
    """A memo attached to ``[rangeStart, rangeEnd)`` of part ``clientSideId``."""

    memo: str


class SupplementaryItemRecord(_Record):
    """One message of a supplementary thread."""

    role: Role
    content: str
    model: str = ""
    timestamp: datetime
    cost: float = 0.0


class SupplementaryRecord(_RangedRecord):
    """A supplementary thread attached to a range."""

    items: list[SupplementaryItemRecord] = Field(default_factory=list)


class MessageRecord(_Record):
    """A chat message with its embedded annotations."""

    id: int
    role: Role
    content: str
    model: str = ""
    timestamp: datetime
    cost: float = 0.0
    memos: list[MemoRecord] | None = None
    supplementary_messages: list[SupplementaryRecord] | None = None


class ChatSessionRecord(_Record):
    """A whole saved session."""

    id: int | None = None
    summary: str = ""
    messages: list[MessageRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_message_ids(self) -> Self:
        ids = [m.id for m in self.messages]
        if len(ids) != len(set(ids)):
            msg = "Message ids must be unique within a session"
            raise ValueError(msg)
        return self


class ChatSessionSummary(_Record):
    """Listing entry for a saved session."""

    id: int
    summary: str


class ChatSessionPage(_Record):
    """One page of session summaries, newest first."""

    items: list[ChatSessionSummary]
    next_cursor: int | None = None


class UsageLogRecord(_Record):
    """Token usage and cost of one completed model reply."""

    model: str
    prompt_tokens: int = Field(ge=0)
    completion_tokens: int = Field(ge=0)
    cost: float = 0.0
    created_at: datetime


class MonthlyUsage(_Record):
    """Usage totals for one calendar month (UTC)."""

    month: str
    requests: int
    prompt_tokens: int
    completion_tokens: int
    cost: float
