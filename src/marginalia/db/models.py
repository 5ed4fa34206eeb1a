"""SQLModel tables for saved chat sessions.

A session owns its messages; each message owns its memos and supplementary
threads; each thread owns its items.  Child rows are removed by
``ON DELETE CASCADE`` when the parent goes.  ``usage_log`` stands alone:
one row per completed model reply.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def _timestamptz_column() -> Any:
    """Create a TIMESTAMP WITH TIME ZONE column for PostgreSQL."""
    return Column(DateTime(timezone=True), nullable=False)


def _cascade_fk_column(target: str) -> Any:
    """Create an integer foreign key column with CASCADE DELETE."""
    return Column(Integer, ForeignKey(target, ondelete="CASCADE"), nullable=False)


def _range_check(table: str) -> CheckConstraint:
    return CheckConstraint(
        "range_start >= 0 AND range_end > range_start",
        name=f"ck_{table}_range",
    )


class ChatSession(SQLModel, table=True):
    """A saved conversation.

    Attributes:
        id: Autoincrement primary key; also the pagination cursor.
        summary: User-entered title.
        created_at: When the session was first saved.
        updated_at: When the session was last overwritten.
    """

    __tablename__ = "chat_session"

    id: int | None = Field(default=None, primary_key=True)
    summary: str = Field(default="", sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )
    updated_at: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )


class ChatMessage(SQLModel, table=True):
    """One message of a saved session.

    ``message_id`` is the in-session message id the annotations refer to;
    ``position`` keeps conversation order.
    """

    __tablename__ = "chat_message"
    __table_args__ = (
        UniqueConstraint(
            "session_id", "message_id", name="uq_chat_message_session_message"
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    session_id: int = Field(sa_column=_cascade_fk_column("chat_session.id"))
    message_id: int
    position: int
    role: str = Field(max_length=20)
    content: str = Field(sa_column=Column(Text, nullable=False))
    model: str = Field(default="", max_length=100)
    timestamp: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )
    cost: float = Field(default=0.0, sa_column=Column(Float, nullable=False))


class Memo(SQLModel, table=True):
    """A memo attached to a range of one span of a message."""

    __tablename__ = "memo"
    __table_args__ = (_range_check("memo"),)

    id: int | None = Field(default=None, primary_key=True)
    message_row_id: int = Field(sa_column=_cascade_fk_column("chat_message.id"))
    client_side_id: str = Field(max_length=100)
    range_start: int
    range_end: int
    memo: str = Field(sa_column=Column(Text, nullable=False))


class SupplementaryThread(SQLModel, table=True):
    """A supplementary message thread attached to a range."""

    __tablename__ = "supplementary_thread"
    __table_args__ = (_range_check("supplementary_thread"),)

    id: int | None = Field(default=None, primary_key=True)
    message_row_id: int = Field(sa_column=_cascade_fk_column("chat_message.id"))
    client_side_id: str = Field(max_length=100)
    range_start: int
    range_end: int


class SupplementaryItem(SQLModel, table=True):
    """One message of a supplementary thread."""

    __tablename__ = "supplementary_item"

    id: int | None = Field(default=None, primary_key=True)
    thread_id: int = Field(sa_column=_cascade_fk_column("supplementary_thread.id"))
    position: int
    role: str = Field(max_length=20)
    content: str = Field(sa_column=Column(Text, nullable=False))
    model: str = Field(default="", max_length=100)
    timestamp: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )
    cost: float = Field(default=0.0, sa_column=Column(Float, nullable=False))


class UsageLog(SQLModel, table=True):
    """Token usage and cost of one completed model reply."""

    __tablename__ = "usage_log"

    id: int | None = Field(default=None, primary_key=True)
    model: str = Field(default="", max_length=100)
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    cost: float = Field(default=0.0, sa_column=Column(Float, nullable=False))
    created_at: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )
