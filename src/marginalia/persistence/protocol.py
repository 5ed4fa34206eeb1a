"""Protocol defining the session storage interface.

Both DatabaseSessionBackend and MemorySessionBackend implement this protocol,
allowing them to be used interchangeably.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from datetime import datetime

    from marginalia.session.records import (
        ChatSessionPage,
        ChatSessionRecord,
        MonthlyUsage,
        UsageLogRecord,
    )


class SessionNotFoundError(LookupError):
    """Raised when a session id does not exist in the backend."""

    def __init__(self, session_id: int) -> None:
        self.session_id = session_id
        super().__init__(f"Chat session {session_id} not found")


class SessionBackend(Protocol):
    """Storage for whole chat-session records and the usage log."""

    async def save(self, record: ChatSessionRecord) -> int:
        """Create a session, or overwrite it when ``record.id`` is set.

        Returns:
            The session id.

        Raises:
            SessionNotFoundError: If ``record.id`` is set but unknown.
        """
        ...

    async def load_one(self, session_id: int) -> ChatSessionRecord:
        """Load a session.

        Raises:
            SessionNotFoundError: If *session_id* is unknown.
        """
        ...

    async def list_page(
        self, cursor: int | None = None, take: int | None = None
    ) -> ChatSessionPage:
        """List session summaries newest first, after *cursor*."""
        ...

    async def delete(self, session_id: int) -> bool:
        """Delete a session; returns False if it did not exist."""
        ...

    async def log_usage(self, entry: UsageLogRecord) -> None:
        """Append one entry to the usage log."""
        ...

    async def monthly_usage(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> list[MonthlyUsage]:
        """Total the usage log per UTC month over ``[start, end)``."""
        ...
