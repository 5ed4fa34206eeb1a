"""In-memory session backend for development and tests.

Enable with ``DEV__PERSISTENCE_MOCK=true``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from marginalia.persistence.protocol import SessionNotFoundError
from marginalia.session.records import ChatSessionPage, ChatSessionSummary
from marginalia.usage import aggregate_monthly

if TYPE_CHECKING:
    from datetime import datetime

    from marginalia.session.records import (
        ChatSessionRecord,
        MonthlyUsage,
        UsageLogRecord,
    )

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 30


class MemorySessionBackend:
    """Keeps validated records in a dict keyed by session id."""

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self._sessions: dict[int, ChatSessionRecord] = {}
        self._usage: list[UsageLogRecord] = []
        self._next_id = 1
        self.page_size = page_size

    async def save(self, record: ChatSessionRecord) -> int:
        if record.id is None:
            session_id = self._next_id
            self._next_id += 1
        elif record.id in self._sessions:
            session_id = record.id
        else:
            raise SessionNotFoundError(record.id)

        self._sessions[session_id] = record.model_copy(
            update={"id": session_id}, deep=True
        )
        logger.debug("Saved session %s (%d messages)", session_id, len(record.messages))
        return session_id

    async def load_one(self, session_id: int) -> ChatSessionRecord:
        try:
            return self._sessions[session_id].model_copy(deep=True)
        except KeyError:
            raise SessionNotFoundError(session_id) from None

    async def list_page(
        self, cursor: int | None = None, take: int | None = None
    ) -> ChatSessionPage:
        take = take or self.page_size
        ids = sorted(
            (i for i in self._sessions if cursor is None or i < cursor), reverse=True
        )[:take]
        items = [
            ChatSessionSummary(id=i, summary=self._sessions[i].summary) for i in ids
        ]
        next_cursor = ids[-1] if len(ids) == take else None
        return ChatSessionPage(items=items, next_cursor=next_cursor)

    async def delete(self, session_id: int) -> bool:
        return self._sessions.pop(session_id, None) is not None

    async def log_usage(self, entry: UsageLogRecord) -> None:
        self._usage.append(entry.model_copy())

    async def monthly_usage(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> list[MonthlyUsage]:
        return aggregate_monthly(self._usage, start, end)
