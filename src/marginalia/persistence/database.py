"""PostgreSQL session backend over ``marginalia.db``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from marginalia.db.chat_sessions import (
    create_chat_session,
    delete_chat_session,
    get_chat_session,
    list_chat_sessions,
    replace_chat_session,
)
from marginalia.db.usage_logs import aggregate_monthly_usage, create_usage_log
from marginalia.persistence.memory import DEFAULT_PAGE_SIZE
from marginalia.persistence.protocol import SessionNotFoundError

if TYPE_CHECKING:
    from datetime import datetime

    from marginalia.session.records import (
        ChatSessionPage,
        ChatSessionRecord,
        MonthlyUsage,
        UsageLogRecord,
    )

logger = logging.getLogger(__name__)


class DatabaseSessionBackend:
    """Stores sessions and the usage log in the configured database."""

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.page_size = page_size

    async def save(self, record: ChatSessionRecord) -> int:
        if record.id is None:
            session_id = await create_chat_session(record)
            logger.info("Created chat session %s", session_id)
            return session_id
        if not await replace_chat_session(record.id, record):
            raise SessionNotFoundError(record.id)
        logger.info("Updated chat session %s", record.id)
        return record.id

    async def load_one(self, session_id: int) -> ChatSessionRecord:
        record = await get_chat_session(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)
        return record

    async def list_page(
        self, cursor: int | None = None, take: int | None = None
    ) -> ChatSessionPage:
        return await list_chat_sessions(cursor, take or self.page_size)

    async def delete(self, session_id: int) -> bool:
        return await delete_chat_session(session_id)

    async def log_usage(self, entry: UsageLogRecord) -> None:
        await create_usage_log(entry)

    async def monthly_usage(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> list[MonthlyUsage]:
        return await aggregate_monthly_usage(start, end)
