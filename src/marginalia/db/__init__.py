"""Database module for Marginalia.

Provides async SQLModel operations with PostgreSQL.
"""

from __future__ import annotations

from marginalia.db.chat_sessions import (
    create_chat_session,
    delete_chat_session,
    get_chat_session,
    list_chat_sessions,
    replace_chat_session,
)
from marginalia.db.engine import close_db, get_engine, get_session, init_db
from marginalia.db.models import (
    ChatMessage,
    ChatSession,
    Memo,
    SupplementaryItem,
    SupplementaryThread,
    UsageLog,
)
from marginalia.db.usage_logs import aggregate_monthly_usage, create_usage_log

__all__ = [
    "ChatMessage",
    "ChatSession",
    "Memo",
    "SupplementaryItem",
    "SupplementaryThread",
    "UsageLog",
    "aggregate_monthly_usage",
    "close_db",
    "create_chat_session",
    "create_usage_log",
    "delete_chat_session",
    "get_chat_session",
    "get_engine",
    "get_session",
    "init_db",
    "list_chat_sessions",
    "replace_chat_session",
]
