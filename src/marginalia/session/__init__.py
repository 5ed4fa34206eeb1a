"""Session records and the serializer between them and in-memory state."""

from marginalia.session.records import (
    ChatSessionPage,
    ChatSessionRecord,
    ChatSessionSummary,
    MemoRecord,
    MessageRecord,
    SupplementaryItemRecord,
    SupplementaryRecord,
)
from marginalia.session.serializer import (
    SessionFormatError,
    SessionState,
    deserialize,
    serialize,
)

__all__ = [
    "ChatSessionPage",
    "ChatSessionRecord",
    "ChatSessionSummary",
    "MemoRecord",
    "MessageRecord",
    "SessionFormatError",
    "SessionState",
    "SupplementaryItemRecord",
    "SupplementaryRecord",
    "deserialize",
    "serialize",
]
