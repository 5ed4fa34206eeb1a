"""Data models for Marginalia chat messages."""

from marginalia.models.message import (
    Message,
    NonAppendMutationError,
    Role,
    StreamingBuffer,
    Usage,
)

__all__ = [
    "Message",
    "NonAppendMutationError",
    "Role",
    "StreamingBuffer",
    "Usage",
]
