"""Saved-session storage backends."""

from marginalia.persistence.factory import clear_backend_cache, get_backend
from marginalia.persistence.memory import MemorySessionBackend
from marginalia.persistence.protocol import SessionBackend, SessionNotFoundError

__all__ = [
    "MemorySessionBackend",
    "SessionBackend",
    "SessionNotFoundError",
    "clear_backend_cache",
    "get_backend",
]
