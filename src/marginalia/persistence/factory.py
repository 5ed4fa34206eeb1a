"""Session backend factory.

Provides a factory function to get the appropriate session backend
based on configuration (PostgreSQL or in-memory for development).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from marginalia.config import get_settings

if TYPE_CHECKING:
    from marginalia.persistence.protocol import SessionBackend


# Cached memory backend so saved sessions survive between calls
_memory_backend_instance: SessionBackend | None = None


def get_backend() -> SessionBackend:
    """Get the session backend selected by configuration.

    If DEV__PERSISTENCE_MOCK=true, returns the in-memory backend (singleton).
    Otherwise, returns the database backend.

    Raises:
        ValueError: If DATABASE__URL is empty and mock mode is disabled.
    """
    global _memory_backend_instance  # noqa: PLW0603
    settings = get_settings()
    page_size = settings.annotation.session_page_size

    if settings.dev.persistence_mock:
        if _memory_backend_instance is None:
            from marginalia.persistence.memory import MemorySessionBackend

            _memory_backend_instance = MemorySessionBackend(page_size)
        return _memory_backend_instance

    if not settings.database.url:
        msg = (
            "DATABASE__URL is required when DEV__PERSISTENCE_MOCK is not enabled. "
            "Set it in your .env file."
        )
        raise ValueError(msg)

    from marginalia.persistence.database import DatabaseSessionBackend

    return DatabaseSessionBackend(page_size)


def clear_backend_cache() -> None:
    """Clear the configuration and memory backend caches."""
    global _memory_backend_instance  # noqa: PLW0603
    get_settings.cache_clear()
    _memory_backend_instance = None
