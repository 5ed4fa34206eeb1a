"""Integration test configuration.

Database tests run against the PostgreSQL instance named by
``TEST_DATABASE_URL``; they are skipped when it is unset.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest_asyncio

from marginalia.db import close_db

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    import pytest


@pytest_asyncio.fixture(autouse=True)
async def _test_database(monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[None]:
    """Point DATABASE__URL at the test database and dispose the engine after.

    The engine binds to the running event loop, so each test gets its own.
    """
    url = os.environ.get("TEST_DATABASE_URL")
    if url:
        monkeypatch.setenv("DATABASE__URL", url)
        monkeypatch.setenv("DEV__PERSISTENCE_MOCK", "false")
    yield
    await close_db()
