"""Shared pytest fixtures for Marginalia tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from dotenv import load_dotenv

from marginalia.persistence import clear_backend_cache

if TYPE_CHECKING:
    from collections.abc import Generator

load_dotenv()


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None]:
    """Drop cached Settings and the memory backend around every test."""
    clear_backend_cache()
    yield
    clear_backend_cache()
