"""Unit tests for database engine module."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock

import pytest

if TYPE_CHECKING:
    from pytest import LogCaptureFixture


class TestGetSession:
    """Tests for get_session() context manager."""

    @pytest.mark.asyncio
    async def test_session_logs_on_exception(self, caplog: LogCaptureFixture) -> None:
        """Session context manager logs exceptions before re-raising."""
        from marginalia.db.engine import _state, get_session

        mock_session = MagicMock()
        mock_session.__aenter__ = AsyncMock(return_value=mock_session)
        mock_session.__aexit__ = AsyncMock(return_value=False)
        mock_session.commit = AsyncMock(side_effect=ValueError("Test DB error"))
        mock_session.rollback = AsyncMock()

        original_factory = _state.session_factory
        _state.session_factory = MagicMock(return_value=mock_session)

        try:
            with (
                caplog.at_level(logging.ERROR, logger="marginalia.db.engine"),
                pytest.raises(ValueError, match="Test DB error"),
            ):
                async with get_session():
                    pass  # exiting triggers commit

            assert "rolling back" in caplog.text.lower()
            mock_session.rollback.assert_awaited_once()
        finally:
            _state.session_factory = original_factory

    @pytest.mark.asyncio
    async def test_session_commits_on_success(self) -> None:
        """A clean exit commits and does not roll back."""
        from marginalia.db.engine import _state, get_session

        mock_session = MagicMock()
        mock_session.__aenter__ = AsyncMock(return_value=mock_session)
        mock_session.__aexit__ = AsyncMock(return_value=False)
        mock_session.commit = AsyncMock()
        mock_session.rollback = AsyncMock()

        original_factory = _state.session_factory
        _state.session_factory = MagicMock(return_value=mock_session)

        try:
            async with get_session() as session:
                assert session is mock_session
            mock_session.commit.assert_awaited_once()
            mock_session.rollback.assert_not_awaited()
        finally:
            _state.session_factory = original_factory


class TestGetDatabaseUrl:
    """Tests for get_database_url()."""

    def test_missing_url_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """An unset DATABASE__URL raises ValueError."""
        from marginalia.db.engine import get_database_url

        monkeypatch.setenv("DATABASE__URL", "")
        with pytest.raises(ValueError, match="DATABASE__URL"):
            get_database_url()

    def test_reads_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The URL comes from Settings."""
        from marginalia.db.engine import get_database_url

        url = "postgresql+asyncpg://user:pw@localhost/marginalia"
        monkeypatch.setenv("DATABASE__URL", url)
        assert get_database_url() == url


class TestGetEngine:
    """Tests for get_engine()."""

    def test_none_before_init(self) -> None:
        """No engine exists until the first session or init_db()."""
        from marginalia.db.engine import _state, get_engine

        original = _state.engine
        _state.engine = None
        try:
            assert get_engine() is None
        finally:
            _state.engine = original
