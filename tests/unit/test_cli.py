"""Tests for the marginalia-sessions command-line utility."""

from __future__ import annotations

import io
from datetime import UTC, datetime

import pytest
from rich.console import Console

from marginalia.annotations.engine import AnnotationEngine
from marginalia.cli import (
    _build_parser,
    _cmd_delete,
    _cmd_list,
    _cmd_show,
    _cmd_usage,
)
from marginalia.highlight.range import Range
from marginalia.models import Role
from marginalia.persistence import MemorySessionBackend, SessionNotFoundError
from marginalia.session.records import UsageLogRecord


def _console() -> tuple[Console, io.StringIO]:
    buf = io.StringIO()
    return Console(file=buf, width=200, force_terminal=False), buf


async def _saved_session(backend: MemorySessionBackend) -> int:
    engine = AnnotationEngine()
    engine.add_message(Role.USER, "Describe the fox")
    engine.add_message(Role.ASSISTANT, "The quick brown fox")
    engine.save_memo(2, "p-1-1", Range(4, 9), "adjective")
    return await backend.save(engine.to_record(summary="Foxes"))


class TestParser:
    """Argument parsing for each subcommand."""

    def test_list_defaults(self) -> None:
        """list pages from the newest session by default."""
        args = _build_parser().parse_args(["list"])
        assert (args.command, args.cursor, args.take) == ("list", None, None)

    def test_list_cursor(self) -> None:
        """--cursor and --take are parsed as integers."""
        args = _build_parser().parse_args(["list", "--cursor", "6", "--take", "10"])
        assert (args.cursor, args.take) == (6, 10)

    @pytest.mark.parametrize("command", ["show", "delete"])
    def test_session_id(self, command: str) -> None:
        """show and delete take a session id."""
        args = _build_parser().parse_args([command, "3"])
        assert (args.command, args.session_id) == (command, 3)

    def test_command_required(self) -> None:
        """A subcommand must be given."""
        with pytest.raises(SystemExit):
            _build_parser().parse_args([])

    def test_usage_period(self) -> None:
        """usage dates are parsed as midnight UTC."""
        args = _build_parser().parse_args(
            ["usage", "--start", "2025-01-01", "--end", "2025-03-01"]
        )
        assert args.start == datetime(2025, 1, 1, tzinfo=UTC)
        assert args.end == datetime(2025, 3, 1, tzinfo=UTC)

    def test_usage_defaults(self) -> None:
        """usage without dates covers all time."""
        args = _build_parser().parse_args(["usage"])
        assert (args.start, args.end) == (None, None)

    def test_usage_bad_date(self) -> None:
        """A malformed date is a usage error."""
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["usage", "--start", "01/02/2025"])


class TestCommands:
    """Subcommands print through the given console."""

    @pytest.mark.asyncio
    async def test_list(self) -> None:
        """Sessions are listed with their summaries."""
        backend = MemorySessionBackend()
        session_id = await _saved_session(backend)
        con, buf = _console()

        await _cmd_list(backend, console=con)

        output = buf.getvalue()
        assert "Foxes" in output
        assert str(session_id) in output
        assert "--cursor" not in output

    @pytest.mark.asyncio
    async def test_list_shows_next_cursor(self) -> None:
        """A full page prints the cursor for the next one."""
        backend = MemorySessionBackend()
        for _ in range(3):
            await _saved_session(backend)
        con, buf = _console()

        await _cmd_list(backend, take=2, console=con)

        assert "--cursor 2" in buf.getvalue()

    @pytest.mark.asyncio
    async def test_list_empty(self) -> None:
        """No sessions prints a notice."""
        con, buf = _console()
        await _cmd_list(MemorySessionBackend(), console=con)
        assert "No sessions found" in buf.getvalue()

    @pytest.mark.asyncio
    async def test_show(self) -> None:
        """A session is shown with its messages and memos."""
        backend = MemorySessionBackend()
        session_id = await _saved_session(backend)
        con, buf = _console()

        await _cmd_show(backend, session_id, console=con)

        output = buf.getvalue()
        assert "Describe the fox" in output
        assert "p-1-1" in output
        assert "4-9" in output
        assert "adjective" in output

    @pytest.mark.asyncio
    async def test_show_missing_raises(self) -> None:
        """An unknown id raises SessionNotFoundError."""
        con, _ = _console()
        with pytest.raises(SessionNotFoundError):
            await _cmd_show(MemorySessionBackend(), 9, console=con)

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        """Deleting twice reports the missing session."""
        backend = MemorySessionBackend()
        session_id = await _saved_session(backend)
        con, buf = _console()

        await _cmd_delete(backend, session_id, console=con)
        await _cmd_delete(backend, session_id, console=con)

        output = buf.getvalue()
        assert f"Deleted session {session_id}" in output
        assert f"No session {session_id}" in output

    @pytest.mark.asyncio
    async def test_usage(self) -> None:
        """Monthly rows and a total are printed."""
        backend = MemorySessionBackend()
        for month, cost in [(1, 0.5), (1, 0.25), (2, 1.0)]:
            await backend.log_usage(
                UsageLogRecord(
                    model="gpt-4o",
                    prompt_tokens=1000,
                    completion_tokens=200,
                    cost=cost,
                    created_at=datetime(2025, month, 10, tzinfo=UTC),
                )
            )
        con, buf = _console()

        await _cmd_usage(backend, console=con)

        output = buf.getvalue()
        assert "2025-01" in output
        assert "$0.7500" in output
        assert "2025-02" in output
        assert "Total" in output
        assert "$1.7500" in output
        assert "3,000" in output

    @pytest.mark.asyncio
    async def test_usage_period(self) -> None:
        """Only months inside the period are shown."""
        backend = MemorySessionBackend()
        for month in (1, 2):
            await backend.log_usage(
                UsageLogRecord(
                    model="gpt-4o",
                    prompt_tokens=10,
                    completion_tokens=2,
                    cost=0.1,
                    created_at=datetime(2025, month, 10, tzinfo=UTC),
                )
            )
        con, buf = _console()

        await _cmd_usage(
            backend, start=datetime(2025, 2, 1, tzinfo=UTC), console=con
        )

        output = buf.getvalue()
        assert "2025-02" in output
        assert "2025-01" not in output

    @pytest.mark.asyncio
    async def test_usage_empty(self) -> None:
        """No entries prints a notice."""
        con, buf = _console()
        await _cmd_usage(MemorySessionBackend(), console=con)
        assert "No usage recorded" in buf.getvalue()
