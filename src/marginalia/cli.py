"""Command-line utilities for browsing saved chat sessions.

Usage:
    marginalia-sessions list [--cursor N] [--take N]
    marginalia-sessions show <id>
    marginalia-sessions delete <id>
    marginalia-sessions usage [--start YYYY-MM-DD] [--end YYYY-MM-DD]
"""

from __future__ import annotations

import asyncio
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from marginalia import _setup_logging, get_version_string
from marginalia.persistence import SessionNotFoundError, get_backend
from marginalia.session.serializer import deserialize

if TYPE_CHECKING:
    import argparse

    from marginalia.highlight.range import Range
    from marginalia.persistence import SessionBackend

console = Console()


def _format_range(rng: Range) -> str:
    return f"{rng.start_offset}-{rng.end_offset}"


def _truncate(text: str, limit: int = 60) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _parse_date(value: str) -> datetime:
    """Parse ``YYYY-MM-DD`` as midnight UTC."""
    import argparse

    try:
        return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=UTC)
    except ValueError:
        msg = f"invalid date {value!r}, expected YYYY-MM-DD"
        raise argparse.ArgumentTypeError(msg) from None


def _build_parser() -> argparse.ArgumentParser:
    """Build argparse parser for marginalia-sessions subcommands."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="marginalia-sessions",
        description="Browse saved chat sessions, their annotations and model usage.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {get_version_string()}"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # list
    list_p = sub.add_parser("list", help="List saved sessions, newest first")
    list_p.add_argument(
        "--cursor", type=int, default=None, help="Continue after this session id"
    )
    list_p.add_argument("--take", type=int, default=None, help="Page size")

    # show
    show_p = sub.add_parser("show", help="Show a session with its annotations")
    show_p.add_argument("session_id", type=int, help="Session id")

    # delete
    delete_p = sub.add_parser("delete", help="Delete a saved session")
    delete_p.add_argument("session_id", type=int, help="Session id")

    # usage
    usage_p = sub.add_parser("usage", help="Show model usage and cost per month")
    usage_p.add_argument(
        "--start", type=_parse_date, default=None, help="First day (inclusive)"
    )
    usage_p.add_argument(
        "--end", type=_parse_date, default=None, help="Last day (exclusive)"
    )

    return parser


async def _cmd_list(
    backend: SessionBackend,
    *,
    cursor: int | None = None,
    take: int | None = None,
    console: Console | None = None,
) -> None:
    """Print one page of session summaries."""
    con = console or globals()["console"]
    page = await backend.list_page(cursor, take)

    if not page.items:
        con.print("[yellow]No sessions found.[/]")
        return

    table = Table(title="Chat sessions")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Summary")
    for item in page.items:
        summary = escape(item.summary) if item.summary else "[dim](untitled)[/]"
        table.add_row(str(item.id), summary)
    con.print(table)

    if page.next_cursor is not None:
        con.print(f"[dim]More: --cursor {page.next_cursor}[/]")


async def _cmd_show(
    backend: SessionBackend,
    session_id: int,
    *,
    console: Console | None = None,
) -> None:
    """Print a session's messages and the annotations attached to them."""
    con = console or globals()["console"]
    state = deserialize(await backend.load_one(session_id))

    title = escape(state.summary) if state.summary else "(untitled)"
    con.print(f"\n[bold]{title}[/] [dim](id={session_id})[/]")

    messages = Table(title="Messages")
    messages.add_column("ID", justify="right")
    messages.add_column("Role")
    messages.add_column("Model")
    messages.add_column("Cost", justify="right")
    messages.add_column("Content")
    for m in state.messages:
        messages.add_row(
            str(m.id),
            m.role.value,
            m.model or "",
            f"${m.cost or 0.0:.6f}",
            escape(_truncate(m.content)),
        )
    con.print(messages)

    if not len(state.memos) and not len(state.supplementary):
        con.print("\n  [dim]No annotations.[/]")
        return

    annotations = Table(title="Annotations")
    annotations.add_column("Message", justify="right")
    annotations.add_column("Part")
    annotations.add_column("Range")
    annotations.add_column("Kind")
    annotations.add_column("Content")
    for message_id, part_id, memo in state.memos.items():
        annotations.add_row(
            str(message_id),
            part_id,
            _format_range(memo.range),
            "memo",
            escape(memo.payload.text),
        )
    for message_id, part_id, thread in state.supplementary.items():
        annotations.add_row(
            str(message_id),
            part_id,
            _format_range(thread.range),
            "supplementary",
            f"{len(thread.payload.messages)} messages",
        )
    con.print(annotations)


async def _cmd_delete(
    backend: SessionBackend,
    session_id: int,
    *,
    console: Console | None = None,
) -> None:
    """Delete a session."""
    con = console or globals()["console"]
    if await backend.delete(session_id):
        con.print(f"[green]Deleted[/] session {session_id}")
    else:
        con.print(f"[yellow]No session {session_id}[/]")


async def _cmd_usage(
    backend: SessionBackend,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    console: Console | None = None,
) -> None:
    """Print monthly usage totals with a grand total."""
    con = console or globals()["console"]
    months = await backend.monthly_usage(start, end)

    if not months:
        con.print("[yellow]No usage recorded.[/]")
        return

    table = Table(title="Usage by month (UTC)")
    table.add_column("Month")
    table.add_column("Requests", justify="right")
    table.add_column("Prompt tokens", justify="right")
    table.add_column("Completion tokens", justify="right")
    table.add_column("Cost", justify="right")
    for m in months:
        table.add_row(
            m.month,
            str(m.requests),
            f"{m.prompt_tokens:,}",
            f"{m.completion_tokens:,}",
            f"${m.cost:.4f}",
        )
    table.add_section()
    table.add_row(
        "[bold]Total[/]",
        str(sum(m.requests for m in months)),
        f"{sum(m.prompt_tokens for m in months):,}",
        f"{sum(m.completion_tokens for m in months):,}",
        f"[bold]${sum(m.cost for m in months):.4f}[/]",
    )
    con.print(table)


def manage_sessions() -> None:
    """Entry point for ``marginalia-sessions``."""
    _setup_logging()
    args = _build_parser().parse_args(sys.argv[1:])

    try:
        backend = get_backend()
    except ValueError as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)

    async def _run() -> None:
        match args.command:
            case "list":
                await _cmd_list(backend, cursor=args.cursor, take=args.take)
            case "show":
                await _cmd_show(backend, args.session_id)
            case "delete":
                await _cmd_delete(backend, args.session_id)
            case "usage":
                await _cmd_usage(backend, start=args.start, end=args.end)

    try:
        asyncio.run(_run())
    except SessionNotFoundError as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
