"""Usage log writes and monthly totals."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlmodel import select

from marginalia.db.engine import get_session
from marginalia.db.models import UsageLog
from marginalia.session.records import MonthlyUsage

if TYPE_CHECKING:
    from datetime import datetime

    from marginalia.session.records import UsageLogRecord


async def create_usage_log(entry: UsageLogRecord) -> int:
    """Store one usage entry.

    Returns:
        The new row id.
    """
    async with get_session() as session:
        row = UsageLog(
            model=entry.model,
            prompt_tokens=entry.prompt_tokens,
            completion_tokens=entry.completion_tokens,
            cost=entry.cost,
            created_at=entry.created_at,
        )
        session.add(row)
        await session.flush()
        assert row.id is not None
        return row.id


async def aggregate_monthly_usage(
    start: datetime | None = None, end: datetime | None = None
) -> list[MonthlyUsage]:
    """Total usage per UTC calendar month, oldest first.

    Args:
        start: Include entries created at or after this moment.
        end: Include entries created before this moment.
    """
    created_at = UsageLog.created_at
    entries = select(
        func.to_char(func.timezone("UTC", created_at), "YYYY-MM").label("month"),
        UsageLog.prompt_tokens,
        UsageLog.completion_tokens,
        UsageLog.cost,
    )
    if start is not None:
        entries = entries.where(created_at >= start)  # type: ignore[arg-type]
    if end is not None:
        entries = entries.where(created_at < end)  # type: ignore[arg-type]
    sub = entries.subquery()

    query = (
        select(
            sub.c.month,
            func.count(),
            func.sum(sub.c.prompt_tokens),
            func.sum(sub.c.completion_tokens),
            func.sum(sub.c.cost),
        )
        .group_by(sub.c.month)
        .order_by(sub.c.month)
    )

    async with get_session() as session:
        rows = (await session.exec(query)).all()

    return [
        MonthlyUsage(
            month=label,
            requests=requests,
            prompt_tokens=int(prompt),
            completion_tokens=int(completion),
            cost=float(cost),
        )
        for label, requests, prompt, completion, cost in rows
    ]
