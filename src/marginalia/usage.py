"""Usage logging: one entry per completed model reply, totalled by month.

Months are calendar months in UTC, labelled ``"YYYY-MM"``.  Periods are
half-open: ``start <= created_at < end``; either bound may be omitted.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from marginalia.pricing import calculate_cost
from marginalia.session.records import MonthlyUsage, UsageLogRecord

if TYPE_CHECKING:
    from collections.abc import Iterable

    from marginalia.models import Usage


def usage_entry(
    model: str | None, usage: Usage, created_at: datetime | None = None
) -> UsageLogRecord:
    """Build the log entry for a reply, priced from its token counts."""
    model = model or ""
    return UsageLogRecord(
        model=model,
        prompt_tokens=usage.prompt_tokens,
        completion_tokens=usage.completion_tokens,
        cost=calculate_cost(model, usage.prompt_tokens, usage.completion_tokens),
        created_at=created_at or datetime.now(UTC),
    )


def month_label(moment: datetime) -> str:
    """``"YYYY-MM"`` of *moment* in UTC (naive datetimes are taken as UTC)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).strftime("%Y-%m")


def in_period(
    moment: datetime, start: datetime | None = None, end: datetime | None = None
) -> bool:
    if start is not None and moment < start:
        return False
    return end is None or moment < end


def aggregate_monthly(
    entries: Iterable[UsageLogRecord],
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[MonthlyUsage]:
    """Total *entries* per month within the period, oldest month first."""
    by_month: dict[str, list[UsageLogRecord]] = defaultdict(list)
    for entry in entries:
        if in_period(entry.created_at, start, end):
            by_month[month_label(entry.created_at)].append(entry)

    return [
        MonthlyUsage(
            month=month,
            requests=len(rows),
            prompt_tokens=sum(r.prompt_tokens for r in rows),
            completion_tokens=sum(r.completion_tokens for r in rows),
            cost=sum(r.cost for r in rows),
        )
        for month, rows in sorted(by_month.items())
    ]
