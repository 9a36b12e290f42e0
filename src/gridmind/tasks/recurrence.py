"""Next-occurrence calculation for recurring tasks."""

from __future__ import annotations

import calendar
from datetime import UTC, datetime, timedelta

from croniter import croniter

NAMED_RECURRENCES = ("daily", "weekly", "monthly", "yearly")


def _add_months(base: datetime, months: int, anchor_day: int | None = None) -> datetime:
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1
    day = min(anchor_day or base.day, calendar.monthrange(year, month)[1])
    return base.replace(year=year, month=month, day=day)


def is_valid_recurrence(recurrence: str) -> bool:
    """Accept the named intervals or a standard 5-field cron expression."""
    return recurrence in NAMED_RECURRENCES or croniter.is_valid(recurrence)


def next_occurrence(
    base: datetime, recurrence: str, anchor_day: int | None = None
) -> datetime | None:
    """Return the next run after *base*, or None for an unknown pattern.

    Named intervals step from *base* itself. Month and year steps land on
    *anchor_day* (default: the day of *base*), clamped to the last day of a
    shorter month, so a series anchored on the 31st goes Jan 31 -> Feb 28 ->
    Mar 31.
    """
    if base.tzinfo is None:
        base = base.replace(tzinfo=UTC)

    if recurrence == "daily":
        return base + timedelta(days=1)
    if recurrence == "weekly":
        return base + timedelta(weeks=1)
    if recurrence == "monthly":
        return _add_months(base, 1, anchor_day)
    if recurrence == "yearly":
        return _add_months(base, 12, anchor_day)

    if croniter.is_valid(recurrence):
        nxt = croniter(recurrence, base).get_next(datetime)
        return nxt if nxt.tzinfo else nxt.replace(tzinfo=UTC)
    return None
