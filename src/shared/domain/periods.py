"""Reporting windows used by the admin COD and order overviews.

``today`` starts at local midnight; ``week`` and ``month`` start at the local
midnight 7 and 30 days back; ``all`` (alias ``lifetime``) is unbounded.  An
explicit ``date_from`` / ``date_to`` range takes precedence over the period.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

PERIOD_TODAY = "today"
PERIOD_WEEK = "week"
PERIOD_MONTH = "month"
PERIOD_ALL = "all"

PERIOD_DAYS_BACK = {PERIOD_TODAY: 0, PERIOD_WEEK: 7, PERIOD_MONTH: 30}
PERIOD_ALIASES = {"lifetime": PERIOD_ALL}
PERIODS = (PERIOD_TODAY, PERIOD_WEEK, PERIOD_MONTH, PERIOD_ALL)


@dataclass(frozen=True)
class DateWindow:
    """Half-open ``[start, end)`` window; ``None`` means unbounded."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def lookups(self, field: str) -> dict:
        """ORM filter kwargs restricting *field* to the window."""
        kwargs = {}
        if self.start is not None:
            kwargs[f"{field}__gte"] = self.start
        if self.end is not None:
            kwargs[f"{field}__lt"] = self.end
        return kwargs

    def contains(self, moment: Optional[datetime]) -> bool:
        if moment is None:
            return self.start is None and self.end is None
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment >= self.end:
            return False
        return True


def _midnight(day: date, tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tzinfo)


def resolve_window(
    now: datetime,
    period: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> DateWindow:
    """Build the window for *period* as seen from the aware local time *now*.

    Raises:
        ValueError: unknown period, or ``date_from`` after ``date_to``.
    """
    tzinfo = now.tzinfo
    if date_from or date_to:
        if date_from and date_to and date_from > date_to:
            raise ValueError("date_from must not be after date_to.")
        return DateWindow(
            start=_midnight(date_from, tzinfo) if date_from else None,
            end=_midnight(date_to + timedelta(days=1), tzinfo) if date_to else None,
        )

    period = PERIOD_ALIASES.get(period or PERIOD_ALL, period or PERIOD_ALL)
    if period == PERIOD_ALL:
        return DateWindow()
    if period not in PERIOD_DAYS_BACK:
        raise ValueError(f"Unknown period {period!r}.")
    start_day = now.date() - timedelta(days=PERIOD_DAYS_BACK[period])
    return DateWindow(start=_midnight(start_day, tzinfo))
