"""Unit tests for reporting windows."""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from shared.domain.periods import DateWindow, resolve_window

pytestmark = pytest.mark.unit

IST = ZoneInfo("Asia/Kolkata")
NOW = datetime(2026, 10, 16, 15, 30, tzinfo=IST)


class TestResolveWindow:
    def test_today_starts_at_local_midnight(self):
        window = resolve_window(NOW, period="today")
        assert window.start == datetime(2026, 10, 16, tzinfo=IST)
        assert window.end is None

    def test_week_starts_seven_days_back(self):
        window = resolve_window(NOW, period="week")
        assert window.start == datetime(2026, 10, 9, tzinfo=IST)

    def test_month_starts_thirty_days_back(self):
        window = resolve_window(NOW, period="month")
        assert window.start == datetime(2026, 9, 16, tzinfo=IST)

    @pytest.mark.parametrize("period", [None, "all", "lifetime"])
    def test_unbounded_periods(self, period):
        assert resolve_window(NOW, period=period) == DateWindow()

    def test_explicit_range_wins_and_includes_last_day(self):
        window = resolve_window(
            NOW, period="today", date_from=date(2026, 10, 1), date_to=date(2026, 10, 3)
        )
        assert window.start == datetime(2026, 10, 1, tzinfo=IST)
        assert window.end == datetime(2026, 10, 4, tzinfo=IST)

    def test_open_ended_range(self):
        window = resolve_window(NOW, date_to=date(2026, 10, 3))
        assert window.start is None
        assert window.end == datetime(2026, 10, 4, tzinfo=IST)

    def test_reversed_range_rejected(self):
        with pytest.raises(ValueError):
            resolve_window(NOW, date_from=date(2026, 10, 5), date_to=date(2026, 10, 1))

    def test_unknown_period_rejected(self):
        with pytest.raises(ValueError):
            resolve_window(NOW, period="fortnight")


class TestDateWindow:
    def test_lookups(self):
        window = DateWindow(start=datetime(2026, 10, 1, tzinfo=IST))
        assert window.lookups("created_at") == {"created_at__gte": window.start}

    def test_contains_is_half_open(self):
        window = DateWindow(
            start=datetime(2026, 10, 1, tzinfo=IST), end=datetime(2026, 10, 2, tzinfo=IST)
        )
        assert window.contains(datetime(2026, 10, 1, tzinfo=IST))
        assert window.contains(datetime(2026, 10, 1, 23, 59, tzinfo=IST))
        assert not window.contains(datetime(2026, 10, 2, tzinfo=IST))

    def test_missing_moment_only_in_unbounded_window(self):
        assert DateWindow().contains(None)
        assert not DateWindow(start=NOW).contains(None)
