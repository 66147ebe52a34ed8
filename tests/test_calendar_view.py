"""
test_calendar_view.py — Tests for calendar grids and per-day buckets.

Run: pytest tests/test_calendar_view.py -v
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from tradejournal.calendar_view import (
    WEEKDAY_HEADERS,
    day_summary,
    days_in_month,
    month_grid,
    month_summaries,
    net_pnl_on,
    shift_month,
    trades_closed_on,
    trades_opened_on,
    week_dates,
)
from tradejournal.models import Trade


def _trade(direction: str, entry: datetime, exit_: datetime | None = None,
           pnl: str | None = None) -> Trade:
    return Trade(
        symbol="AAPL",
        direction=direction,
        status="closed" if exit_ else "open",
        entry_date=entry,
        entry_price=Decimal("100"),
        quantity=Decimal("1"),
        exit_date=exit_,
        profit_loss=Decimal(pnl) if pnl is not None else None,
    )


class TestMonthMath:

    def test_shift_month(self) -> None:
        assert shift_month(2024, 1, -1) == (2023, 12)
        assert shift_month(2024, 12, 1) == (2025, 1)
        assert shift_month(2024, 5, 14) == (2025, 7)
        assert shift_month(2024, 5, 0) == (2024, 5)

    def test_days_in_month(self) -> None:
        assert days_in_month(2024, 2) == 29
        assert days_in_month(2023, 2) == 28
        assert days_in_month(2024, 12) == 31


class TestGrids:

    def test_headers_start_sunday(self) -> None:
        assert WEEKDAY_HEADERS[0] == "Sun"

    def test_month_grid_is_padded_to_full_weeks(self) -> None:
        # March 2024 starts on a Friday and ends on a Sunday
        weeks = month_grid(2024, 3)
        assert all(len(w) == 7 for w in weeks)
        assert weeks[0][0] == date(2024, 2, 25)
        assert weeks[0][5] == date(2024, 3, 1)
        assert weeks[-1][0] == date(2024, 3, 31)
        assert weeks[-1][-1] == date(2024, 4, 6)
        assert len(weeks) == 6

    def test_month_starting_on_sunday(self) -> None:
        # September 2024 starts on a Sunday
        weeks = month_grid(2024, 9)
        assert weeks[0][0] == date(2024, 9, 1)

    def test_week_dates(self) -> None:
        week = week_dates(date(2024, 3, 13))
        assert week[0] == date(2024, 3, 10)
        assert week[-1] == date(2024, 3, 16)


class TestDayBuckets:

    def setup_method(self) -> None:
        self.day = date(2024, 3, 12)
        self.trades = [
            _trade("long", datetime(2024, 3, 12, 9, 30)),
            _trade("short", datetime(2024, 3, 12, 10, 0), datetime(2024, 3, 12, 15, 0), "25"),
            _trade("long", datetime(2024, 3, 8, 9, 30), datetime(2024, 3, 12, 11, 0), "-10"),
            _trade("long", datetime(2024, 3, 11, 9, 30), datetime(2024, 3, 13, 11, 0), "99"),
        ]

    def test_opened_and_closed(self) -> None:
        assert len(trades_opened_on(self.trades, self.day)) == 2
        assert len(trades_closed_on(self.trades, self.day)) == 2

    def test_net_pnl_on(self) -> None:
        assert net_pnl_on(self.trades, self.day) == Decimal("15")
        assert net_pnl_on(self.trades, date(2024, 3, 1)) == Decimal("0")

    def test_day_summary(self) -> None:
        s = day_summary(self.trades, self.day)
        assert s.long_count == 1
        assert s.short_count == 1
        assert s.net_pnl == Decimal("15")
        assert s.has_activity

    def test_quiet_day(self) -> None:
        assert not day_summary(self.trades, date(2024, 3, 20)).has_activity

    def test_month_summaries_match_grid(self) -> None:
        weeks = month_summaries(self.trades, 2024, 3)
        assert [[s.day for s in w] for w in weeks] == month_grid(2024, 3)
        active = [s.day for w in weeks for s in w if s.has_activity]
        assert active == [date(2024, 3, 8), date(2024, 3, 11), date(2024, 3, 12), date(2024, 3, 13)]
