"""
calendar_view.py — Date bucketing for the trade calendar.

Month grids are Sunday-first and padded with the neighbouring months'
days so every week has 7 cells. Trades are bucketed by local calendar day:
opened trades by entry date, closed trades (and their P/L) by exit date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from tradejournal.models import Direction, Trade

_ZERO = Decimal("0")

WEEKDAY_HEADERS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def _sunday_on_or_before(day: date) -> date:
    return day - timedelta(days=(day.weekday() + 1) % 7)


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by delta months."""
    index = year * 12 + (month - 1) + delta
    new_year, new_month = divmod(index, 12)
    return new_year, new_month + 1


def days_in_month(year: int, month: int) -> int:
    ny, nm = shift_month(year, month, 1)
    return (date(ny, nm, 1) - timedelta(days=1)).day


def month_grid(year: int, month: int) -> list[list[date]]:
    """Weeks (lists of 7 dates, Sunday first) covering the whole month."""
    first = date(year, month, 1)
    last = date(year, month, days_in_month(year, month))

    start = _sunday_on_or_before(first)
    end = _sunday_on_or_before(last) + timedelta(days=6)

    weeks: list[list[date]] = []
    day = start
    while day <= end:
        weeks.append([day + timedelta(days=i) for i in range(7)])
        day += timedelta(days=7)
    return weeks


def week_dates(day: date) -> list[date]:
    """The Sunday-first week containing day."""
    start = _sunday_on_or_before(day)
    return [start + timedelta(days=i) for i in range(7)]


# ---------------------------------------------------------------------------
# Per-day buckets
# ---------------------------------------------------------------------------

def trades_opened_on(trades: Iterable[Trade], day: date) -> list[Trade]:
    return [t for t in trades if t.entry_date.date() == day]


def trades_closed_on(trades: Iterable[Trade], day: date) -> list[Trade]:
    return [
        t for t in trades
        if t.exit_date is not None and t.exit_date.date() == day
    ]


def net_pnl_on(trades: Iterable[Trade], day: date) -> Decimal:
    """Sum of P/L of trades closed on day."""
    return sum(
        (t.profit_loss or _ZERO for t in trades_closed_on(trades, day)),
        _ZERO,
    )


@dataclass
class DaySummary:
    day: date
    opened: list[Trade]
    closed: list[Trade]
    long_count: int
    short_count: int
    net_pnl: Decimal

    @property
    def has_activity(self) -> bool:
        return bool(self.opened or self.closed)


def day_summary(trades: Iterable[Trade], day: date) -> DaySummary:
    trades = list(trades)
    opened = trades_opened_on(trades, day)
    closed = trades_closed_on(trades, day)
    return DaySummary(
        day=day,
        opened=opened,
        closed=closed,
        long_count=sum(1 for t in opened if t.direction == Direction.LONG.value),
        short_count=sum(1 for t in opened if t.direction == Direction.SHORT.value),
        net_pnl=sum((t.profit_loss or _ZERO for t in closed), _ZERO),
    )


def month_summaries(
    trades: Iterable[Trade],
    year: int,
    month: int,
) -> list[list[DaySummary]]:
    """month_grid() with a DaySummary per cell."""
    trades = list(trades)
    return [
        [day_summary(trades, day) for day in week]
        for week in month_grid(year, month)
    ]
