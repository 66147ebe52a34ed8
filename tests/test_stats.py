"""
test_stats.py — Tests for aggregate statistics.

Covers:
- compute_trade_stats / win_rate
- Date range, timeframe and journal filters
- pnl_by_period groupings (Sunday weeks, month labels)
- Strategy and asset-class breakdowns
- Equity curve, average duration
- Indicator performance
- DataFrame export

Run: pytest tests/test_stats.py -v
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pandas as pd
import pytest

from tradejournal.models import Trade, TradeIndicator
from tradejournal.stats import (
    TRADE_COLUMNS,
    TradeStats,
    asset_class_distribution,
    average_trade_duration,
    classify_asset_class,
    compute_trade_stats,
    equity_curve,
    filter_by_date_range,
    filter_by_journal,
    filter_by_timeframe,
    indicator_performance,
    pnl_by_period,
    trades_to_frame,
    win_loss_by_strategy,
    win_rate,
)

D = Decimal


def _trade(
    pnl: str | None,
    status: str = "closed",
    entry: datetime = datetime(2024, 3, 4, 10, 0),
    exit_: datetime | None = datetime(2024, 3, 6, 15, 0),
    symbol: str = "AAPL",
    strategy: str = "swing",
    journal_id: int | None = None,
    trade_id: int | None = None,
) -> Trade:
    return Trade(
        id=trade_id,
        symbol=symbol,
        direction="long",
        status=status,
        entry_date=entry,
        entry_price=D("100"),
        quantity=D("1"),
        exit_date=exit_ if status == "closed" else None,
        exit_price=D("100") if status == "closed" else None,
        profit_loss=D(pnl) if pnl is not None else None,
        strategy=strategy,
        journal_id=journal_id,
    )


class TestWinRate:

    def test_zero_guard(self) -> None:
        assert win_rate(0, 0) == D("0")

    def test_ratio(self) -> None:
        assert win_rate(3, 4) == D("75")


class TestComputeTradeStats:

    def test_empty(self) -> None:
        assert compute_trade_stats([]) == TradeStats()

    def test_mixed(self) -> None:
        trades = [
            _trade("100"), _trade("50"), _trade("-30"), _trade("0"),
            _trade(None, status="open"), _trade(None, status="planned"),
        ]
        s = compute_trade_stats(trades)
        assert s.total_trades == 5
        assert s.open_trades == 1
        assert s.winning_trades == 2
        assert s.losing_trades == 1
        assert s.break_even_trades == 1
        assert s.win_rate == D("50")
        assert s.total_profit_loss == D("120")
        assert s.average_profit_loss == D("30")
        assert s.largest_win == D("100")
        assert s.largest_loss == D("-30")

    def test_only_open_trades_have_zero_win_rate(self) -> None:
        s = compute_trade_stats([_trade(None, status="open")])
        assert s.win_rate == D("0")
        assert s.total_trades == 1


class TestFilters:

    def test_date_range_is_inclusive(self) -> None:
        early = _trade("1", entry=datetime(2024, 3, 1, 0, 0, 0))
        late = _trade("1", entry=datetime(2024, 3, 31, 23, 59, 59))
        outside = _trade("1", entry=datetime(2024, 4, 1, 0, 0, 0))
        kept = filter_by_date_range([early, late, outside], date(2024, 3, 1), date(2024, 3, 31))
        assert kept == [early, late]

    def test_date_range_open_bounds(self) -> None:
        a = _trade("1", entry=datetime(2023, 1, 1))
        b = _trade("1", entry=datetime(2025, 1, 1))
        assert filter_by_date_range([a, b], None, None) == [a, b]
        assert filter_by_date_range([a, b], date(2024, 1, 1), None) == [b]
        assert filter_by_date_range([a, b], None, date(2024, 1, 1)) == [a]

    def test_timeframe(self) -> None:
        now = datetime(2024, 6, 30, 12, 0)
        recent = _trade("1", entry=datetime(2024, 6, 27))
        last_month = _trade("1", entry=datetime(2024, 6, 1))
        old = _trade("1", entry=datetime(2023, 1, 1))
        trades = [recent, last_month, old]
        assert filter_by_timeframe(trades, "week", now) == [recent]
        assert filter_by_timeframe(trades, "month", now) == [recent, last_month]
        assert filter_by_timeframe(trades, "year", now) == [recent, last_month]
        assert filter_by_timeframe(trades, "all", now) == trades

    def test_timeframe_clamps_month_end(self) -> None:
        now = datetime(2024, 3, 31, 12, 0)
        feb = _trade("1", entry=datetime(2024, 2, 29, 12, 0))
        assert filter_by_timeframe([feb], "month", now) == [feb]

    def test_journal(self) -> None:
        a = _trade("1", journal_id=1)
        b = _trade("1", journal_id=2)
        assert filter_by_journal([a, b], 2) == [b]
        assert filter_by_journal([a, b], None) == [a, b]


class TestPnlByPeriod:

    def test_month_grouping(self) -> None:
        trades = [
            _trade("100", exit_=datetime(2024, 1, 10)),
            _trade("-40", exit_=datetime(2024, 1, 20)),
            _trade("-25", exit_=datetime(2024, 2, 5)),
            _trade(None, status="open"),
        ]
        rows = pnl_by_period(trades, "month")
        assert [r["label"] for r in rows] == ["Jan 2024", "Feb 2024"]
        assert rows[0]["total"] == D("60")
        assert rows[0]["profit"] == D("60")
        assert rows[0]["loss"] == D("0")
        assert rows[1]["loss"] == D("25")

    def test_week_starts_sunday(self) -> None:
        # 2024-03-09 is a Saturday, 2024-03-10 a Sunday
        trades = [
            _trade("10", exit_=datetime(2024, 3, 9)),
            _trade("10", exit_=datetime(2024, 3, 10)),
        ]
        rows = pnl_by_period(trades, "week")
        assert [r["label"] for r in rows] == ["Week of 2024-03-03", "Week of 2024-03-10"]

    def test_day_and_year(self) -> None:
        trades = [_trade("5", exit_=datetime(2024, 3, 9, 18, 0))]
        assert pnl_by_period(trades, "day")[0]["period"] == "2024-03-09"
        assert pnl_by_period(trades, "year")[0]["label"] == "2024"

    def test_bad_grouping(self) -> None:
        with pytest.raises(ValueError):
            pnl_by_period([], "decade")


class TestBreakdowns:

    def test_win_loss_by_strategy(self) -> None:
        trades = [
            _trade("10", strategy="swing"), _trade("-5", strategy="swing"),
            _trade("10", strategy="swing"), _trade("3", strategy=""),
            _trade(None, status="open", strategy="day"),
        ]
        rows = win_loss_by_strategy(trades)
        assert rows[0] == {"strategy": "swing", "wins": 2, "losses": 1, "total": 3, "win_rate": 67}
        assert rows[1]["strategy"] == "Unknown"
        assert all(r["strategy"] != "day" for r in rows)

    @pytest.mark.parametrize("symbol,expected", [
        ("AAPL", "Stocks"),
        ("EUR/USD", "Forex"),
        ("BTC/USD", "Crypto"),
        ("eth/usd", "Crypto"),
    ])
    def test_classify_asset_class(self, symbol: str, expected: str) -> None:
        assert classify_asset_class(symbol) == expected

    def test_asset_class_distribution(self) -> None:
        trades = [
            _trade("10", symbol="AAPL"), _trade("-4", symbol="MSFT"),
            _trade("7", symbol="EUR/USD"),
        ]
        rows = {r["name"]: r for r in asset_class_distribution(trades)}
        assert rows["Stocks"]["value"] == 2
        assert rows["Stocks"]["profit_loss"] == D("6")
        assert rows["Forex"]["value"] == 1


class TestEquityAndDuration:

    def test_equity_curve(self) -> None:
        trades = [
            _trade("-10", exit_=datetime(2024, 1, 3)),
            _trade("30", exit_=datetime(2024, 1, 2)),
        ]
        points = equity_curve(trades)
        assert points[0] == {"date": None, "label": "Start", "equity": D("0")}
        assert [p["equity"] for p in points[1:]] == [D("30"), D("20")]
        assert points[1]["label"] == "2024-01-02"

    def test_equity_curve_empty(self) -> None:
        assert equity_curve([_trade(None, status="open")]) == []

    def test_average_duration(self) -> None:
        assert average_trade_duration([]) == "N/A"
        same_day = _trade("1", entry=datetime(2024, 1, 1, 9), exit_=datetime(2024, 1, 1, 15))
        assert average_trade_duration([same_day]) == "Same day"
        two_days = _trade("1", entry=datetime(2024, 1, 1), exit_=datetime(2024, 1, 3))
        four_days = _trade("1", entry=datetime(2024, 1, 1), exit_=datetime(2024, 1, 5))
        assert average_trade_duration([two_days, four_days]) == "3 days"


class TestIndicatorPerformance:

    def _ind(self, trade_id: int, name: str) -> TradeIndicator:
        return TradeIndicator(trade_id=trade_id, indicator_name=name)

    def test_performance(self) -> None:
        trades = [
            _trade("30", trade_id=1), _trade("10", trade_id=2),
            _trade("-20", trade_id=3), _trade("50", trade_id=4),
        ]
        indicators = {
            1: [self._ind(1, "RSI"), self._ind(1, "MACD")],
            2: [self._ind(2, "RSI")],
            3: [self._ind(3, "RSI")],
            4: [self._ind(4, "MACD")],
        }
        result = indicator_performance(trades, indicators)
        assert [p.name for p in result] == ["RSI"]
        rsi = result[0]
        assert rsi.total_trades == 3
        assert rsi.winning_trades == 2
        assert rsi.average_profit == D("20")
        assert rsi.average_loss == D("20")
        assert rsi.net_profit_loss == D("20")
        assert rsi.return_ratio == D("1")

    def test_min_trades(self) -> None:
        trades = [_trade("5", trade_id=1)]
        indicators = {1: [self._ind(1, "RSI")]}
        assert indicator_performance(trades, indicators) == []
        assert len(indicator_performance(trades, indicators, min_trades=1)) == 1


class TestTradesToFrame:

    def test_columns_and_values(self) -> None:
        df = trades_to_frame([_trade("12.5", trade_id=9), _trade(None, status="open")])
        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == TRADE_COLUMNS
        assert df.loc[0, "profit_loss"] == 12.5
        assert pd.isna(df.loc[1, "exit_price"])

    def test_empty(self) -> None:
        df = trades_to_frame([])
        assert df.empty
        assert list(df.columns) == TRADE_COLUMNS
