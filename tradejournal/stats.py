"""
stats.py — Aggregate statistics over trade lists.

Pure post-processing functions: every function takes a list of Trade
records (already fetched from the backend) and returns plain data for
KPI cards, charts and tables. No I/O.

Covers:
- Summary stats (win rate, P/L totals, largest win/loss, open trades)
- Date range / timeframe / journal filters
- P/L grouped by day, week, month or year
- Win/loss by strategy, asset-class distribution
- Equity curve, average trade duration
- Indicator performance (expectancy, return ratio)
- DataFrame export for tables and CSV
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, Optional

import pandas as pd

from tradejournal.models import Trade, TradeIndicator, TradeStatus

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")

MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]

TIMEFRAMES = ("week", "month", "quarter", "year", "all")
GROUPINGS = ("day", "week", "month", "year")

_CRYPTO_MARKERS = ("BTC", "ETH", "LTC", "XRP")


# ---------------------------------------------------------------------------
# Summary stats
# ---------------------------------------------------------------------------

@dataclass
class TradeStats:
    """Summary figures for KPI cards."""
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    break_even_trades: int = 0
    win_rate: Decimal = _ZERO
    total_profit_loss: Decimal = _ZERO
    average_profit_loss: Decimal = _ZERO
    largest_win: Decimal = _ZERO
    largest_loss: Decimal = _ZERO
    open_trades: int = 0


def win_rate(wins: int, total: int) -> Decimal:
    """wins / total * 100, or 0 when there is nothing to divide by."""
    if total <= 0:
        return _ZERO
    return Decimal(wins) / Decimal(total) * _HUNDRED


def compute_trade_stats(trades: Iterable[Trade]) -> TradeStats:
    """Compute summary stats. Only closed trades count towards P/L.

    total_trades counts open + closed (planned trades are excluded).
    """
    trades = list(trades)
    closed = [t for t in trades if t.status == TradeStatus.CLOSED.value]
    open_ = [t for t in trades if t.status == TradeStatus.OPEN.value]

    winners = [t for t in closed if t.profit_loss is not None and t.profit_loss > _ZERO]
    losers = [t for t in closed if t.profit_loss is not None and t.profit_loss < _ZERO]
    flat = [t for t in closed if t.profit_loss is not None and t.profit_loss == _ZERO]

    total_pl = sum((t.profit_loss or _ZERO for t in closed), _ZERO)

    return TradeStats(
        total_trades=len(closed) + len(open_),
        winning_trades=len(winners),
        losing_trades=len(losers),
        break_even_trades=len(flat),
        win_rate=win_rate(len(winners), len(closed)),
        total_profit_loss=total_pl,
        average_profit_loss=total_pl / len(closed) if closed else _ZERO,
        largest_win=max((t.profit_loss for t in winners), default=_ZERO),
        largest_loss=min((t.profit_loss for t in losers), default=_ZERO),
        open_trades=len(open_),
    )


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

def filter_by_date_range(
    trades: Iterable[Trade],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[Trade]:
    """Keep trades whose entry date lies in [start 00:00:00, end 23:59:59].

    Either bound may be None for an open range. Timezone info on the entry
    date is ignored; bounds are compared in the trade's own wall-clock time.
    """
    lower = datetime.combine(start, time.min) if start else None
    upper = datetime.combine(end, time(23, 59, 59)) if end else None

    out = []
    for t in trades:
        entry = t.entry_date.replace(tzinfo=None)
        if lower is not None and entry < lower:
            continue
        if upper is not None and entry > upper:
            continue
        out.append(t)
    return out


def _months_back(now: datetime, months: int) -> datetime:
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    # Clamp the day to the target month's length
    next_first = date(year + (month == 12), month % 12 + 1, 1)
    last_day = (next_first - timedelta(days=1)).day
    return now.replace(year=year, month=month, day=min(now.day, last_day))


def timeframe_start(timeframe: str, now: datetime) -> Optional[datetime]:
    """Start of a relative timeframe, or None for 'all'."""
    if timeframe == "week":
        return now - timedelta(days=7)
    if timeframe == "month":
        return _months_back(now, 1)
    if timeframe == "quarter":
        return _months_back(now, 3)
    if timeframe == "year":
        return _months_back(now, 12)
    return None


def filter_by_timeframe(
    trades: Iterable[Trade],
    timeframe: str = "all",
    now: Optional[datetime] = None,
) -> list[Trade]:
    """Keep trades entered on or after the start of the timeframe."""
    now = now or datetime.now()
    start = timeframe_start(timeframe, now)
    trades = list(trades)
    if start is None:
        return trades
    start = start.replace(tzinfo=None)
    return [t for t in trades if t.entry_date.replace(tzinfo=None) >= start]


def filter_by_journal(
    trades: Iterable[Trade],
    journal_id: Optional[int],
) -> list[Trade]:
    trades = list(trades)
    if journal_id is None:
        return trades
    return [t for t in trades if t.journal_id == journal_id]


def _closed_with_exit(trades: Iterable[Trade]) -> list[Trade]:
    return [
        t for t in trades
        if t.status == TradeStatus.CLOSED.value and t.exit_date is not None
    ]


# ---------------------------------------------------------------------------
# P/L by period
# ---------------------------------------------------------------------------

def _period_key(ts: datetime, grouping: str) -> tuple[str, str]:
    """Return (sortable key, display label) for a timestamp."""
    if grouping == "day":
        key = ts.strftime("%Y-%m-%d")
        return key, key
    if grouping == "week":
        # Weeks start on Sunday
        first = ts.date() - timedelta(days=(ts.weekday() + 1) % 7)
        return first.isoformat(), f"Week of {first.isoformat()}"
    if grouping == "year":
        key = str(ts.year)
        return key, key
    key = f"{ts.year}-{ts.month:02d}"
    return key, f"{MONTH_NAMES[ts.month - 1]} {ts.year}"


def pnl_by_period(
    trades: Iterable[Trade],
    grouping: str = "month",
) -> list[dict]:
    """Sum P/L of closed trades per exit period.

    Returns list of {period, label, profit, loss, total} sorted by period.
    profit/loss split the period total into a positive bar and an
    absolute-value loss bar.
    """
    if grouping not in GROUPINGS:
        raise ValueError(f"grouping must be one of {GROUPINGS}, got {grouping!r}")

    totals: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    labels: dict[str, str] = {}
    for t in _closed_with_exit(trades):
        key, label = _period_key(t.exit_date, grouping)
        totals[key] += t.profit_loss or _ZERO
        labels[key] = label

    return [
        {
            "period": key,
            "label": labels[key],
            "profit": totals[key] if totals[key] > _ZERO else _ZERO,
            "loss": abs(totals[key]) if totals[key] < _ZERO else _ZERO,
            "total": totals[key],
        }
        for key in sorted(totals)
    ]


# ---------------------------------------------------------------------------
# Breakdowns
# ---------------------------------------------------------------------------

def win_loss_by_strategy(trades: Iterable[Trade]) -> list[dict]:
    """Wins/losses per strategy over closed trades, busiest first."""
    counts: dict[str, dict[str, int]] = defaultdict(lambda: {"wins": 0, "losses": 0})
    for t in trades:
        if t.status != TradeStatus.CLOSED.value:
            continue
        strategy = t.strategy or "Unknown"
        counts[strategy]  # register strategies with only break-even trades
        if t.profit_loss is not None and t.profit_loss > _ZERO:
            counts[strategy]["wins"] += 1
        elif t.profit_loss is not None and t.profit_loss < _ZERO:
            counts[strategy]["losses"] += 1

    rows = []
    for strategy, c in counts.items():
        total = c["wins"] + c["losses"]
        rows.append({
            "strategy": strategy,
            "wins": c["wins"],
            "losses": c["losses"],
            "total": total,
            "win_rate": int(win_rate(c["wins"], total).quantize(Decimal("1"))),
        })
    return sorted(rows, key=lambda r: r["total"], reverse=True)


def classify_asset_class(symbol: str) -> str:
    """Guess the asset class from the symbol format."""
    if "/" not in symbol:
        return "Stocks"
    upper = symbol.upper()
    if any(marker in upper for marker in _CRYPTO_MARKERS):
        return "Crypto"
    return "Forex"


def asset_class_distribution(trades: Iterable[Trade]) -> list[dict]:
    """Trade count and P/L per asset class over closed trades."""
    counts: dict[str, int] = defaultdict(int)
    pnl: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    for t in trades:
        if t.status != TradeStatus.CLOSED.value:
            continue
        cls = classify_asset_class(t.symbol)
        counts[cls] += 1
        pnl[cls] += t.profit_loss or _ZERO

    return [
        {"name": cls, "value": counts[cls], "profit_loss": pnl[cls]}
        for cls in counts
    ]


def equity_curve(trades: Iterable[Trade]) -> list[dict]:
    """Cumulative P/L over closed trades ordered by exit date.

    The first point is {"date": None, "label": "Start", "equity": 0}.
    """
    closed = sorted(_closed_with_exit(trades), key=lambda t: t.exit_date)
    if not closed:
        return []

    points = [{"date": None, "label": "Start", "equity": _ZERO}]
    cumulative = _ZERO
    for t in closed:
        cumulative += t.profit_loss or _ZERO
        points.append({
            "date": t.exit_date,
            "label": t.exit_date.strftime("%Y-%m-%d"),
            "equity": cumulative,
        })
    return points


def average_trade_duration(trades: Iterable[Trade]) -> str:
    """Average holding time of closed trades in whole days."""
    closed = _closed_with_exit(trades)
    if not closed:
        return "N/A"

    durations = [
        max(0, (t.exit_date - t.entry_date).days)
        for t in closed
    ]
    avg = sum(durations) / len(durations)
    if avg < 1:
        return "Same day"
    return f"{round(avg)} days"


# ---------------------------------------------------------------------------
# Indicator performance
# ---------------------------------------------------------------------------

@dataclass
class IndicatorPerformance:
    name: str
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: Decimal
    total_profit: Decimal
    average_profit: Decimal
    total_loss: Decimal           # positive number
    average_loss: Decimal         # positive number
    net_profit_loss: Decimal
    return_ratio: Decimal         # average profit / average loss
    expectancy: Decimal           # win% * avg win - loss% * avg loss


def indicator_performance(
    trades: Iterable[Trade],
    indicators_by_trade: dict[int, list[TradeIndicator]],
    min_trades: int = 3,
) -> list[IndicatorPerformance]:
    """Per-indicator performance over closed trades with a recorded P/L.

    Indicators used on fewer than min_trades trades are skipped.
    Sorted by net P/L, most profitable first.
    """
    buckets: dict[str, dict[str, list]] = {}
    for t in trades:
        if t.status != TradeStatus.CLOSED.value or t.profit_loss is None:
            continue
        for ind in indicators_by_trade.get(t.id, []):
            data = buckets.setdefault(
                ind.indicator_name, {"trades": [], "profits": [], "losses": []},
            )
            data["trades"].append(t.id)
            if t.profit_loss > _ZERO:
                data["profits"].append(t.profit_loss)
            elif t.profit_loss < _ZERO:
                data["losses"].append(abs(t.profit_loss))

    result = []
    for name, data in buckets.items():
        total = len(data["trades"])
        if total < min_trades:
            continue
        wins = len(data["profits"])
        losses = len(data["losses"])
        total_profit = sum(data["profits"], _ZERO)
        total_loss = sum(data["losses"], _ZERO)
        avg_profit = total_profit / wins if wins else _ZERO
        avg_loss = total_loss / losses if losses else _ZERO
        wr = win_rate(wins, total)
        lr = win_rate(losses, total)

        result.append(IndicatorPerformance(
            name=name,
            total_trades=total,
            winning_trades=wins,
            losing_trades=losses,
            win_rate=wr,
            total_profit=total_profit,
            average_profit=avg_profit,
            total_loss=total_loss,
            average_loss=avg_loss,
            net_profit_loss=total_profit - total_loss,
            return_ratio=avg_profit / avg_loss if avg_loss > _ZERO else avg_profit,
            expectancy=wr / _HUNDRED * avg_profit - lr / _HUNDRED * avg_loss,
        ))

    return sorted(result, key=lambda p: p.net_profit_loss, reverse=True)


# ---------------------------------------------------------------------------
# Table export
# ---------------------------------------------------------------------------

TRADE_COLUMNS = [
    "id", "entry_date", "symbol", "direction", "status", "strategy",
    "quantity", "entry_price", "exit_price", "fees",
    "profit_loss", "profit_loss_percent", "journal_id",
]


def trades_to_frame(trades: Iterable[Trade]) -> pd.DataFrame:
    """Trades as a DataFrame (floats at the display boundary)."""
    rows = []
    for t in trades:
        rows.append({
            "id": t.id,
            "entry_date": t.entry_date,
            "symbol": t.symbol,
            "direction": t.direction,
            "status": t.status,
            "strategy": t.strategy,
            "quantity": float(t.quantity),
            "entry_price": float(t.entry_price),
            "exit_price": float(t.exit_price) if t.exit_price is not None else None,
            "fees": float(t.fees),
            "profit_loss": float(t.profit_loss) if t.profit_loss is not None else None,
            "profit_loss_percent": (
                float(t.profit_loss_percent)
                if t.profit_loss_percent is not None else None
            ),
            "journal_id": t.journal_id,
        })
    return pd.DataFrame(rows, columns=TRADE_COLUMNS)
