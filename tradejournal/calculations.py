"""
calculations.py — Profit/loss arithmetic for the trading journal.

One home for the P/L formula used by forms, the service and statistics:

    long:  (exit_price - entry_price) * quantity
    short: (entry_price - exit_price) * quantity
    net  = gross - total fees

Multi-point trades are summarized with quantity-weighted average prices.
Division by zero is guarded with a 0 fallback. All math in Decimal.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from tradejournal.models import (
    Direction,
    FeeDetails,
    Trade,
    TradeEntry,
    TradeExit,
    TradeStatus,
)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def _check_direction(direction: str) -> Direction:
    try:
        return Direction(direction)
    except ValueError:
        raise ValueError(
            f"direction must be 'long' or 'short', got {direction!r}"
        ) from None


def gross_pnl(
    direction: str,
    entry_price: Decimal,
    exit_price: Decimal,
    quantity: Decimal,
) -> Decimal:
    """Profit or loss before fees."""
    if _check_direction(direction) == Direction.LONG:
        return (exit_price - entry_price) * quantity
    return (entry_price - exit_price) * quantity


def net_pnl(gross: Decimal, fees: Decimal = _ZERO) -> Decimal:
    """Profit or loss after fees. Fees must be >= 0."""
    if fees < _ZERO:
        raise ValueError(f"fees must be >= 0, got {fees}")
    return gross - fees


def pnl_percent(
    direction: str,
    entry_price: Decimal,
    exit_price: Decimal,
) -> Decimal:
    """Price move in percent of the entry price, signed by direction."""
    if entry_price == _ZERO:
        return _ZERO
    if _check_direction(direction) == Direction.LONG:
        return (exit_price - entry_price) / entry_price * _HUNDRED
    return (entry_price - exit_price) / entry_price * _HUNDRED


def fee_total(details: FeeDetails) -> Decimal:
    return details.total


# ---------------------------------------------------------------------------
# Multi-point summaries
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PositionSummary:
    """Totals derived from a trade's entry and exit points."""
    total_entry_quantity: Decimal
    total_exit_quantity: Decimal
    total_entry_value: Decimal
    total_exit_value: Decimal
    average_entry_price: Decimal
    average_exit_price: Decimal
    gross_pnl: Decimal
    net_pnl: Decimal
    pnl_percent: Decimal         # net P/L as % of total entry value
    remaining_quantity: Decimal


def summarize_position(
    direction: str,
    entries: Iterable[TradeEntry],
    exits: Iterable[TradeExit],
    fees: Decimal = _ZERO,
) -> PositionSummary:
    """Aggregate entry/exit points into weighted averages and P/L.

    Exits without price or quantity (pending plans) contribute zero.
    Gross P/L is value based: exit value minus entry value for longs,
    the reverse for shorts.
    """
    entries = list(entries)
    exits = list(exits)

    entry_qty = sum((e.quantity or _ZERO for e in entries), _ZERO)
    entry_value = sum(
        ((e.price or _ZERO) * (e.quantity or _ZERO) for e in entries), _ZERO
    )
    exit_qty = sum((x.quantity or _ZERO for x in exits), _ZERO)
    exit_value = sum(
        ((x.price or _ZERO) * (x.quantity or _ZERO) for x in exits), _ZERO
    )

    avg_entry = entry_value / entry_qty if entry_qty != _ZERO else _ZERO
    avg_exit = exit_value / exit_qty if exit_qty != _ZERO else _ZERO

    if _check_direction(direction) == Direction.LONG:
        gross = exit_value - entry_value
    else:
        gross = entry_value - exit_value

    net = net_pnl(gross, fees)
    pct = net / entry_value * _HUNDRED if entry_value != _ZERO else _ZERO

    return PositionSummary(
        total_entry_quantity=entry_qty,
        total_exit_quantity=exit_qty,
        total_entry_value=entry_value,
        total_exit_value=exit_value,
        average_entry_price=avg_entry,
        average_exit_price=avg_exit,
        gross_pnl=gross,
        net_pnl=net,
        pnl_percent=pct,
        remaining_quantity=entry_qty - exit_qty,
    )


def closed_trade_pnl(
    trade: Trade,
) -> tuple[Optional[Decimal], Optional[Decimal]]:
    """Return (profit_loss, profit_loss_percent) for a closed trade.

    Uses the summary (averaged) prices on the trade record and subtracts
    the trade's fees. Returns (None, None) when the trade is not closed or
    has no exit price.
    """
    if trade.status != TradeStatus.CLOSED.value or trade.exit_price is None:
        return None, None

    gross = gross_pnl(
        trade.direction, trade.entry_price, trade.exit_price, trade.quantity,
    )
    fees = trade.fees or _ZERO
    net = net_pnl(gross, fees)
    entry_value = trade.entry_price * trade.quantity
    pct = net / entry_value * _HUNDRED if entry_value != _ZERO else _ZERO
    return net, pct
