"""
forms.py — Form state, validation and payload building for trades and journals.

The dashboard keeps raw form values (strings, floats, None) in component
state. This module turns them into validated model objects:

- validate_trade_form() returns a user-facing message or None
- build_trade_payload() returns a Trade ready for the service
- validate_journal_form() covers the journal dialog
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from tradejournal.calculations import PositionSummary, summarize_position
from tradejournal.models import (
    ExecutionStatus,
    FeeDetails,
    FeeType,
    Trade,
    TradeEntry,
    TradeExit,
    TradeStatus,
)

_ZERO = Decimal("0")
_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


# ---------------------------------------------------------------------------
# Form rows
# ---------------------------------------------------------------------------

@dataclass
class EntryPoint:
    date: Optional[date] = None
    time: str = "09:30"
    price: Optional[Decimal] = None
    quantity: Optional[Decimal] = None
    notes: str = ""


@dataclass
class ExitPoint:
    date: Optional[date] = None
    time: str = "16:00"
    price: Optional[Decimal] = None
    quantity: Optional[Decimal] = None
    notes: str = ""
    is_stop_loss: bool = False
    is_take_profit: bool = False


@dataclass
class TradeForm:
    """Everything the trade drawer collects before submit."""
    symbol: str = ""
    direction: str = "long"
    status: str = TradeStatus.OPEN.value
    strategy: str = "day"
    journal_id: Optional[int] = None
    tags: str = ""
    notes: str = ""
    fees: Decimal = _ZERO
    fee_type: str = FeeType.FIXED.value
    fee_details: FeeDetails = field(default_factory=FeeDetails)
    entries: list[EntryPoint] = field(default_factory=lambda: [EntryPoint()])
    exits: list[ExitPoint] = field(default_factory=lambda: [ExitPoint()])
    indicators: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a form value into Decimal; blank or garbage becomes None."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def to_date(value: Any) -> Optional[date]:
    """Parse a DatePicker value ('YYYY-MM-DD' or ISO datetime)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def combine_date_and_time(day: date, time_str: str) -> datetime:
    """Combine a date with an 'HH:MM' string. Bad parts default to 0."""
    hours, minutes = 0, 0
    parts = (time_str or "").split(":")
    try:
        hours = int(parts[0])
    except (ValueError, IndexError):
        hours = 0
    try:
        minutes = int(parts[1])
    except (ValueError, IndexError):
        minutes = 0
    if not 0 <= hours <= 23:
        hours = 0
    if not 0 <= minutes <= 59:
        minutes = 0
    return datetime(day.year, day.month, day.day, hours, minutes)


def split_tags(raw: str) -> list[str]:
    return [t.strip() for t in (raw or "").split(",") if t.strip()]


def _is_positive(value: Optional[Decimal]) -> bool:
    return value is not None and value > _ZERO


# ---------------------------------------------------------------------------
# Conversion to model points
# ---------------------------------------------------------------------------

def _entry_points(form: TradeForm) -> list[TradeEntry]:
    return [
        TradeEntry(
            date=combine_date_and_time(e.date, e.time),
            price=e.price or _ZERO,
            quantity=e.quantity or _ZERO,
            notes=e.notes,
        )
        for e in form.entries
        if e.date is not None
    ]


def _exit_points(form: TradeForm) -> list[TradeExit]:
    points = []
    for x in form.exits:
        if x.date is None and x.price is None and x.quantity is None:
            continue
        executed = (
            form.status == TradeStatus.CLOSED.value
            and x.date is not None
            and _is_positive(x.price)
            and _is_positive(x.quantity)
        )
        points.append(TradeExit(
            date=combine_date_and_time(x.date, x.time) if x.date else None,
            price=x.price,
            quantity=x.quantity,
            is_stop_loss=x.is_stop_loss,
            is_take_profit=x.is_take_profit,
            execution_status=(
                ExecutionStatus.EXECUTED.value if executed
                else ExecutionStatus.PENDING.value
            ),
            notes=x.notes,
        ))
    return points


def form_fees(form: TradeForm) -> Decimal:
    """Fee total: the breakdown wins when it has any non-zero part."""
    breakdown = form.fee_details.total
    if breakdown > _ZERO:
        return breakdown
    return form.fees or _ZERO


def form_position_summary(form: TradeForm) -> PositionSummary:
    """Totals for the form's current rows. Unpriced exits are ignored."""
    exits = [x for x in _exit_points(form) if x.price and x.quantity]
    return summarize_position(form.direction, _entry_points(form), exits, form_fees(form))


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_trade_form(form: TradeForm) -> Optional[str]:
    """Return the first validation error message, or None if valid."""
    if not form.symbol or not form.symbol.strip():
        return "Symbol is required"

    if form.fees is not None and form.fees < _ZERO:
        return "Fees cannot be negative"

    if form.status == TradeStatus.PLANNED.value:
        # Planned trades only need a dated, priced entry plan
        if not form.entries:
            return "At least one planned entry point is required"
        for e in form.entries:
            if e.date is None:
                return "Entry date is required"
            if not _is_positive(e.price):
                return "Entry price must be greater than 0"
        return None

    if not form.entries:
        return "At least one entry point is required"

    for e in form.entries:
        if e.date is None:
            return "Entry date is required"
        if not _is_positive(e.price):
            return "Entry price must be greater than 0"
        if not _is_positive(e.quantity):
            return "Entry quantity must be greater than 0"

    if form.status == TradeStatus.CLOSED.value:
        if not form.exits:
            return "For closed trades, at least one exit point is required"
        for x in form.exits:
            if x.date is None:
                return "Exit date is required for exits"
            if not _is_positive(x.price):
                return "Exit price must be greater than 0 for exits"
            if not _is_positive(x.quantity):
                return "Exit quantity must be greater than 0 for exits"

        total_in = sum((e.quantity for e in form.entries), _ZERO)
        total_out = sum((x.quantity for x in form.exits), _ZERO)
        if total_out < total_in:
            return "Total exit quantity must equal total entry quantity for closed trades"

    return None


def validate_journal_form(name: str, base_currency: str = "USD") -> Optional[str]:
    if not name or not name.strip():
        return "Journal name is required"
    if not _CURRENCY_RE.match((base_currency or "").upper()):
        return "Base currency must be a 3-letter code"
    return None


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------

def build_trade_payload(form: TradeForm) -> Trade:
    """Build the Trade record the service persists.

    Call validate_trade_form() first; this function assumes a valid form.
    """
    entries = _entry_points(form)
    exits = _exit_points(form)
    fees = form_fees(form)
    summary = form_position_summary(form)

    is_closed = form.status == TradeStatus.CLOSED.value
    first_exit_date = exits[0].date if exits else None

    return Trade(
        symbol=form.symbol.strip().upper(),
        direction=form.direction,
        status=form.status,
        strategy=form.strategy or "",
        tags=split_tags(form.tags),
        notes=form.notes or "",
        journal_id=form.journal_id,
        entry_date=entries[0].date,
        entry_price=summary.average_entry_price,
        exit_date=first_exit_date if is_closed else None,
        exit_price=summary.average_exit_price or None,
        quantity=summary.total_entry_quantity,
        fees=fees,
        fee_type=form.fee_type or FeeType.FIXED.value,
        fee_details=form.fee_details,
        profit_loss=summary.net_pnl if is_closed else None,
        profit_loss_percent=summary.pnl_percent if is_closed else None,
        entries=entries,
        exits=exits,
    )


def form_from_trade(trade: Trade, indicators: Optional[list[str]] = None) -> TradeForm:
    """Rebuild form state from a stored trade (edit mode)."""
    if trade.entries:
        entries = [
            EntryPoint(
                date=e.date.date(),
                time=e.date.strftime("%H:%M"),
                price=e.price,
                quantity=e.quantity,
                notes=e.notes,
            )
            for e in trade.entries
        ]
    else:
        entries = [EntryPoint(
            date=trade.entry_date.date(),
            time=trade.entry_date.strftime("%H:%M"),
            price=trade.entry_price,
            quantity=trade.quantity,
        )]

    if trade.exits:
        exits = [
            ExitPoint(
                date=x.date.date() if x.date else None,
                time=x.date.strftime("%H:%M") if x.date else "16:00",
                price=x.price,
                quantity=x.quantity,
                notes=x.notes,
                is_stop_loss=x.is_stop_loss,
                is_take_profit=x.is_take_profit,
            )
            for x in trade.exits
        ]
    elif trade.exit_price is not None:
        exit_dt = trade.exit_date
        exits = [ExitPoint(
            date=exit_dt.date() if exit_dt else None,
            time=exit_dt.strftime("%H:%M") if exit_dt else "16:00",
            price=trade.exit_price,
            quantity=trade.quantity,
        )]
    else:
        exits = [ExitPoint()]

    return TradeForm(
        symbol=trade.symbol,
        direction=trade.direction,
        status=trade.status,
        strategy=trade.strategy,
        journal_id=trade.journal_id,
        tags=", ".join(trade.tags),
        notes=trade.notes,
        fees=trade.fees,
        fee_type=trade.fee_type,
        fee_details=trade.fee_details,
        entries=entries,
        exits=exits,
        indicators=list(indicators or []),
    )
