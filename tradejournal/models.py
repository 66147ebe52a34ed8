"""
models.py — Data models for the trading journal.

Enums for direction, status, fee type and exit execution state.
Plain (mutable) dataclasses for every record the backend stores:
Trade, TradeEntry, TradeExit, Journal, UserSettings, TradeIndicator,
TradeScreenshot. Serialization helpers for JSON transport (dcc.Store).

All financial fields use decimal.Decimal with string constructor:
    Decimal('123.45')  # correct
    Decimal(123.45)    # FORBIDDEN: binary float
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Direction(str, Enum):
    """Side of the position."""
    LONG = "long"
    SHORT = "short"


class TradeStatus(str, Enum):
    """Lifecycle state of a trade."""
    PLANNED = "planned"
    OPEN = "open"
    CLOSED = "closed"


class FeeType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class ExecutionStatus(str, Enum):
    """Execution state of a single exit point."""
    PENDING = "pending"
    EXECUTED = "executed"
    CANCELED = "canceled"


# ---------------------------------------------------------------------------
# Defaults for lazily created user settings
# ---------------------------------------------------------------------------

DEFAULT_ASSET_CLASSES: dict[str, list[str]] = {
    "forex": ["EUR/USD", "GBP/USD", "USD/JPY", "AUD/USD", "USD/CAD"],
    "crypto": ["BTC/USD", "ETH/USD", "XRP/USD", "LTC/USD", "BCH/USD"],
    "stocks": ["AAPL", "MSFT", "GOOGL", "AMZN", "META"],
}

DEFAULT_INDICATORS: list[str] = ["RSI", "MACD", "Moving Average", "Bollinger Bands"]

DEFAULT_STRATEGIES: list[str] = [
    "swing", "day", "position", "momentum", "scalp", "breakout", "trend",
]


# ---------------------------------------------------------------------------
# Trade components
# ---------------------------------------------------------------------------

@dataclass
class FeeDetails:
    """Breakdown of the fees charged on a trade."""
    entry_commission: Decimal = Decimal("0")
    exit_commission: Decimal = Decimal("0")
    swap_fees: Decimal = Decimal("0")
    exchange_fees: Decimal = Decimal("0")
    other_fees: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return (
            self.entry_commission
            + self.exit_commission
            + self.swap_fees
            + self.exchange_fees
            + self.other_fees
        )


@dataclass
class TradeEntry:
    """A single fill that opened (part of) a position."""
    date: datetime
    price: Decimal
    quantity: Decimal
    notes: str = ""
    id: Optional[int] = None
    trade_id: Optional[int] = None


@dataclass
class TradeExit:
    """A single exit point. Planned exits may lack date, price or quantity."""
    date: Optional[datetime] = None
    price: Optional[Decimal] = None
    quantity: Optional[Decimal] = None
    is_stop_loss: bool = False
    is_take_profit: bool = False
    execution_status: str = ExecutionStatus.PENDING.value
    notes: str = ""
    id: Optional[int] = None
    trade_id: Optional[int] = None


# ---------------------------------------------------------------------------
# Trade
# ---------------------------------------------------------------------------

@dataclass
class Trade:
    """
    A trade record as stored by the backend.

    entry_price / exit_price hold weighted averages when the trade has
    several entry or exit points; the detailed points live in entries/exits.
    profit_loss and profit_loss_percent are only set for closed trades and
    are net of fees.
    """

    symbol: str
    direction: str                       # Direction value
    status: str                          # TradeStatus value
    entry_date: datetime
    entry_price: Decimal
    quantity: Decimal

    exit_date: Optional[datetime] = None
    exit_price: Optional[Decimal] = None

    journal_id: Optional[int] = None
    strategy: str = ""
    notes: str = ""
    tags: list[str] = field(default_factory=list)

    profit_loss: Optional[Decimal] = None
    profit_loss_percent: Optional[Decimal] = None

    fees: Decimal = Decimal("0")
    fee_type: str = FeeType.FIXED.value
    fee_details: FeeDetails = field(default_factory=FeeDetails)

    entries: list[TradeEntry] = field(default_factory=list)
    exits: list[TradeExit] = field(default_factory=list)

    id: Optional[int] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED.value

    @property
    def is_open(self) -> bool:
        return self.status == TradeStatus.OPEN.value


# ---------------------------------------------------------------------------
# Journal / settings / attachments
# ---------------------------------------------------------------------------

@dataclass
class Journal:
    """A named grouping of trades. Owns trades by reference only."""
    name: str
    description: str = ""
    is_active: bool = True
    base_currency: str = "USD"
    tags: list[str] = field(default_factory=list)
    id: Optional[int] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class UserSettings:
    """Per-user defaults, created with default values on first read."""
    user_id: str
    enable_registration: bool = True
    custom_symbols: list[str] = field(default_factory=list)
    custom_asset_classes: list[str] = field(default_factory=list)
    default_asset_classes: dict[str, list[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_ASSET_CLASSES.items()}
    )
    custom_indicators: list[str] = field(default_factory=list)
    default_indicators: list[str] = field(default_factory=lambda: list(DEFAULT_INDICATORS))
    custom_strategies: list[str] = field(default_factory=list)
    default_strategies: list[str] = field(default_factory=lambda: list(DEFAULT_STRATEGIES))
    id: Optional[int] = None

    @property
    def all_indicators(self) -> list[str]:
        return _unique(self.default_indicators + self.custom_indicators)

    @property
    def all_strategies(self) -> list[str]:
        return _unique(self.default_strategies + self.custom_strategies)

    @property
    def all_symbols(self) -> list[str]:
        symbols: list[str] = []
        for values in self.default_asset_classes.values():
            symbols.extend(values)
        return _unique(symbols + self.custom_symbols)


@dataclass
class TradeIndicator:
    """Link between a trade and a named technical indicator."""
    trade_id: int
    indicator_name: str
    notes: str = ""
    id: Optional[int] = None


@dataclass
class TradeScreenshot:
    """Reference to a stored image attached to a trade."""
    trade_id: int
    file_path: str
    file_name: str
    url: str = ""
    id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None


def _unique(values: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

_TRADE_DECIMAL_FIELDS = {
    "entry_price", "exit_price", "quantity",
    "profit_loss", "profit_loss_percent", "fees",
}
_TRADE_DATETIME_FIELDS = {"entry_date", "exit_date", "created_at"}


def _to_plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_to_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_plain(v) for k, v in value.items()}
    return value


def _parse_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def record_to_dict(record: Any) -> dict[str, Any]:
    """Convert any model dataclass to a JSON-serializable dict.

    Decimal values become str, datetime values ISO 8601 strings.
    Nested dataclasses (fee details, entries, exits) are converted too.
    """
    result: dict[str, Any] = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if isinstance(value, (FeeDetails, TradeEntry, TradeExit)):
            result[f.name] = record_to_dict(value)
        elif isinstance(value, list) and value and isinstance(
            value[0], (TradeEntry, TradeExit)
        ):
            result[f.name] = [record_to_dict(v) for v in value]
        else:
            result[f.name] = _to_plain(value)
    return result


def fee_details_from_dict(d: Optional[dict[str, Any]]) -> FeeDetails:
    if not d:
        return FeeDetails()
    kwargs = {
        f.name: _parse_decimal(d.get(f.name)) or Decimal("0")
        for f in fields(FeeDetails)
    }
    return FeeDetails(**kwargs)


def entry_from_dict(d: dict[str, Any]) -> TradeEntry:
    return TradeEntry(
        date=_parse_datetime(d["date"]),
        price=_parse_decimal(d["price"]),
        quantity=_parse_decimal(d["quantity"]),
        notes=d.get("notes") or "",
        id=d.get("id"),
        trade_id=d.get("trade_id"),
    )


def exit_from_dict(d: dict[str, Any]) -> TradeExit:
    return TradeExit(
        date=_parse_datetime(d.get("date")),
        price=_parse_decimal(d.get("price")),
        quantity=_parse_decimal(d.get("quantity")),
        is_stop_loss=bool(d.get("is_stop_loss", False)),
        is_take_profit=bool(d.get("is_take_profit", False)),
        execution_status=d.get("execution_status") or ExecutionStatus.PENDING.value,
        notes=d.get("notes") or "",
        id=d.get("id"),
        trade_id=d.get("trade_id"),
    )


def trade_from_dict(d: dict[str, Any]) -> Trade:
    """Reconstruct a Trade from a dict produced by record_to_dict()."""
    kwargs: dict[str, Any] = {}
    for key, value in d.items():
        if key in _TRADE_DECIMAL_FIELDS:
            kwargs[key] = _parse_decimal(value)
        elif key in _TRADE_DATETIME_FIELDS:
            kwargs[key] = _parse_datetime(value)
        elif key == "fee_details":
            kwargs[key] = fee_details_from_dict(value)
        elif key == "entries":
            kwargs[key] = [entry_from_dict(e) for e in value or []]
        elif key == "exits":
            kwargs[key] = [exit_from_dict(e) for e in value or []]
        elif key == "tags":
            kwargs[key] = list(value or [])
        else:
            kwargs[key] = value

    if kwargs.get("fees") is None:
        kwargs["fees"] = Decimal("0")
    return Trade(**kwargs)


def journal_from_dict(d: dict[str, Any]) -> Journal:
    return Journal(
        name=d["name"],
        description=d.get("description") or "",
        is_active=bool(d.get("is_active", True)),
        base_currency=d.get("base_currency") or "USD",
        tags=list(d.get("tags") or []),
        id=d.get("id"),
        user_id=d.get("user_id"),
        created_at=_parse_datetime(d.get("created_at")),
    )
