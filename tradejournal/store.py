"""
store.py — SQLite backend for the trading journal.

JournalStore plays the role of the hosted backend: plain CRUD over the
journals, trades, trade_entries, trade_exits, trade_indicators,
trade_screenshots and user_settings tables. It wraps stdlib sqlite3 with:
- Decimal adapters ("DECIMAL TEXT" columns keep exact text)
- WAL mode for concurrent reads
- JSON-encoded list/dict columns
- ISO-8601 datetime strings
- Booleans as INTEGER (0/1)

ScreenshotStorage is the binary-object side: files under a root directory
with a public URL prefix.

No ORM, no business rules: P/L is computed by callers. Every sqlite3 or
filesystem failure surfaces as StoreError.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional

from tradejournal.models import (
    FeeDetails,
    Journal,
    Trade,
    TradeEntry,
    TradeExit,
    TradeIndicator,
    TradeScreenshot,
    UserSettings,
    fee_details_from_dict,
    record_to_dict,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Decimal adapters (module-level registration)
# ---------------------------------------------------------------------------

sqlite3.register_adapter(Decimal, lambda d: str(d))
sqlite3.register_converter("DECIMAL", lambda b: Decimal(b.decode()))


class StoreError(Exception):
    """Raised when the backend cannot complete a request."""
    pass


class NotFoundError(StoreError):
    """Raised when a single-row lookup matches nothing."""
    pass


# ---------------------------------------------------------------------------
# Schema SQL
# ---------------------------------------------------------------------------

_SCHEMA = """
CREATE TABLE IF NOT EXISTS journals (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    created_at     TEXT NOT NULL,
    user_id        TEXT NOT NULL,
    name           TEXT NOT NULL,
    description    TEXT,
    is_active      INTEGER DEFAULT 1,
    base_currency  TEXT DEFAULT 'USD',
    tags           TEXT
);

CREATE TABLE IF NOT EXISTS trades (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    created_at           TEXT NOT NULL,
    user_id              TEXT NOT NULL,
    journal_id           INTEGER,
    symbol               TEXT NOT NULL,
    entry_date           TEXT NOT NULL,
    exit_date            TEXT,
    entry_price          DECIMAL TEXT NOT NULL,
    exit_price           DECIMAL TEXT,
    quantity             DECIMAL TEXT NOT NULL,
    direction            TEXT NOT NULL CHECK (direction IN ('long', 'short')),
    status               TEXT NOT NULL CHECK (status IN ('open', 'closed', 'planned')),
    strategy             TEXT,
    notes                TEXT,
    tags                 TEXT,
    profit_loss          DECIMAL TEXT,
    profit_loss_percent  DECIMAL TEXT,
    fees                 DECIMAL TEXT DEFAULT '0',
    fee_type             TEXT DEFAULT 'fixed',
    fee_details          TEXT
);

CREATE TABLE IF NOT EXISTS trade_entries (
    id        INTEGER PRIMARY KEY AUTOINCREMENT,
    trade_id  INTEGER NOT NULL,
    date      TEXT NOT NULL,
    price     DECIMAL TEXT NOT NULL,
    quantity  DECIMAL TEXT NOT NULL,
    notes     TEXT
);

CREATE TABLE IF NOT EXISTS trade_exits (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    trade_id          INTEGER NOT NULL,
    date              TEXT,
    price             DECIMAL TEXT,
    quantity          DECIMAL TEXT,
    is_stop_loss      INTEGER DEFAULT 0,
    is_take_profit    INTEGER DEFAULT 0,
    execution_status  TEXT DEFAULT 'pending'
        CHECK (execution_status IN ('pending', 'executed', 'canceled')),
    notes             TEXT
);

CREATE TABLE IF NOT EXISTS trade_indicators (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    trade_id        INTEGER NOT NULL,
    indicator_name  TEXT NOT NULL,
    notes           TEXT
);

CREATE TABLE IF NOT EXISTS trade_screenshots (
    id          TEXT PRIMARY KEY,
    created_at  TEXT NOT NULL,
    user_id     TEXT NOT NULL,
    trade_id    INTEGER NOT NULL,
    file_path   TEXT NOT NULL,
    file_name   TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_settings (
    id                     INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id                TEXT UNIQUE NOT NULL,
    enable_registration    INTEGER DEFAULT 1,
    custom_symbols         TEXT,
    custom_asset_classes   TEXT,
    default_asset_classes  TEXT,
    custom_indicators      TEXT,
    default_indicators     TEXT,
    custom_strategies      TEXT,
    default_strategies     TEXT
);

CREATE INDEX IF NOT EXISTS idx_journals_user_id ON journals(user_id);
CREATE INDEX IF NOT EXISTS idx_trades_user_id ON trades(user_id);
CREATE INDEX IF NOT EXISTS idx_trades_journal_id ON trades(journal_id);
CREATE INDEX IF NOT EXISTS idx_trade_entries_trade_id ON trade_entries(trade_id);
CREATE INDEX IF NOT EXISTS idx_trade_exits_trade_id ON trade_exits(trade_id);
CREATE INDEX IF NOT EXISTS idx_trade_indicators_trade_id ON trade_indicators(trade_id);
CREATE INDEX IF NOT EXISTS idx_trade_screenshots_trade_id ON trade_screenshots(trade_id);
"""

# ---------------------------------------------------------------------------
# Writable columns per table (partial updates are checked against these)
# ---------------------------------------------------------------------------

TRADE_COLUMNS = frozenset({
    "journal_id", "symbol", "entry_date", "exit_date", "entry_price",
    "exit_price", "quantity", "direction", "status", "strategy", "notes",
    "tags", "profit_loss", "profit_loss_percent", "fees", "fee_type",
    "fee_details",
})

ENTRY_COLUMNS = frozenset({"date", "price", "quantity", "notes"})

EXIT_COLUMNS = frozenset({
    "date", "price", "quantity", "is_stop_loss", "is_take_profit",
    "execution_status", "notes",
})

JOURNAL_COLUMNS = frozenset({
    "name", "description", "is_active", "base_currency", "tags",
})

USER_SETTINGS_COLUMNS = frozenset({
    "enable_registration", "custom_symbols", "custom_asset_classes",
    "default_asset_classes", "custom_indicators", "default_indicators",
    "custom_strategies", "default_strategies",
})

_JSON_COLUMNS = frozenset({
    "tags", "custom_symbols", "custom_asset_classes", "default_asset_classes",
    "custom_indicators", "default_indicators", "custom_strategies",
    "default_strategies",
})


def _to_db(column: str, value: Any) -> Any:
    """Convert a Python value to its SQLite column representation."""
    if value is None:
        return None
    if column == "fee_details":
        if isinstance(value, FeeDetails):
            value = record_to_dict(value)
        return json.dumps(value)
    if column in _JSON_COLUMNS:
        return json.dumps(value)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _json(value: Optional[str], default: Any) -> Any:
    return json.loads(value) if value else default


def _now() -> datetime:
    return datetime.now().replace(microsecond=0)


# ---------------------------------------------------------------------------
# JournalStore
# ---------------------------------------------------------------------------

class JournalStore:
    """SQLite-backed CRUD backend.

    Parameters
    ----------
    db_path : str
        Path to the SQLite database file.  Parent directories are created
        automatically.  ``":memory:"`` gives a throwaway database.
    """

    def __init__(self, db_path: str = "data/tradejournal.db") -> None:
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(
                db_path,
                detect_types=sqlite3.PARSE_DECLTYPES,
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"cannot open database {db_path!r}: {e}") from e

        logger.debug("Opened journal store at %s", db_path)

    # ------------------------------------------------------------------
    # Low-level helpers
    # ------------------------------------------------------------------

    def _query(self, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
        try:
            return self._conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    def _write(self, sql: str, params: Iterable[Any] = ()) -> sqlite3.Cursor:
        try:
            with self._conn:
                return self._conn.execute(sql, tuple(params))
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    def _one(self, sql: str, params: Iterable[Any], what: str) -> sqlite3.Row:
        rows = self._query(sql, params)
        if not rows:
            raise NotFoundError(f"{what} not found")
        return rows[0]

    def _insert(self, table: str, values: dict[str, Any]) -> int:
        columns = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        cursor = self._write(
            f"INSERT INTO {table} ({columns}) VALUES ({marks})",
            [_to_db(k, v) for k, v in values.items()],
        )
        return cursor.lastrowid

    def _update(
        self,
        table: str,
        allowed: frozenset[str],
        where: dict[str, Any],
        values: dict[str, Any],
    ) -> int:
        unknown = set(values) - allowed
        if unknown:
            raise StoreError(
                f"unknown column(s) for {table}: {', '.join(sorted(unknown))}"
            )
        if not values:
            return 0
        set_clause = ", ".join(f"{k} = ?" for k in values)
        where_clause = " AND ".join(f"{k} = ?" for k in where)
        params = [_to_db(k, v) for k, v in values.items()] + list(where.values())
        cursor = self._write(
            f"UPDATE {table} SET {set_clause} WHERE {where_clause}", params,
        )
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Trades
    # ------------------------------------------------------------------

    def list_trades(
        self,
        user_id: str,
        journal_id: Optional[int] = None,
    ) -> list[Trade]:
        """Trades for a user, newest entry first. Points are not loaded."""
        sql = "SELECT * FROM trades WHERE user_id = ?"
        params: list[Any] = [user_id]
        if journal_id is not None:
            sql += " AND journal_id = ?"
            params.append(journal_id)
        sql += " ORDER BY entry_date DESC, id DESC"
        return [self._row_to_trade(r) for r in self._query(sql, params)]

    def get_trade(self, trade_id: int, user_id: Optional[str] = None) -> Trade:
        """Fetch a trade row (without entry/exit points)."""
        sql = "SELECT * FROM trades WHERE id = ?"
        params: list[Any] = [trade_id]
        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)
        return self._row_to_trade(self._one(sql, params, f"trade {trade_id}"))

    def insert_trade(self, trade: Trade, user_id: str) -> Trade:
        values = {col: getattr(trade, col) for col in sorted(TRADE_COLUMNS)}
        values["user_id"] = user_id
        values["created_at"] = _now()
        trade_id = self._insert("trades", values)
        return self.get_trade(trade_id)

    def update_trade(
        self,
        trade_id: int,
        values: dict[str, Any],
        user_id: Optional[str] = None,
    ) -> Trade:
        where: dict[str, Any] = {"id": trade_id}
        if user_id is not None:
            where["user_id"] = user_id
        if values and self._update("trades", TRADE_COLUMNS, where, values) == 0:
            raise NotFoundError(f"trade {trade_id} not found")
        return self.get_trade(trade_id, user_id)

    def delete_trade(self, trade_id: int, user_id: Optional[str] = None) -> None:
        """Delete a trade together with its points, indicators and screenshot rows."""
        sql = "DELETE FROM trades WHERE id = ?"
        params: list[Any] = [trade_id]
        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)
        try:
            with self._conn:
                cursor = self._conn.execute(sql, params)
                if cursor.rowcount:
                    for child in (
                        "trade_entries", "trade_exits",
                        "trade_indicators", "trade_screenshots",
                    ):
                        self._conn.execute(
                            f"DELETE FROM {child} WHERE trade_id = ?", (trade_id,),
                        )
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def list_entries(self, trade_id: int) -> list[TradeEntry]:
        rows = self._query(
            "SELECT * FROM trade_entries WHERE trade_id = ? ORDER BY date ASC, id ASC",
            (trade_id,),
        )
        return [self._row_to_entry(r) for r in rows]

    def get_entry(self, entry_id: int) -> TradeEntry:
        return self._row_to_entry(self._one(
            "SELECT * FROM trade_entries WHERE id = ?", (entry_id,),
            f"trade entry {entry_id}",
        ))

    def insert_entry(self, trade_id: int, entry: TradeEntry) -> TradeEntry:
        values = {col: getattr(entry, col) for col in sorted(ENTRY_COLUMNS)}
        values["trade_id"] = trade_id
        return self.get_entry(self._insert("trade_entries", values))

    def update_entry(self, entry_id: int, values: dict[str, Any]) -> TradeEntry:
        if values and self._update(
            "trade_entries", ENTRY_COLUMNS, {"id": entry_id}, values,
        ) == 0:
            raise NotFoundError(f"trade entry {entry_id} not found")
        return self.get_entry(entry_id)

    def delete_entry(self, entry_id: int) -> None:
        self._write("DELETE FROM trade_entries WHERE id = ?", (entry_id,))

    def replace_entries(
        self,
        trade_id: int,
        entries: Iterable[TradeEntry],
    ) -> list[TradeEntry]:
        """Delete all entry points of a trade and insert the given ones."""
        try:
            with self._conn:
                self._conn.execute(
                    "DELETE FROM trade_entries WHERE trade_id = ?", (trade_id,),
                )
                for e in entries:
                    self._conn.execute(
                        "INSERT INTO trade_entries (trade_id, date, price, quantity, notes) "
                        "VALUES (?, ?, ?, ?, ?)",
                        (trade_id, _to_db("date", e.date), e.price, e.quantity, e.notes),
                    )
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        return self.list_entries(trade_id)

    # ------------------------------------------------------------------
    # Exit points
    # ------------------------------------------------------------------

    def list_exits(self, trade_id: int) -> list[TradeExit]:
        # Undated (planned) exits sort last
        rows = self._query(
            "SELECT * FROM trade_exits WHERE trade_id = ? "
            "ORDER BY date IS NULL, date ASC, id ASC",
            (trade_id,),
        )
        return [self._row_to_exit(r) for r in rows]

    def get_exit(self, exit_id: int) -> TradeExit:
        return self._row_to_exit(self._one(
            "SELECT * FROM trade_exits WHERE id = ?", (exit_id,),
            f"trade exit {exit_id}",
        ))

    def insert_exit(self, trade_id: int, exit_: TradeExit) -> TradeExit:
        values = {col: getattr(exit_, col) for col in sorted(EXIT_COLUMNS)}
        values["trade_id"] = trade_id
        return self.get_exit(self._insert("trade_exits", values))

    def update_exit(self, exit_id: int, values: dict[str, Any]) -> TradeExit:
        if values and self._update(
            "trade_exits", EXIT_COLUMNS, {"id": exit_id}, values,
        ) == 0:
            raise NotFoundError(f"trade exit {exit_id} not found")
        return self.get_exit(exit_id)

    def delete_exit(self, exit_id: int) -> None:
        self._write("DELETE FROM trade_exits WHERE id = ?", (exit_id,))

    def replace_exits(
        self,
        trade_id: int,
        exits: Iterable[TradeExit],
    ) -> list[TradeExit]:
        """Delete all exit points of a trade and insert the given ones."""
        try:
            with self._conn:
                self._conn.execute(
                    "DELETE FROM trade_exits WHERE trade_id = ?", (trade_id,),
                )
                for x in exits:
                    self._conn.execute(
                        "INSERT INTO trade_exits (trade_id, date, price, quantity, "
                        "is_stop_loss, is_take_profit, execution_status, notes) "
                        "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                        (
                            trade_id,
                            _to_db("date", x.date),
                            x.price,
                            x.quantity,
                            int(x.is_stop_loss),
                            int(x.is_take_profit),
                            x.execution_status,
                            x.notes,
                        ),
                    )
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        return self.list_exits(trade_id)

    # ------------------------------------------------------------------
    # Journals
    # ------------------------------------------------------------------

    def list_journals(self, user_id: str) -> list[Journal]:
        rows = self._query(
            "SELECT * FROM journals WHERE user_id = ? ORDER BY name ASC",
            (user_id,),
        )
        return [self._row_to_journal(r) for r in rows]

    def get_journal(self, journal_id: int, user_id: Optional[str] = None) -> Journal:
        sql = "SELECT * FROM journals WHERE id = ?"
        params: list[Any] = [journal_id]
        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)
        return self._row_to_journal(self._one(sql, params, f"journal {journal_id}"))

    def insert_journal(self, journal: Journal, user_id: str) -> Journal:
        values = {col: getattr(journal, col) for col in sorted(JOURNAL_COLUMNS)}
        values["user_id"] = user_id
        values["created_at"] = _now()
        return self.get_journal(self._insert("journals", values))

    def update_journal(
        self,
        journal_id: int,
        values: dict[str, Any],
        user_id: Optional[str] = None,
    ) -> Journal:
        where: dict[str, Any] = {"id": journal_id}
        if user_id is not None:
            where["user_id"] = user_id
        if values and self._update("journals", JOURNAL_COLUMNS, where, values) == 0:
            raise NotFoundError(f"journal {journal_id} not found")
        return self.get_journal(journal_id, user_id)

    def delete_journal(self, journal_id: int, user_id: Optional[str] = None) -> None:
        """Delete the journal row only. Trades keep their journal_id."""
        sql = "DELETE FROM journals WHERE id = ?"
        params: list[Any] = [journal_id]
        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)
        self._write(sql, params)

    # ------------------------------------------------------------------
    # User settings
    # ------------------------------------------------------------------

    def get_user_settings(self, user_id: str) -> UserSettings:
        return self._row_to_settings(self._one(
            "SELECT * FROM user_settings WHERE user_id = ?", (user_id,),
            f"settings for user {user_id}",
        ))

    def insert_user_settings(self, settings: UserSettings) -> UserSettings:
        values = {col: getattr(settings, col) for col in sorted(USER_SETTINGS_COLUMNS)}
        values["user_id"] = settings.user_id
        self._insert("user_settings", values)
        return self.get_user_settings(settings.user_id)

    def update_user_settings(
        self,
        user_id: str,
        values: dict[str, Any],
    ) -> UserSettings:
        if values and self._update(
            "user_settings", USER_SETTINGS_COLUMNS, {"user_id": user_id}, values,
        ) == 0:
            raise NotFoundError(f"settings for user {user_id} not found")
        return self.get_user_settings(user_id)

    # ------------------------------------------------------------------
    # Trade indicators
    # ------------------------------------------------------------------

    def list_indicators(self, trade_id: int) -> list[TradeIndicator]:
        rows = self._query(
            "SELECT * FROM trade_indicators WHERE trade_id = ? ORDER BY id ASC",
            (trade_id,),
        )
        return [self._row_to_indicator(r) for r in rows]

    def list_indicators_for_trades(
        self,
        trade_ids: Iterable[int],
    ) -> dict[int, list[TradeIndicator]]:
        """Indicators grouped by trade id for a batch of trades."""
        ids = list(trade_ids)
        if not ids:
            return {}
        marks = ", ".join("?" for _ in ids)
        rows = self._query(
            f"SELECT * FROM trade_indicators WHERE trade_id IN ({marks}) ORDER BY id ASC",
            ids,
        )
        grouped: dict[int, list[TradeIndicator]] = {}
        for r in rows:
            grouped.setdefault(r["trade_id"], []).append(self._row_to_indicator(r))
        return grouped

    def get_indicator(self, indicator_id: int) -> TradeIndicator:
        return self._row_to_indicator(self._one(
            "SELECT * FROM trade_indicators WHERE id = ?", (indicator_id,),
            f"trade indicator {indicator_id}",
        ))

    def insert_indicator(self, indicator: TradeIndicator) -> TradeIndicator:
        row_id = self._insert("trade_indicators", {
            "trade_id": indicator.trade_id,
            "indicator_name": indicator.indicator_name,
            "notes": indicator.notes,
        })
        return self._row_to_indicator(self._one(
            "SELECT * FROM trade_indicators WHERE id = ?", (row_id,),
            f"trade indicator {row_id}",
        ))

    def delete_indicator(self, indicator_id: int) -> None:
        self._write("DELETE FROM trade_indicators WHERE id = ?", (indicator_id,))

    # ------------------------------------------------------------------
    # Trade screenshots
    # ------------------------------------------------------------------

    def list_screenshots(self, trade_id: int) -> list[TradeScreenshot]:
        rows = self._query(
            "SELECT * FROM trade_screenshots WHERE trade_id = ? ORDER BY created_at ASC",
            (trade_id,),
        )
        return [self._row_to_screenshot(r) for r in rows]

    def get_screenshot(self, screenshot_id: str) -> TradeScreenshot:
        return self._row_to_screenshot(self._one(
            "SELECT * FROM trade_screenshots WHERE id = ?", (screenshot_id,),
            f"screenshot {screenshot_id}",
        ))

    def insert_screenshot(self, screenshot: TradeScreenshot) -> TradeScreenshot:
        screenshot_id = screenshot.id or str(uuid.uuid4())
        self._insert("trade_screenshots", {
            "id": screenshot_id,
            "created_at": screenshot.created_at or datetime.now(),
            "user_id": screenshot.user_id,
            "trade_id": screenshot.trade_id,
            "file_path": screenshot.file_path,
            "file_name": screenshot.file_name,
        })
        return self.get_screenshot(screenshot_id)

    def delete_screenshot(self, screenshot_id: str) -> None:
        self._write("DELETE FROM trade_screenshots WHERE id = ?", (screenshot_id,))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_trade(row: sqlite3.Row) -> Trade:
        return Trade(
            id=row["id"],
            user_id=row["user_id"],
            created_at=_parse_dt(row["created_at"]),
            journal_id=row["journal_id"],
            symbol=row["symbol"],
            direction=row["direction"],
            status=row["status"],
            entry_date=_parse_dt(row["entry_date"]),
            exit_date=_parse_dt(row["exit_date"]),
            entry_price=row["entry_price"],
            exit_price=row["exit_price"],
            quantity=row["quantity"],
            strategy=row["strategy"] or "",
            notes=row["notes"] or "",
            tags=_json(row["tags"], []),
            profit_loss=row["profit_loss"],
            profit_loss_percent=row["profit_loss_percent"],
            fees=row["fees"] if row["fees"] is not None else Decimal("0"),
            fee_type=row["fee_type"] or "fixed",
            fee_details=fee_details_from_dict(_json(row["fee_details"], None)),
        )

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> TradeEntry:
        return TradeEntry(
            id=row["id"],
            trade_id=row["trade_id"],
            date=_parse_dt(row["date"]),
            price=row["price"],
            quantity=row["quantity"],
            notes=row["notes"] or "",
        )

    @staticmethod
    def _row_to_exit(row: sqlite3.Row) -> TradeExit:
        return TradeExit(
            id=row["id"],
            trade_id=row["trade_id"],
            date=_parse_dt(row["date"]),
            price=row["price"],
            quantity=row["quantity"],
            is_stop_loss=bool(row["is_stop_loss"]),
            is_take_profit=bool(row["is_take_profit"]),
            execution_status=row["execution_status"] or "pending",
            notes=row["notes"] or "",
        )

    @staticmethod
    def _row_to_journal(row: sqlite3.Row) -> Journal:
        return Journal(
            id=row["id"],
            user_id=row["user_id"],
            created_at=_parse_dt(row["created_at"]),
            name=row["name"],
            description=row["description"] or "",
            is_active=bool(row["is_active"]) if row["is_active"] is not None else True,
            base_currency=row["base_currency"] or "USD",
            tags=_json(row["tags"], []),
        )

    @staticmethod
    def _row_to_settings(row: sqlite3.Row) -> UserSettings:
        defaults = UserSettings(user_id=row["user_id"])
        return UserSettings(
            id=row["id"],
            user_id=row["user_id"],
            enable_registration=bool(row["enable_registration"]),
            custom_symbols=_json(row["custom_symbols"], []),
            custom_asset_classes=_json(row["custom_asset_classes"], []),
            default_asset_classes=_json(
                row["default_asset_classes"], defaults.default_asset_classes,
            ),
            custom_indicators=_json(row["custom_indicators"], []),
            default_indicators=_json(
                row["default_indicators"], defaults.default_indicators,
            ),
            custom_strategies=_json(row["custom_strategies"], []),
            default_strategies=_json(
                row["default_strategies"], defaults.default_strategies,
            ),
        )

    @staticmethod
    def _row_to_indicator(row: sqlite3.Row) -> TradeIndicator:
        return TradeIndicator(
            id=row["id"],
            trade_id=row["trade_id"],
            indicator_name=row["indicator_name"],
            notes=row["notes"] or "",
        )

    @staticmethod
    def _row_to_screenshot(row: sqlite3.Row) -> TradeScreenshot:
        return TradeScreenshot(
            id=row["id"],
            user_id=row["user_id"],
            trade_id=row["trade_id"],
            created_at=_parse_dt(row["created_at"]),
            file_path=row["file_path"],
            file_name=row["file_name"],
        )


# ---------------------------------------------------------------------------
# ScreenshotStorage
# ---------------------------------------------------------------------------

class ScreenshotStorage:
    """File storage for screenshot images.

    Parameters
    ----------
    root : str
        Directory that holds the files.  Created on first upload.
    base_url : str
        URL prefix the dashboard serves ``root`` under.
    """

    def __init__(self, root: str = "data/screenshots", base_url: str = "/screenshots") -> None:
        self._root = Path(root)
        self._base_url = base_url.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        parts = Path(path).parts
        if not parts or Path(path).is_absolute() or ".." in parts:
            raise StoreError(f"invalid storage path: {path!r}")
        return self._root.joinpath(*parts)

    def upload(self, path: str, data: bytes) -> None:
        """Write a new object. Refuses to overwrite an existing one."""
        target = self._resolve(path)
        if target.exists():
            raise StoreError(f"object already exists: {path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StoreError(f"upload failed for {path}: {e}") from e

    def remove(self, paths: Iterable[str]) -> None:
        """Delete objects. Missing objects are ignored."""
        for path in paths:
            target = self._resolve(path)
            try:
                target.unlink(missing_ok=True)
            except OSError as e:
                raise StoreError(f"remove failed for {path}: {e}") from e

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def public_url(self, path: str) -> str:
        return f"{self._base_url}/{path}"
