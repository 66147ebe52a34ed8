"""
test_store.py — Tests for the SQLite backend and screenshot storage (store.py).

Covers:
- Schema creation, WAL mode
- Trade insert / get / update / delete with Decimal precision
- Entry and exit points (ordering, replace, update)
- Journals (ordering, delete leaves trades untouched)
- User settings insert / update, unknown columns rejected
- Indicators and screenshots
- ScreenshotStorage upload / remove / public_url

Run: pytest tests/test_store.py -v
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

from tradejournal.models import (
    FeeDetails,
    Journal,
    Trade,
    TradeEntry,
    TradeExit,
    TradeIndicator,
    TradeScreenshot,
    UserSettings,
)
from tradejournal.store import JournalStore, NotFoundError, ScreenshotStorage, StoreError

USER = "user-1"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def store(tmp_path: Path) -> JournalStore:
    """A JournalStore backed by a temp SQLite file."""
    s = JournalStore(db_path=str(tmp_path / "test.db"))
    yield s
    s.close()


@pytest.fixture
def storage(tmp_path: Path) -> ScreenshotStorage:
    return ScreenshotStorage(str(tmp_path / "shots"), "/screenshots/")


def _trade(**overrides) -> Trade:
    base = dict(
        symbol="AAPL",
        direction="long",
        status="closed",
        entry_date=datetime(2024, 3, 15, 9, 30),
        entry_price=Decimal("182.50"),
        quantity=Decimal("100"),
        exit_date=datetime(2024, 3, 15, 15, 45),
        exit_price=Decimal("185.25"),
        profit_loss=Decimal("272.25"),
        profit_loss_percent=Decimal("1.4918"),
        fees=Decimal("2.75"),
        fee_details=FeeDetails(entry_commission=Decimal("1.25"), exit_commission=Decimal("1.50")),
        strategy="swing",
        tags=["earnings", "tech"],
        notes="Clean breakout",
    )
    base.update(overrides)
    return Trade(**base)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

class TestSchema:

    def test_creates_db_file_and_parents(self, tmp_path: Path) -> None:
        db_path = tmp_path / "sub" / "dir" / "journal.db"
        s = JournalStore(str(db_path))
        s.close()
        assert db_path.exists()

    def test_wal_mode(self, store: JournalStore) -> None:
        mode = store._conn.execute("PRAGMA journal_mode").fetchone()[0]
        assert mode == "wal"

    def test_tables_exist(self, store: JournalStore) -> None:
        names = {
            r[0] for r in store._conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            )
        }
        assert {
            "journals", "trades", "trade_entries", "trade_exits",
            "trade_indicators", "trade_screenshots", "user_settings",
        } <= names

    def test_in_memory(self) -> None:
        s = JournalStore(":memory:")
        assert s.list_trades(USER) == []
        s.close()


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------

class TestTrades:

    def test_insert_and_get_round_trip(self, store: JournalStore) -> None:
        stored = store.insert_trade(_trade(), USER)
        assert stored.id is not None
        assert stored.user_id == USER
        assert stored.created_at is not None

        got = store.get_trade(stored.id, USER)
        assert got.entry_price == Decimal("182.50")
        assert got.profit_loss_percent == Decimal("1.4918")
        assert got.fees == Decimal("2.75")
        assert got.fee_details.exit_commission == Decimal("1.50")
        assert got.tags == ["earnings", "tech"]
        assert got.entry_date == datetime(2024, 3, 15, 9, 30)

    def test_decimal_is_exact(self, store: JournalStore) -> None:
        stored = store.insert_trade(_trade(entry_price=Decimal("0.1234567890123")), USER)
        assert store.get_trade(stored.id).entry_price == Decimal("0.1234567890123")

    def test_open_trade_nulls(self, store: JournalStore) -> None:
        stored = store.insert_trade(
            _trade(status="open", exit_date=None, exit_price=None,
                   profit_loss=None, profit_loss_percent=None),
            USER,
        )
        got = store.get_trade(stored.id)
        assert got.exit_price is None
        assert got.exit_date is None
        assert got.profit_loss is None

    def test_invalid_direction_rejected(self, store: JournalStore) -> None:
        with pytest.raises(StoreError):
            store.insert_trade(_trade(direction="sideways"), USER)

    def test_get_missing(self, store: JournalStore) -> None:
        with pytest.raises(NotFoundError):
            store.get_trade(999)

    def test_get_other_users_trade(self, store: JournalStore) -> None:
        stored = store.insert_trade(_trade(), USER)
        with pytest.raises(NotFoundError):
            store.get_trade(stored.id, "someone-else")

    def test_list_filters_and_orders(self, store: JournalStore) -> None:
        store.insert_trade(_trade(symbol="OLD", entry_date=datetime(2024, 1, 1), journal_id=1), USER)
        store.insert_trade(_trade(symbol="NEW", entry_date=datetime(2024, 6, 1), journal_id=2), USER)
        store.insert_trade(_trade(symbol="OTHER"), "user-2")

        assert [t.symbol for t in store.list_trades(USER)] == ["NEW", "OLD"]
        assert [t.symbol for t in store.list_trades(USER, journal_id=1)] == ["OLD"]
        assert [t.symbol for t in store.list_trades("user-2")] == ["OTHER"]

    def test_partial_update(self, store: JournalStore) -> None:
        stored = store.insert_trade(_trade(), USER)
        updated = store.update_trade(stored.id, {"notes": "revised", "tags": ["x"]}, USER)
        assert updated.notes == "revised"
        assert updated.tags == ["x"]
        assert updated.symbol == "AAPL"

    def test_update_unknown_column(self, store: JournalStore) -> None:
        stored = store.insert_trade(_trade(), USER)
        with pytest.raises(StoreError, match="unknown column"):
            store.update_trade(stored.id, {"user_id": "hijack"})

    def test_update_missing(self, store: JournalStore) -> None:
        with pytest.raises(NotFoundError):
            store.update_trade(999, {"notes": "x"})

    def test_delete_removes_children(self, store: JournalStore) -> None:
        stored = store.insert_trade(_trade(), USER)
        store.replace_entries(stored.id, [
            TradeEntry(date=datetime(2024, 3, 15, 9, 30), price=Decimal("182.50"),
                       quantity=Decimal("100")),
        ])
        store.replace_exits(stored.id, [TradeExit(price=Decimal("190"))])
        store.insert_indicator(TradeIndicator(trade_id=stored.id, indicator_name="RSI"))
        store.insert_screenshot(TradeScreenshot(
            trade_id=stored.id, file_path="a/b.png", file_name="b.png", user_id=USER,
        ))

        store.delete_trade(stored.id, USER)

        with pytest.raises(NotFoundError):
            store.get_trade(stored.id)
        assert store.list_entries(stored.id) == []
        assert store.list_exits(stored.id) == []
        assert store.list_indicators(stored.id) == []
        assert store.list_screenshots(stored.id) == []

    def test_delete_other_users_trade_is_noop(self, store: JournalStore) -> None:
        stored = store.insert_trade(_trade(), USER)
        store.delete_trade(stored.id, "someone-else")
        assert store.get_trade(stored.id).id == stored.id


# ---------------------------------------------------------------------------
# Entry / exit points
# ---------------------------------------------------------------------------

class TestPoints:

    def test_entries_ordered_by_date(self, store: JournalStore) -> None:
        trade = store.insert_trade(_trade(), USER)
        store.insert_entry(trade.id, TradeEntry(
            date=datetime(2024, 3, 2), price=Decimal("2"), quantity=Decimal("1")))
        store.insert_entry(trade.id, TradeEntry(
            date=datetime(2024, 3, 1), price=Decimal("1"), quantity=Decimal("1"), notes="first"))
        entries = store.list_entries(trade.id)
        assert [e.price for e in entries] == [Decimal("1"), Decimal("2")]
        assert entries[0].notes == "first"
        assert entries[0].trade_id == trade.id

    def test_replace_entries(self, store: JournalStore) -> None:
        trade = store.insert_trade(_trade(), USER)
        store.replace_entries(trade.id, [
            TradeEntry(date=datetime(2024, 3, 1), price=Decimal("1"), quantity=Decimal("1")),
            TradeEntry(date=datetime(2024, 3, 2), price=Decimal("2"), quantity=Decimal("1")),
        ])
        result = store.replace_entries(trade.id, [
            TradeEntry(date=datetime(2024, 3, 3), price=Decimal("3"), quantity=Decimal("5")),
        ])
        assert len(result) == 1
        assert result[0].quantity == Decimal("5")

    def test_update_and_delete_entry(self, store: JournalStore) -> None:
        trade = store.insert_trade(_trade(), USER)
        entry = store.insert_entry(trade.id, TradeEntry(
            date=datetime(2024, 3, 1), price=Decimal("1"), quantity=Decimal("1")))
        assert store.update_entry(entry.id, {"price": Decimal("1.5")}).price == Decimal("1.5")
        store.delete_entry(entry.id)
        assert store.list_entries(trade.id) == []

    def test_exits_pending_sort_last(self, store: JournalStore) -> None:
        trade = store.insert_trade(_trade(), USER)
        store.replace_exits(trade.id, [
            TradeExit(price=Decimal("200"), is_take_profit=True),
            TradeExit(date=datetime(2024, 3, 5), price=Decimal("190"), quantity=Decimal("100"),
                      is_stop_loss=True, execution_status="executed"),
        ])
        exits = store.list_exits(trade.id)
        assert exits[0].execution_status == "executed"
        assert exits[0].is_stop_loss is True
        assert exits[1].date is None
        assert exits[1].quantity is None
        assert exits[1].is_take_profit is True

    def test_update_exit(self, store: JournalStore) -> None:
        trade = store.insert_trade(_trade(), USER)
        exit_ = store.insert_exit(trade.id, TradeExit(price=Decimal("200")))
        updated = store.update_exit(exit_.id, {"execution_status": "canceled"})
        assert updated.execution_status == "canceled"

    def test_invalid_execution_status(self, store: JournalStore) -> None:
        trade = store.insert_trade(_trade(), USER)
        with pytest.raises(StoreError):
            store.insert_exit(trade.id, TradeExit(execution_status="maybe"))


# ---------------------------------------------------------------------------
# Journals
# ---------------------------------------------------------------------------

class TestJournals:

    def test_insert_list_ordered_by_name(self, store: JournalStore) -> None:
        store.insert_journal(Journal(name="Swing"), USER)
        store.insert_journal(Journal(name="Day", base_currency="EUR", tags=["fx"]), USER)
        journals = store.list_journals(USER)
        assert [j.name for j in journals] == ["Day", "Swing"]
        assert journals[0].base_currency == "EUR"
        assert journals[0].tags == ["fx"]
        assert journals[0].is_active is True

    def test_update(self, store: JournalStore) -> None:
        j = store.insert_journal(Journal(name="Swing"), USER)
        updated = store.update_journal(j.id, {"is_active": False, "description": "old"}, USER)
        assert updated.is_active is False
        assert updated.description == "old"

    def test_delete_keeps_trades(self, store: JournalStore) -> None:
        j = store.insert_journal(Journal(name="Swing"), USER)
        trade = store.insert_trade(_trade(journal_id=j.id), USER)
        store.delete_journal(j.id, USER)

        assert store.list_journals(USER) == []
        kept = store.get_trade(trade.id)
        assert kept.journal_id == j.id


# ---------------------------------------------------------------------------
# User settings
# ---------------------------------------------------------------------------

class TestUserSettings:

    def test_missing_settings(self, store: JournalStore) -> None:
        with pytest.raises(NotFoundError):
            store.get_user_settings(USER)

    def test_insert_defaults_round_trip(self, store: JournalStore) -> None:
        stored = store.insert_user_settings(UserSettings(user_id=USER))
        assert stored.id is not None
        assert stored.default_indicators == UserSettings(user_id=USER).default_indicators
        assert stored.default_asset_classes["crypto"][0] == "BTC/USD"

    def test_one_row_per_user(self, store: JournalStore) -> None:
        store.insert_user_settings(UserSettings(user_id=USER))
        with pytest.raises(StoreError):
            store.insert_user_settings(UserSettings(user_id=USER))

    def test_update(self, store: JournalStore) -> None:
        store.insert_user_settings(UserSettings(user_id=USER))
        updated = store.update_user_settings(USER, {"custom_indicators": ["VWAP"]})
        assert updated.custom_indicators == ["VWAP"]

    def test_update_unknown_field(self, store: JournalStore) -> None:
        store.insert_user_settings(UserSettings(user_id=USER))
        with pytest.raises(StoreError):
            store.update_user_settings(USER, {"favourite_color": "blue"})


# ---------------------------------------------------------------------------
# Indicators and screenshots
# ---------------------------------------------------------------------------

class TestAttachments:

    def test_indicators(self, store: JournalStore) -> None:
        t1 = store.insert_trade(_trade(), USER)
        t2 = store.insert_trade(_trade(), USER)
        rsi = store.insert_indicator(TradeIndicator(trade_id=t1.id, indicator_name="RSI"))
        store.insert_indicator(TradeIndicator(trade_id=t2.id, indicator_name="MACD", notes="cross"))

        grouped = store.list_indicators_for_trades([t1.id, t2.id])
        assert [i.indicator_name for i in grouped[t1.id]] == ["RSI"]
        assert grouped[t2.id][0].notes == "cross"
        assert store.list_indicators_for_trades([]) == {}

        assert store.get_indicator(rsi.id).trade_id == t1.id
        store.delete_indicator(rsi.id)
        assert store.list_indicators(t1.id) == []
        with pytest.raises(NotFoundError):
            store.get_indicator(rsi.id)

    def test_screenshots(self, store: JournalStore) -> None:
        trade = store.insert_trade(_trade(), USER)
        shot = store.insert_screenshot(TradeScreenshot(
            trade_id=trade.id, file_path="u/1/x.png", file_name="x.png", user_id=USER,
        ))
        assert len(shot.id) == 36
        assert store.get_screenshot(shot.id).file_name == "x.png"
        assert [s.id for s in store.list_screenshots(trade.id)] == [shot.id]

        store.delete_screenshot(shot.id)
        with pytest.raises(NotFoundError):
            store.get_screenshot(shot.id)


class TestClosedConnection:

    def test_errors_are_wrapped(self, tmp_path: Path) -> None:
        s = JournalStore(str(tmp_path / "x.db"))
        s.close()
        with pytest.raises(StoreError):
            s.list_trades(USER)
        assert not isinstance(StoreError("x"), sqlite3.Error)


# ---------------------------------------------------------------------------
# ScreenshotStorage
# ---------------------------------------------------------------------------

class TestScreenshotStorage:

    def test_upload_and_remove(self, storage: ScreenshotStorage) -> None:
        storage.upload("u/1/a.png", b"png-bytes")
        assert storage.exists("u/1/a.png")
        assert (storage.root / "u" / "1" / "a.png").read_bytes() == b"png-bytes"

        storage.remove(["u/1/a.png", "u/1/missing.png"])
        assert not storage.exists("u/1/a.png")

    def test_no_overwrite(self, storage: ScreenshotStorage) -> None:
        storage.upload("a.png", b"1")
        with pytest.raises(StoreError, match="already exists"):
            storage.upload("a.png", b"2")

    @pytest.mark.parametrize("path", ["../escape.png", "/abs.png", ""])
    def test_rejects_unsafe_paths(self, storage: ScreenshotStorage, path: str) -> None:
        with pytest.raises(StoreError):
            storage.upload(path, b"x")

    def test_public_url(self, storage: ScreenshotStorage) -> None:
        assert storage.public_url("u/1/a.png") == "/screenshots/u/1/a.png"
