"""
service.py — Data-access layer used by the dashboard.

JournalService wraps JournalStore and ScreenshotStorage for one user:

- every call is scoped to the configured user id; without a user the call
  logs a warning and returns an empty result
- every StoreError is caught and logged; callers get [], None or False
- stored P/L is derived from calculations.closed_trade_pnl()
- user settings are created with defaults on first read
"""

from __future__ import annotations

import dataclasses
import logging
import time
import uuid
from pathlib import PurePosixPath
from typing import Any, Iterable, Optional

from tradejournal.calculations import closed_trade_pnl
from tradejournal.models import (
    Journal,
    Trade,
    TradeEntry,
    TradeExit,
    TradeIndicator,
    TradeScreenshot,
    UserSettings,
)
from tradejournal.stats import TradeStats, compute_trade_stats
from tradejournal.store import (
    TRADE_COLUMNS,
    USER_SETTINGS_COLUMNS,
    JournalStore,
    NotFoundError,
    ScreenshotStorage,
    StoreError,
)

logger = logging.getLogger(__name__)


def trade_changes(trade: Trade) -> dict[str, Any]:
    """Every writable column of trade plus its entry and exit points."""
    changes = {col: getattr(trade, col) for col in sorted(TRADE_COLUMNS)}
    changes["entries"] = list(trade.entries)
    changes["exits"] = list(trade.exits)
    return changes


class JournalService:
    """CRUD operations for the current user."""

    def __init__(
        self,
        store: JournalStore,
        storage: ScreenshotStorage,
        user_id: Optional[str],
    ) -> None:
        self._store = store
        self._storage = storage
        self._user_id = user_id

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    def _require_user(self, action: str) -> bool:
        if not self._user_id:
            logger.warning("No user found while trying to %s", action)
            return False
        return True

    def _owns_trade(self, trade_id: int) -> bool:
        try:
            self._store.get_trade(trade_id, self._user_id)
        except NotFoundError:
            logger.warning(
                "Trade %s not found or not owned by %s", trade_id, self._user_id,
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Trades
    # ------------------------------------------------------------------

    def get_trades(self, journal_id: Optional[int] = None) -> list[Trade]:
        """All trades of the user, optionally limited to one journal."""
        if not self._require_user("fetch trades"):
            return []
        try:
            return self._store.list_trades(self._user_id, journal_id)
        except StoreError as e:
            logger.error("Error fetching trades: %s", e)
            return []

    def get_trade(self, trade_id: int) -> Optional[Trade]:
        """A single trade with its entry and exit points loaded."""
        if not self._require_user("fetch a trade"):
            return None
        try:
            trade = self._store.get_trade(trade_id, self._user_id)
            trade.entries = self._store.list_entries(trade_id)
            trade.exits = self._store.list_exits(trade_id)
            return trade
        except StoreError as e:
            logger.error("Error fetching trade %s: %s", trade_id, e)
            return None

    def add_trade(self, trade: Trade) -> Optional[Trade]:
        """Insert a trade and its points. Rolls the trade back if the points fail."""
        if not self._require_user("add a trade"):
            return None

        if trade.profit_loss is None:
            pnl, pct = closed_trade_pnl(trade)
            trade = dataclasses.replace(
                trade, profit_loss=pnl, profit_loss_percent=pct,
            )

        try:
            stored = self._store.insert_trade(trade, self._user_id)
        except StoreError as e:
            logger.error("Error adding trade: %s", e)
            return None

        try:
            if trade.entries:
                self._store.replace_entries(stored.id, trade.entries)
            if trade.exits:
                self._store.replace_exits(stored.id, trade.exits)
        except StoreError as e:
            logger.error("Error adding points for trade %s: %s", stored.id, e)
            try:
                self._store.delete_trade(stored.id, self._user_id)
            except StoreError as cleanup_error:
                logger.error(
                    "Error rolling back trade %s: %s", stored.id, cleanup_error,
                )
            return None

        logger.info("Added trade %s (%s)", stored.id, stored.symbol)
        return self.get_trade(stored.id)

    def update_trade(self, trade_id: int, changes: dict[str, Any]) -> Optional[Trade]:
        """Apply a partial update.

        ``entries`` / ``exits`` keys replace the stored points. Unless the
        caller passes ``profit_loss``, P/L is recomputed from the merged
        trade.
        """
        if not self._require_user("update a trade"):
            return None

        changes = dict(changes)
        entries = changes.pop("entries", None)
        exits = changes.pop("exits", None)

        try:
            current = self._store.get_trade(trade_id, self._user_id)
            if "profit_loss" not in changes:
                merged = dataclasses.replace(current, **{
                    k: v for k, v in changes.items() if k in TRADE_COLUMNS
                })
                pnl, pct = closed_trade_pnl(merged)
                changes["profit_loss"] = pnl
                changes["profit_loss_percent"] = pct

            self._store.update_trade(trade_id, changes, self._user_id)
            if entries is not None:
                self._store.replace_entries(trade_id, entries)
            if exits is not None:
                self._store.replace_exits(trade_id, exits)
        except StoreError as e:
            logger.error("Error updating trade %s: %s", trade_id, e)
            return None

        return self.get_trade(trade_id)

    def delete_trade(self, trade_id: int) -> bool:
        if not self._require_user("delete a trade"):
            return False
        try:
            if not self._owns_trade(trade_id):
                return False
            screenshots = self._store.list_screenshots(trade_id)
            self._store.delete_trade(trade_id, self._user_id)
        except StoreError as e:
            logger.error("Error deleting trade %s: %s", trade_id, e)
            return False

        if screenshots:
            try:
                self._storage.remove(s.file_path for s in screenshots)
            except StoreError as e:
                logger.error("Error removing screenshots of trade %s: %s", trade_id, e)
        return True

    def get_trade_stats(self, journal_id: Optional[int] = None) -> TradeStats:
        return compute_trade_stats(self.get_trades(journal_id))

    # ------------------------------------------------------------------
    # Entry / exit points
    # ------------------------------------------------------------------

    def get_trade_entries(self, trade_id: int) -> list[TradeEntry]:
        if not self._require_user("fetch trade entries"):
            return []
        try:
            if not self._owns_trade(trade_id):
                return []
            return self._store.list_entries(trade_id)
        except StoreError as e:
            logger.error("Error fetching entries for trade %s: %s", trade_id, e)
            return []

    def add_trade_entry(self, trade_id: int, entry: TradeEntry) -> Optional[TradeEntry]:
        if not self._require_user("add a trade entry"):
            return None
        try:
            if not self._owns_trade(trade_id):
                return None
            return self._store.insert_entry(trade_id, entry)
        except StoreError as e:
            logger.error("Error adding entry to trade %s: %s", trade_id, e)
            return None

    def update_trade_entry(
        self,
        entry_id: int,
        changes: dict[str, Any],
    ) -> Optional[TradeEntry]:
        if not self._require_user("update a trade entry"):
            return None
        try:
            entry = self._store.get_entry(entry_id)
            if not self._owns_trade(entry.trade_id):
                return None
            return self._store.update_entry(entry_id, changes)
        except StoreError as e:
            logger.error("Error updating trade entry %s: %s", entry_id, e)
            return None

    def delete_trade_entry(self, entry_id: int) -> bool:
        if not self._require_user("delete a trade entry"):
            return False
        try:
            entry = self._store.get_entry(entry_id)
            if not self._owns_trade(entry.trade_id):
                return False
            self._store.delete_entry(entry_id)
            return True
        except StoreError as e:
            logger.error("Error deleting trade entry %s: %s", entry_id, e)
            return False

    def get_trade_exits(self, trade_id: int) -> list[TradeExit]:
        if not self._require_user("fetch trade exits"):
            return []
        try:
            if not self._owns_trade(trade_id):
                return []
            return self._store.list_exits(trade_id)
        except StoreError as e:
            logger.error("Error fetching exits for trade %s: %s", trade_id, e)
            return []

    def add_trade_exit(self, trade_id: int, exit_: TradeExit) -> Optional[TradeExit]:
        if not self._require_user("add a trade exit"):
            return None
        try:
            if not self._owns_trade(trade_id):
                return None
            return self._store.insert_exit(trade_id, exit_)
        except StoreError as e:
            logger.error("Error adding exit to trade %s: %s", trade_id, e)
            return None

    def update_trade_exit(
        self,
        exit_id: int,
        changes: dict[str, Any],
    ) -> Optional[TradeExit]:
        if not self._require_user("update a trade exit"):
            return None
        try:
            exit_ = self._store.get_exit(exit_id)
            if not self._owns_trade(exit_.trade_id):
                return None
            return self._store.update_exit(exit_id, changes)
        except StoreError as e:
            logger.error("Error updating trade exit %s: %s", exit_id, e)
            return None

    def delete_trade_exit(self, exit_id: int) -> bool:
        if not self._require_user("delete a trade exit"):
            return False
        try:
            exit_ = self._store.get_exit(exit_id)
            if not self._owns_trade(exit_.trade_id):
                return False
            self._store.delete_exit(exit_id)
            return True
        except StoreError as e:
            logger.error("Error deleting trade exit %s: %s", exit_id, e)
            return False

    # ------------------------------------------------------------------
    # Journals
    # ------------------------------------------------------------------

    def get_journals(self) -> list[Journal]:
        if not self._require_user("fetch journals"):
            return []
        try:
            return self._store.list_journals(self._user_id)
        except StoreError as e:
            logger.error("Error fetching journals: %s", e)
            return []

    def get_journal(self, journal_id: int) -> Optional[Journal]:
        if not self._require_user("fetch a journal"):
            return None
        try:
            return self._store.get_journal(journal_id, self._user_id)
        except StoreError as e:
            logger.error("Error fetching journal %s: %s", journal_id, e)
            return None

    def add_journal(self, journal: Journal) -> Optional[Journal]:
        if not self._require_user("add a journal"):
            return None
        try:
            stored = self._store.insert_journal(journal, self._user_id)
        except StoreError as e:
            logger.error("Error adding journal: %s", e)
            return None
        logger.info("Added journal %s (%s)", stored.id, stored.name)
        return stored

    def update_journal(
        self,
        journal_id: int,
        changes: dict[str, Any],
    ) -> Optional[Journal]:
        if not self._require_user("update a journal"):
            return None
        try:
            return self._store.update_journal(journal_id, changes, self._user_id)
        except StoreError as e:
            logger.error("Error updating journal %s: %s", journal_id, e)
            return None

    def delete_journal(self, journal_id: int) -> bool:
        """Delete a journal. Its trades are kept with their journal_id."""
        if not self._require_user("delete a journal"):
            return False
        try:
            self._store.delete_journal(journal_id, self._user_id)
        except StoreError as e:
            logger.error("Error deleting journal %s: %s", journal_id, e)
            return False
        return True

    def get_journal_stats(self) -> dict[int, TradeStats]:
        """TradeStats per journal id, over the user's trades."""
        trades = self.get_trades()
        return {
            j.id: compute_trade_stats(t for t in trades if t.journal_id == j.id)
            for j in self.get_journals()
        }

    # ------------------------------------------------------------------
    # User settings
    # ------------------------------------------------------------------

    def get_user_settings(self) -> Optional[UserSettings]:
        """The user's settings row, created with defaults if missing."""
        if not self._require_user("fetch user settings"):
            return None
        try:
            return self._store.get_user_settings(self._user_id)
        except NotFoundError:
            pass
        except StoreError as e:
            logger.error("Error fetching user settings: %s", e)
            return None

        try:
            settings = self._store.insert_user_settings(UserSettings(user_id=self._user_id))
        except StoreError as e:
            logger.error("Error creating default user settings: %s", e)
            return None
        logger.info("Created default settings for user %s", self._user_id)
        return settings

    def update_user_settings(self, changes: dict[str, Any]) -> Optional[UserSettings]:
        if not self._require_user("update user settings"):
            return None

        valid: dict[str, Any] = {}
        for key, value in changes.items():
            if key in USER_SETTINGS_COLUMNS:
                valid[key] = value
            else:
                logger.warning("Skipping unknown user settings field %r", key)

        # Make sure the row exists before the partial update
        if self.get_user_settings() is None:
            return None
        try:
            return self._store.update_user_settings(self._user_id, valid)
        except StoreError as e:
            logger.error("Error updating user settings: %s", e)
            return None

    # ------------------------------------------------------------------
    # Indicators
    # ------------------------------------------------------------------

    def get_trade_indicators(self, trade_id: int) -> list[TradeIndicator]:
        if not self._require_user("fetch trade indicators"):
            return []
        try:
            if not self._owns_trade(trade_id):
                return []
            return self._store.list_indicators(trade_id)
        except StoreError as e:
            logger.error("Error fetching indicators for trade %s: %s", trade_id, e)
            return []

    def get_indicators_by_trade(
        self,
        trade_ids: Iterable[int],
    ) -> dict[int, list[TradeIndicator]]:
        """Indicators grouped by trade id, limited to the user's own trades."""
        if not self._require_user("fetch indicators"):
            return {}
        try:
            owned = {t.id for t in self._store.list_trades(self._user_id)}
            return self._store.list_indicators_for_trades(
                tid for tid in trade_ids if tid in owned
            )
        except StoreError as e:
            logger.error("Error fetching indicators: %s", e)
            return {}

    def add_trade_indicator(
        self,
        trade_id: int,
        indicator_name: str,
        notes: str = "",
    ) -> Optional[TradeIndicator]:
        if not self._require_user("add a trade indicator"):
            return None
        try:
            if not self._owns_trade(trade_id):
                return None
            return self._store.insert_indicator(TradeIndicator(
                trade_id=trade_id, indicator_name=indicator_name, notes=notes,
            ))
        except StoreError as e:
            logger.error("Error adding indicator to trade %s: %s", trade_id, e)
            return None

    def delete_trade_indicator(self, indicator_id: int) -> bool:
        if not self._require_user("delete a trade indicator"):
            return False
        try:
            indicator = self._store.get_indicator(indicator_id)
            if not self._owns_trade(indicator.trade_id):
                return False
            self._store.delete_indicator(indicator_id)
        except StoreError as e:
            logger.error("Error deleting trade indicator %s: %s", indicator_id, e)
            return False
        return True

    def set_trade_indicators(self, trade_id: int, names: Iterable[str]) -> bool:
        """Sync a trade's indicators to exactly the given names."""
        if not self._require_user("update trade indicators"):
            return False
        wanted = list(dict.fromkeys(names))
        try:
            if not self._owns_trade(trade_id):
                return False
            current = self._store.list_indicators(trade_id)
            for ind in current:
                if ind.indicator_name not in wanted:
                    self._store.delete_indicator(ind.id)
            existing = {ind.indicator_name for ind in current}
            for name in wanted:
                if name not in existing:
                    self._store.insert_indicator(
                        TradeIndicator(trade_id=trade_id, indicator_name=name),
                    )
        except StoreError as e:
            logger.error("Error syncing indicators for trade %s: %s", trade_id, e)
            return False
        return True

    # ------------------------------------------------------------------
    # Screenshots
    # ------------------------------------------------------------------

    def get_trade_screenshots(self, trade_id: int) -> list[TradeScreenshot]:
        if not self._require_user("fetch screenshots"):
            return []
        try:
            if not self._owns_trade(trade_id):
                return []
            shots = self._store.list_screenshots(trade_id)
        except StoreError as e:
            logger.error("Error fetching screenshots for trade %s: %s", trade_id, e)
            return []
        for s in shots:
            s.url = self._storage.public_url(s.file_path)
        return shots

    def upload_trade_screenshot(
        self,
        trade_id: int,
        file_name: str,
        data: bytes,
    ) -> Optional[dict[str, str]]:
        """Store an image and link it to the trade. Returns {id, url}."""
        if not self._require_user("upload a screenshot"):
            return None
        try:
            if not self._owns_trade(trade_id):
                return None
        except StoreError as e:
            logger.error("Error checking trade %s: %s", trade_id, e)
            return None

        ext = PurePosixPath(file_name).suffix.lstrip(".").lower() or "png"
        stamp = int(time.time() * 1000)
        path = f"{self._user_id}/{trade_id}/{stamp}-{uuid.uuid4().hex[:10]}.{ext}"

        try:
            self._storage.upload(path, data)
        except StoreError as e:
            logger.error("Error uploading screenshot for trade %s: %s", trade_id, e)
            return None

        try:
            record = self._store.insert_screenshot(TradeScreenshot(
                trade_id=trade_id,
                file_path=path,
                file_name=file_name,
                user_id=self._user_id,
            ))
        except StoreError as e:
            logger.error("Error saving screenshot record: %s", e)
            try:
                self._storage.remove([path])
            except StoreError as cleanup_error:
                logger.error("Error removing orphaned file %s: %s", path, cleanup_error)
            return None

        return {"id": record.id, "url": self._storage.public_url(path)}

    def delete_trade_screenshot(self, screenshot_id: str) -> bool:
        if not self._require_user("delete a screenshot"):
            return False
        try:
            shot = self._store.get_screenshot(screenshot_id)
        except StoreError as e:
            logger.error("Error fetching screenshot %s: %s", screenshot_id, e)
            return False
        if shot.user_id != self._user_id:
            logger.warning(
                "Screenshot %s not owned by %s", screenshot_id, self._user_id,
            )
            return False

        try:
            self._storage.remove([shot.file_path])
        except StoreError as e:
            logger.error("Error removing screenshot file %s: %s", shot.file_path, e)

        try:
            self._store.delete_screenshot(screenshot_id)
        except StoreError as e:
            logger.error("Error deleting screenshot %s: %s", screenshot_id, e)
            return False
        return True
