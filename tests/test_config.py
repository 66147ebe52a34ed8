"""
test_config.py — Tests for environment configuration and logging setup.

Run: pytest tests/test_config.py -v
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from tradejournal.config import LOG_FORMAT, Config, configure_logging


class TestConfigFromEnv:

    def test_defaults(self) -> None:
        config = Config.from_env({})
        assert config == Config()
        assert config.port == 8050
        assert config.debug is False
        assert config.user_id == "local-user"

    def test_overrides(self) -> None:
        config = Config.from_env({
            "TRADEJOURNAL_DB_PATH": "/tmp/j.db",
            "TRADEJOURNAL_USER_ID": "alice",
            "TRADEJOURNAL_PORT": "9000",
            "TRADEJOURNAL_LOG_LEVEL": "debug",
            "UNRELATED": "x",
        })
        assert config.db_path == "/tmp/j.db"
        assert config.user_id == "alice"
        assert config.port == 9000
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("raw,expected", [
        ("1", True), ("true", True), ("YES", True), ("on", True),
        ("0", False), ("false", False), ("", False),
    ])
    def test_debug_flag(self, raw: str, expected: bool) -> None:
        assert Config.from_env({"TRADEJOURNAL_DEBUG": raw}).debug is expected

    def test_empty_user_id_is_kept(self) -> None:
        assert Config.from_env({"TRADEJOURNAL_USER_ID": ""}).user_id == ""

    def test_reads_dotenv_file(self, tmp_path: Path, monkeypatch) -> None:
        (tmp_path / ".env").write_text("TRADEJOURNAL_USER_ID=from-dotenv\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("TRADEJOURNAL_USER_ID", raising=False)
        try:
            assert Config.from_env().user_id == "from-dotenv"
        finally:
            os.environ.pop("TRADEJOURNAL_USER_ID", None)

    def test_frozen(self) -> None:
        with pytest.raises(Exception):
            Config().port = 1


class TestConfigureLogging:

    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_single_handler_and_level(self) -> None:
        configure_logging("debug")
        configure_logging("warning")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
        assert root.handlers[0].formatter._fmt == LOG_FORMAT

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging("chatty")
        assert logging.getLogger().level == logging.INFO
