"""
config.py — Environment configuration and logging setup.

Values come from environment variables, optionally loaded from a .env file
in the working directory:

    TRADEJOURNAL_DB_PATH          SQLite file            (data/tradejournal.db)
    TRADEJOURNAL_SCREENSHOT_DIR   screenshot files       (data/screenshots)
    TRADEJOURNAL_SCREENSHOT_URL   URL prefix for files   (/screenshots)
    TRADEJOURNAL_USER_ID          current user id        (local-user)
    TRADEJOURNAL_HOST             bind address           (127.0.0.1)
    TRADEJOURNAL_PORT             port                   (8050)
    TRADEJOURNAL_DEBUG            Dash debug mode        (false)
    TRADEJOURNAL_LOG_LEVEL        logging level          (INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Config:
    db_path: str = "data/tradejournal.db"
    screenshot_dir: str = "data/screenshots"
    screenshot_url: str = "/screenshots"
    user_id: str = "local-user"
    host: str = "127.0.0.1"
    port: int = 8050
    debug: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv: bool = True,
    ) -> "Config":
        """Build a Config from the process environment (or a given mapping)."""
        if environ is None:
            if dotenv:
                load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        def get(name: str, default: str) -> str:
            return environ.get(f"TRADEJOURNAL_{name}", default)

        return cls(
            db_path=get("DB_PATH", cls.db_path),
            screenshot_dir=get("SCREENSHOT_DIR", cls.screenshot_dir),
            screenshot_url=get("SCREENSHOT_URL", cls.screenshot_url),
            user_id=get("USER_ID", cls.user_id),
            host=get("HOST", cls.host),
            port=int(get("PORT", str(cls.port))),
            debug=get("DEBUG", "false").lower() in _TRUE_VALUES,
            log_level=get("LOG_LEVEL", cls.log_level).upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
