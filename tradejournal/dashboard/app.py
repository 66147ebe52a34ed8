"""
app.py — Dash application entry point for the trading journal.

Launch: python -m tradejournal.dashboard.app
Access: http://localhost:8050

Uses Dash + Plotly + dash-bootstrap-components for the UI. Settings come
from tradejournal.config (environment / .env).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import dash
import dash_bootstrap_components as dbc
from flask import abort, send_from_directory

from tradejournal.config import Config, configure_logging
from tradejournal.service import JournalService
from tradejournal.store import JournalStore, ScreenshotStorage
from tradejournal.dashboard.layouts import build_layout
from tradejournal.dashboard.callbacks import register_callbacks

logger = logging.getLogger(__name__)


def build_service(config: Config) -> JournalService:
    """Wire the SQLite store and screenshot storage for the configured user."""
    store = JournalStore(config.db_path)
    storage = ScreenshotStorage(config.screenshot_dir, config.screenshot_url)
    return JournalService(store, storage, config.user_id)


def _register_screenshot_route(app: dash.Dash, config: Config) -> None:
    """Serve stored screenshots under the configured URL prefix."""
    root = Path(config.screenshot_dir).resolve()
    prefix = config.screenshot_url.rstrip("/")

    @app.server.route(f"{prefix}/<path:path>")
    def serve_screenshot(path: str):
        if not root.exists():
            abort(404)
        return send_from_directory(root, path)


def create_app(
    config: Optional[Config] = None,
    service: Optional[JournalService] = None,
) -> dash.Dash:
    """Create and configure the Dash application."""
    config = config or Config.from_env()
    service = service or build_service(config)

    app = dash.Dash(
        __name__,
        external_stylesheets=[dbc.themes.DARKLY],
        title="Trading Journal",
        suppress_callback_exceptions=True,
    )

    app.layout = build_layout(service.user_id)
    register_callbacks(app, service)
    _register_screenshot_route(app, config)

    return app


def main() -> None:
    """Entry point for running the dashboard."""
    config = Config.from_env()
    configure_logging(config.log_level)
    app = create_app(config)
    logger.info("Starting Trading Journal at http://%s:%s", config.host, config.port)
    app.run(debug=config.debug, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
