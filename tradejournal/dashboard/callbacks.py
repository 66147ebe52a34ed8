"""
callbacks.py — Dash callbacks for the trading journal dashboard.

Handles:
- Routing and the navbar journal selector
- Dashboard KPIs, win-rate ring and recent trades
- Trades table (date filter, delete with confirmation, CSV export)
- Trade form (dynamic entry/exit rows, live summary, save)
- Trade detail screenshots (upload, delete)
- Journals CRUD, calendar navigation, statistics charts, report download
- User settings

Chart and table builders are plain functions so they can be tested
without a running server.
"""

from __future__ import annotations

import base64
import binascii
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

import dash_bootstrap_components as dbc
import plotly.graph_objects as go
from dash import ALL, Input, Output, Patch, State, ctx, dcc, html, no_update
from dash.exceptions import PreventUpdate

from tradejournal.calendar_view import WEEKDAY_HEADERS, DaySummary, month_summaries, shift_month
from tradejournal.forms import (
    EntryPoint,
    ExitPoint,
    TradeForm,
    build_trade_payload,
    form_from_trade,
    form_position_summary,
    split_tags,
    to_date,
    to_decimal,
    validate_journal_form,
    validate_trade_form,
)
from tradejournal.models import FeeDetails, Journal, Trade, TradeEntry, TradeExit, TradeScreenshot
from tradejournal.report import format_currency, format_percent, generate_report
from tradejournal.service import JournalService, trade_changes
from tradejournal.stats import (
    IndicatorPerformance,
    TradeStats,
    asset_class_distribution,
    compute_trade_stats,
    equity_curve,
    filter_by_date_range,
    filter_by_timeframe,
    indicator_performance,
    pnl_by_period,
    trades_to_frame,
    win_loss_by_strategy,
)
from tradejournal.dashboard.layouts import (
    FEE_FIELDS,
    build_calendar_page,
    build_dashboard_page,
    build_entry_row,
    build_exit_row,
    build_journals_page,
    build_kpi_panel,
    build_no_user_page,
    build_not_found_page,
    build_settings_page,
    build_statistics_page,
    build_trade_detail_page,
    build_trade_form_page,
    build_trades_page,
)

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")

POSITIVE_COLOR = "#4CAF50"
NEGATIVE_COLOR = "#F44336"

# Form component ids, in the order collect_trade_form() expects them
FORM_FIELDS = [
    "symbol", "direction", "status", "strategy", "journal_id",
    "tags", "notes", "fees", "fee_type",
]
ENTRY_PROPS = [
    ("date", "date"), ("time", "value"), ("price", "value"),
    ("quantity", "value"), ("notes", "value"),
]
EXIT_PROPS = ENTRY_PROPS + [("stop_loss", "value"), ("take_profit", "value")]


def _form_id(name: str) -> str:
    return f"trade-{name.replace('_', '-')}"


def _fee_id(name: str) -> str:
    return f"fee-{name.replace('_', '-')}"


def _point_id(kind: str, key: str) -> dict:
    return {"type": f"{kind}-{key.replace('_', '-')}", "index": ALL}


def _form_deps(dep) -> list:
    """All trade form components wrapped in Input or State."""
    return (
        [dep(_form_id(f), "value") for f in FORM_FIELDS]
        + [dep(_fee_id(name), "value") for name, _ in FEE_FIELDS]
        + [dep(_point_id("entry", k), prop) for k, prop in ENTRY_PROPS]
        + [dep(_point_id("exit", k), prop) for k, prop in EXIT_PROPS]
        + [dep("trade-indicators", "value")]
    )


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

def route(pathname: Optional[str]) -> tuple[str, Optional[int]]:
    """Map a URL path to (page name, trade id)."""
    path = (pathname or "/").rstrip("/") or "/"
    static = {
        "/": "dashboard",
        "/trades": "trades",
        "/trades/new": "new-trade",
        "/journals": "journals",
        "/calendar": "calendar",
        "/statistics": "statistics",
        "/settings": "settings",
    }
    if path in static:
        return static[path], None

    parts = path.strip("/").split("/")
    if parts[0] == "trades" and len(parts) in (2, 3) and parts[1].isdigit():
        if len(parts) == 2:
            return "trade-detail", int(parts[1])
        if parts[2] == "edit":
            return "edit-trade", int(parts[1])
    return "not-found", None


# ---------------------------------------------------------------------------
# Figures
# ---------------------------------------------------------------------------

def _empty_figure(message: str) -> go.Figure:
    fig = go.Figure()
    fig.update_layout(
        template="plotly_dark",
        xaxis={"visible": False},
        yaxis={"visible": False},
        annotations=[{
            "text": message,
            "xref": "paper", "yref": "paper",
            "x": 0.5, "y": 0.5,
            "showarrow": False,
            "font": {"size": 14},
        }],
    )
    return fig


def build_win_rate_figure(stats: TradeStats) -> go.Figure:
    """Donut of wins / losses / break-even with the win rate in the hole."""
    closed = stats.winning_trades + stats.losing_trades + stats.break_even_trades
    if closed == 0:
        return _empty_figure("No closed trades yet")

    fig = go.Figure(go.Pie(
        labels=["Wins", "Losses", "Break-even"],
        values=[stats.winning_trades, stats.losing_trades, stats.break_even_trades],
        hole=0.7,
        sort=False,
        marker={"colors": [POSITIVE_COLOR, NEGATIVE_COLOR, "#9E9E9E"]},
        textinfo="none",
    ))
    fig.update_layout(
        template="plotly_dark",
        showlegend=True,
        legend={"orientation": "h", "y": -0.1},
        margin={"l": 10, "r": 10, "t": 10, "b": 10},
        annotations=[{
            "text": f"{float(stats.win_rate):.1f}%",
            "showarrow": False,
            "font": {"size": 28},
        }],
    )
    return fig


def build_pnl_period_figure(rows: list[dict]) -> go.Figure:
    """Profit (up) and loss (down) bars per period."""
    if not rows:
        return _empty_figure("No closed trades in this timeframe")

    labels = [r["label"] for r in rows]
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=labels, y=[float(r["profit"]) for r in rows],
        name="Profit", marker_color=POSITIVE_COLOR,
    ))
    fig.add_trace(go.Bar(
        x=labels, y=[-float(r["loss"]) for r in rows],
        name="Loss", marker_color=NEGATIVE_COLOR,
    ))
    fig.update_layout(
        barmode="relative",
        template="plotly_dark",
        margin={"l": 40, "r": 20, "t": 10, "b": 30},
        legend={"orientation": "h", "y": 1.1},
        yaxis_title="P/L",
    )
    return fig


def build_strategy_figure(rows: list[dict]) -> go.Figure:
    """Grouped wins / losses per strategy."""
    if not rows:
        return _empty_figure("No closed trades in this timeframe")

    names = [r["strategy"] for r in rows]
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=names, y=[r["wins"] for r in rows],
        name="Wins", marker_color=POSITIVE_COLOR,
    ))
    fig.add_trace(go.Bar(
        x=names, y=[r["losses"] for r in rows],
        name="Losses", marker_color=NEGATIVE_COLOR,
    ))
    fig.update_layout(
        barmode="group",
        template="plotly_dark",
        margin={"l": 40, "r": 20, "t": 10, "b": 30},
        legend={"orientation": "h", "y": 1.1},
    )
    return fig


def build_asset_class_figure(rows: list[dict]) -> go.Figure:
    if not rows:
        return _empty_figure("No trades in this timeframe")

    fig = go.Figure(go.Pie(
        labels=[r["name"] for r in rows],
        values=[r["value"] for r in rows],
        hole=0.4,
        customdata=[float(r["profit_loss"]) for r in rows],
        hovertemplate="%{label}: %{value} trades<br>P/L %{customdata:,.2f}<extra></extra>",
    ))
    fig.update_layout(
        template="plotly_dark",
        margin={"l": 10, "r": 10, "t": 10, "b": 10},
    )
    return fig


def build_equity_figure(points: list[dict]) -> go.Figure:
    """Cumulative P/L line."""
    if not points:
        return _empty_figure("No closed trades in this timeframe")

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=[p["label"] for p in points],
        y=[float(p["equity"]) for p in points],
        mode="lines+markers",
        name="Equity",
        fill="tozeroy",
        line={"color": POSITIVE_COLOR, "width": 2},
        fillcolor="rgba(76, 175, 80, 0.15)",
    ))
    fig.update_layout(
        template="plotly_dark",
        margin={"l": 40, "r": 20, "t": 10, "b": 30},
        yaxis_title="Cumulative P/L",
        xaxis_title="",
    )
    return fig


# ---------------------------------------------------------------------------
# Tables and panels
# ---------------------------------------------------------------------------

def _pnl_class(value: Optional[Decimal]) -> str:
    if value is None or value == _ZERO:
        return ""
    return "text-success" if value > _ZERO else "text-danger"


def build_kpis(stats: TradeStats, currency: str = "USD") -> list[tuple[str, str]]:
    return [
        ("Total P/L", format_currency(stats.total_profit_loss, currency)),
        ("Win Rate", format_percent(stats.win_rate)),
        ("Total Trades", str(stats.total_trades)),
        ("Open Trades", str(stats.open_trades)),
        ("Average P/L", format_currency(stats.average_profit_loss, currency)),
        ("Largest Win", format_currency(stats.largest_win, currency)),
        ("Largest Loss", format_currency(stats.largest_loss, currency)),
    ]


def build_trades_table(
    trades: list[Trade],
    journal_names: Optional[dict[int, str]] = None,
    currency: str = "USD",
) -> Any:
    """Trade list with view / edit / delete actions."""
    if not trades:
        return html.P("No trades found.", className="text-muted")

    journal_names = journal_names or {}
    header = html.Thead(html.Tr([
        html.Th(h) for h in (
            "Date", "Symbol", "Direction", "Status", "Journal", "Qty",
            "Entry", "Exit", "P/L", "P/L %", "",
        )
    ]))
    rows = []
    for t in trades:
        rows.append(html.Tr([
            html.Td(t.entry_date.strftime("%Y-%m-%d %H:%M")),
            html.Td(dcc.Link(t.symbol, href=f"/trades/{t.id}")),
            html.Td(dbc.Badge(
                t.direction.upper(),
                color="success" if t.direction == "long" else "danger",
            )),
            html.Td(t.status),
            html.Td(journal_names.get(t.journal_id, "-") if t.journal_id else "-"),
            html.Td(f"{t.quantity:,}"),
            html.Td(f"{t.entry_price:,.2f}"),
            html.Td(f"{t.exit_price:,.2f}" if t.exit_price is not None else "-"),
            html.Td(format_currency(t.profit_loss, currency),
                    className=_pnl_class(t.profit_loss)),
            html.Td(format_percent(t.profit_loss_percent)),
            html.Td([
                dbc.Button("Edit", href=f"/trades/{t.id}/edit", size="sm",
                           color="secondary", className="me-1"),
                dbc.Button("Delete", id={"type": "delete-trade", "index": t.id},
                           size="sm", color="danger"),
            ]),
        ]))
    return dbc.Table([header, html.Tbody(rows)], hover=True, responsive=True,
                     size="sm", className="align-middle")


def build_recent_trades(
    trades: list[Trade],
    currency: str = "USD",
    limit: int = 5,
) -> Any:
    recent = sorted(trades, key=lambda t: t.entry_date, reverse=True)[:limit]
    if not recent:
        return html.P("No trades yet.", className="text-muted")
    return dbc.ListGroup([
        dbc.ListGroupItem([
            html.Span(f"{t.symbol} ", className="fw-bold"),
            html.Span(f"{t.direction} · {t.status} · {t.entry_date:%Y-%m-%d}",
                      className="text-muted"),
            html.Span(format_currency(t.profit_loss, currency),
                      className=f"float-end {_pnl_class(t.profit_loss)}"),
        ], href=f"/trades/{t.id}", action=True)
        for t in recent
    ], flush=True)


def build_trade_summary(trade: Trade, currency: str = "USD") -> Any:
    items = [
        ("Entry date", trade.entry_date.strftime("%Y-%m-%d %H:%M")),
        ("Exit date", trade.exit_date.strftime("%Y-%m-%d %H:%M") if trade.exit_date else "-"),
        ("Avg entry", f"{trade.entry_price:,.2f}"),
        ("Avg exit", f"{trade.exit_price:,.2f}" if trade.exit_price is not None else "-"),
        ("Quantity", f"{trade.quantity:,}"),
        ("Strategy", trade.strategy or "-"),
        ("Fees", format_currency(trade.fees, currency)),
        ("P/L", format_currency(trade.profit_loss, currency)),
        ("P/L %", format_percent(trade.profit_loss_percent)),
        ("Tags", ", ".join(trade.tags) or "-"),
    ]
    return dbc.Row([
        dbc.Col([
            html.Small(label, className="text-muted d-block"),
            html.Span(value),
        ], md=2, className="mb-2")
        for label, value in items
    ])


def build_points_table(points: Iterable[TradeEntry | TradeExit]) -> Any:
    """Entry or exit points as a small table."""
    points = list(points)
    if not points:
        return html.P("None", className="text-muted mb-0")

    rows = []
    for p in points:
        flags = []
        if isinstance(p, TradeExit):
            if p.is_stop_loss:
                flags.append("SL")
            if p.is_take_profit:
                flags.append("TP")
            flags.append(p.execution_status)
        rows.append(html.Tr([
            html.Td(p.date.strftime("%Y-%m-%d %H:%M") if p.date else "-"),
            html.Td(f"{p.price:,.2f}" if p.price is not None else "-"),
            html.Td(f"{p.quantity:,}" if p.quantity is not None else "-"),
            html.Td(" ".join(flags)),
            html.Td(p.notes),
        ]))
    return dbc.Table([
        html.Thead(html.Tr([html.Th(h) for h in ("Date", "Price", "Qty", "", "Notes")])),
        html.Tbody(rows),
    ], size="sm", className="mb-0")


def build_calc_summary(form: TradeForm, currency: str = "USD") -> Any:
    """Live position summary under the trade form."""
    try:
        summary = form_position_summary(form)
    except ValueError as e:
        return html.Span(str(e), className="text-danger")

    items = [
        ("Entry qty", f"{summary.total_entry_quantity:,}"),
        ("Avg entry", f"{summary.average_entry_price:,.2f}"),
        ("Exit qty", f"{summary.total_exit_quantity:,}"),
        ("Avg exit", f"{summary.average_exit_price:,.2f}"),
        ("Remaining", f"{summary.remaining_quantity:,}"),
        ("Gross P/L", format_currency(summary.gross_pnl, currency)),
        ("Net P/L", format_currency(summary.net_pnl, currency)),
        ("Net P/L %", format_percent(summary.pnl_percent)),
    ]
    return dbc.Row([
        dbc.Col([
            html.Small(label, className="text-muted d-block"),
            html.Span(value, id=f"calc-{label.lower().replace(' ', '-').replace('/', '')}"),
        ], md=3, className="mb-2")
        for label, value in items
    ])


def build_screenshot_gallery(shots: list[TradeScreenshot]) -> Any:
    if not shots:
        return html.P("No screenshots.", className="text-muted")
    return dbc.Row([
        dbc.Col(dbc.Card([
            html.A(dbc.CardImg(src=s.url, top=True), href=s.url, target="_blank"),
            dbc.CardBody([
                html.Small(s.file_name, className="d-block text-truncate"),
                dbc.Button("Delete", id={"type": "delete-screenshot", "index": s.id},
                           size="sm", color="danger", className="mt-1"),
            ]),
        ], className="mb-2"), md=3)
        for s in shots
    ])


def build_journal_list(
    journals: list[Journal],
    stats_by_journal: Optional[dict[int, TradeStats]] = None,
) -> Any:
    if not journals:
        return html.P("No journals yet. Create one to group your trades.",
                      className="text-muted")

    stats_by_journal = stats_by_journal or {}
    items = []
    for j in journals:
        stats = stats_by_journal.get(j.id, TradeStats())
        items.append(dbc.ListGroupItem([
            html.Div([
                html.Span(j.name, className="fw-bold me-2"),
                dbc.Badge(j.base_currency, color="info", className="me-1"),
                dbc.Badge("active" if j.is_active else "inactive",
                          color="success" if j.is_active else "secondary"),
                html.Span([
                    dbc.Button("Edit", id={"type": "edit-journal", "index": j.id},
                               size="sm", color="secondary", className="me-1"),
                    dbc.Button("Delete", id={"type": "delete-journal", "index": j.id},
                               size="sm", color="danger"),
                ], className="float-end"),
            ]),
            html.Small(j.description, className="text-muted d-block"),
            html.Small(
                f"{stats.total_trades} trades · win rate {format_percent(stats.win_rate)}"
                f" · P/L {format_currency(stats.total_profit_loss, j.base_currency)}",
            ),
            html.Div([dbc.Badge(tag, color="light", text_color="dark", className="me-1")
                      for tag in j.tags]),
        ]))
    return dbc.ListGroup(items)


def build_calendar_grid(
    weeks: list[list[DaySummary]],
    month: int,
    currency: str = "USD",
) -> Any:
    """Month table; cells outside the month are muted."""
    header = html.Thead(html.Tr([html.Th(d, className="text-center") for d in WEEKDAY_HEADERS]))
    body = []
    for week in weeks:
        cells = []
        for s in week:
            content = [html.Div(str(s.day.day), className="fw-bold")]
            if s.opened:
                content.append(html.Small(
                    f"{len(s.opened)} opened (L {s.long_count} / S {s.short_count})",
                    className="d-block",
                ))
            if s.closed:
                content.append(html.Small(
                    f"{len(s.closed)} closed", className="d-block",
                ))
                content.append(html.Small(
                    format_currency(s.net_pnl, currency),
                    className=f"d-block {_pnl_class(s.net_pnl)}",
                ))
            classes = ["align-top"]
            if s.day.month != month:
                classes.append("text-muted opacity-50")
            if s.day == date.today():
                classes.append("border border-info")
            cells.append(html.Td(content, className=" ".join(classes),
                                 style={"height": "90px", "width": "14%"}))
        body.append(html.Tr(cells))
    return dbc.Table([header, html.Tbody(body)], bordered=True, className="mb-0")


def build_indicator_table(performance: list[IndicatorPerformance], currency: str = "USD") -> Any:
    if not performance:
        return html.P("Not enough closed trades with indicators (minimum 3 per indicator).",
                      className="text-muted mb-0")
    header = html.Thead(html.Tr([html.Th(h) for h in (
        "Indicator", "Trades", "Win rate", "Avg profit", "Avg loss",
        "Net P/L", "Return ratio", "Expectancy",
    )]))
    rows = [
        html.Tr([
            html.Td(p.name),
            html.Td(p.total_trades),
            html.Td(format_percent(p.win_rate)),
            html.Td(format_currency(p.average_profit, currency)),
            html.Td(format_currency(p.average_loss, currency)),
            html.Td(format_currency(p.net_profit_loss, currency),
                    className=_pnl_class(p.net_profit_loss)),
            html.Td(f"{p.return_ratio:.2f}"),
            html.Td(format_currency(p.expectancy, currency)),
        ])
        for p in performance
    ]
    return dbc.Table([header, html.Tbody(rows)], size="sm", hover=True, className="mb-0")


# ---------------------------------------------------------------------------
# Form and upload helpers
# ---------------------------------------------------------------------------

def _rows(columns: list[list], keys: list[str]) -> list[dict]:
    """Turn per-field ALL lists into one dict per row."""
    return [dict(zip(keys, values)) for values in zip(*columns)]


def collect_trade_form(
    fields: dict[str, Any],
    fees: dict[str, Any],
    entries: list[dict],
    exits: list[dict],
    indicators: Optional[list[str]] = None,
) -> TradeForm:
    """Build a TradeForm from raw component values.

    Fully blank entry rows are dropped; blank exit rows are dropped later
    by the payload builder.
    """
    entry_points = []
    for row in entries:
        point = EntryPoint(
            date=to_date(row.get("date")),
            time=row.get("time") or "09:30",
            price=to_decimal(row.get("price")),
            quantity=to_decimal(row.get("quantity")),
            notes=row.get("notes") or "",
        )
        if point.date is None and point.price is None and point.quantity is None:
            continue
        entry_points.append(point)

    exit_points = [
        ExitPoint(
            date=to_date(row.get("date")),
            time=row.get("time") or "16:00",
            price=to_decimal(row.get("price")),
            quantity=to_decimal(row.get("quantity")),
            notes=row.get("notes") or "",
            is_stop_loss=bool(row.get("stop_loss")),
            is_take_profit=bool(row.get("take_profit")),
        )
        for row in exits
    ]
    # Closed-trade validation counts every row, so drop the untouched ones here
    exit_points = [
        x for x in exit_points
        if not (x.date is None and x.price is None and x.quantity is None)
    ]

    return TradeForm(
        symbol=fields.get("symbol") or "",
        direction=fields.get("direction") or "long",
        status=fields.get("status") or "open",
        strategy=fields.get("strategy") or "",
        journal_id=fields.get("journal_id"),
        tags=fields.get("tags") or "",
        notes=fields.get("notes") or "",
        fees=to_decimal(fields.get("fees")) or _ZERO,
        fee_type=fields.get("fee_type") or "fixed",
        fee_details=FeeDetails(**{
            name: to_decimal(fees.get(name)) or _ZERO for name, _ in FEE_FIELDS
        }),
        entries=entry_points,
        exits=exit_points,
        indicators=list(indicators or []),
    )


def _form_from_args(args: tuple) -> TradeForm:
    """Inverse of _form_deps(): split callback args into a TradeForm."""
    args = list(args)
    n_fields, n_fees = len(FORM_FIELDS), len(FEE_FIELDS)
    n_entry, n_exit = len(ENTRY_PROPS), len(EXIT_PROPS)

    fields = dict(zip(FORM_FIELDS, args[:n_fields]))
    pos = n_fields
    fees = dict(zip([name for name, _ in FEE_FIELDS], args[pos:pos + n_fees]))
    pos += n_fees
    entries = _rows(args[pos:pos + n_entry], [k for k, _ in ENTRY_PROPS])
    pos += n_entry
    exits = _rows(args[pos:pos + n_exit], [k for k, _ in EXIT_PROPS])
    pos += n_exit
    return collect_trade_form(fields, fees, entries, exits, args[pos])


def decode_upload(contents: str) -> bytes:
    """Decode a dcc.Upload data URI ('data:<mime>;base64,<payload>')."""
    try:
        _, payload = contents.split(",", 1)
        return base64.b64decode(payload)
    except (ValueError, binascii.Error) as e:
        raise ValueError("upload is not a base64 data URI") from e


def _alert(message: str, color: str = "danger") -> dbc.Alert:
    return dbc.Alert(message, color=color, dismissable=True, duration=5000)


def _clicked() -> bool:
    """True when the triggering pattern-matching button was actually clicked."""
    return bool(ctx.triggered and ctx.triggered[0].get("value"))


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def register_callbacks(app, service: JournalService) -> None:
    """Register all Dash callbacks on the app."""

    def currency_for(journal_id: Optional[int]) -> str:
        if journal_id is None:
            return "USD"
        journal = service.get_journal(journal_id)
        return journal.base_currency if journal else "USD"

    def journal_options() -> list[dict]:
        return [{"label": j.name, "value": j.id} for j in service.get_journals()]

    def trades_table(journal_id, start, end) -> Any:
        trades = filter_by_date_range(
            service.get_trades(journal_id), to_date(start), to_date(end),
        )
        names = {j.id: j.name for j in service.get_journals()}
        return build_trades_table(trades, names, currency_for(journal_id))

    # -- Shell ------------------------------------------------------------

    @app.callback(
        [
            Output("journal-selector", "options"),
            Output("journal-selector", "value"),
        ],
        Input("url", "pathname"),
        State("selected-journal", "data"),
    )
    def sync_journal_selector(pathname, selected):
        options = journal_options()
        ids = {o["value"] for o in options}
        return options, selected if selected in ids else None

    @app.callback(
        Output("selected-journal", "data"),
        Input("journal-selector", "value"),
        State("selected-journal", "data"),
    )
    def store_selected_journal(value, current):
        if value == current:
            raise PreventUpdate
        return value

    @app.callback(
        Output("page-content", "children"),
        [
            Input("url", "pathname"),
            Input("selected-journal", "data"),
        ],
    )
    def render_page(pathname, journal_id):
        page, trade_id = route(pathname)
        if not service.user_id:
            return build_no_user_page()

        currency = currency_for(journal_id)

        if page == "dashboard":
            trades = service.get_trades(journal_id)
            stats = compute_trade_stats(trades)
            return build_dashboard_page(
                build_kpis(stats, currency),
                build_win_rate_figure(stats),
                build_recent_trades(trades, currency),
            )

        if page == "trades":
            return build_trades_page(trades_table(journal_id, None, None))

        if page == "new-trade":
            return build_trade_form_page(
                TradeForm(journal_id=journal_id),
                service.get_journals(),
                service.get_user_settings(),
            )

        if page in ("edit-trade", "trade-detail"):
            trade = service.get_trade(trade_id)
            if trade is None:
                return build_not_found_page(pathname)
            indicators = [i.indicator_name for i in service.get_trade_indicators(trade_id)]

            if page == "edit-trade":
                return build_trade_form_page(
                    form_from_trade(trade, indicators),
                    service.get_journals(),
                    service.get_user_settings(),
                    trade_id,
                )

            trade_currency = currency_for(trade.journal_id)
            return build_trade_detail_page(
                trade,
                build_trade_summary(trade, trade_currency),
                build_points_table(trade.entries),
                build_points_table(trade.exits),
                indicators,
                build_screenshot_gallery(service.get_trade_screenshots(trade_id)),
            )

        if page == "journals":
            return build_journals_page(build_journal_list(
                service.get_journals(), service.get_journal_stats(),
            ))

        if page == "calendar":
            today = date.today()
            return build_calendar_page(today.year, today.month)

        if page == "statistics":
            return build_statistics_page()

        if page == "settings":
            settings = service.get_user_settings()
            if settings is None:
                return _alert("Could not load settings.")
            return build_settings_page(settings)

        return build_not_found_page(pathname)

    # -- Trades list ------------------------------------------------------

    @app.callback(
        Output("trades-table", "children"),
        [
            Input("trades-date-range", "start_date"),
            Input("trades-date-range", "end_date"),
        ],
        State("selected-journal", "data"),
        prevent_initial_call=True,
    )
    def filter_trades(start, end, journal_id):
        return trades_table(journal_id, start, end)

    @app.callback(
        [
            Output("confirm-delete-trade", "displayed"),
            Output("pending-delete-trade", "data"),
        ],
        Input({"type": "delete-trade", "index": ALL}, "n_clicks"),
        prevent_initial_call=True,
    )
    def ask_delete_trade(n_clicks):
        if not _clicked():
            raise PreventUpdate
        return True, ctx.triggered_id["index"]

    @app.callback(
        [
            Output("trades-table", "children", allow_duplicate=True),
            Output("trades-alert", "children"),
        ],
        Input("confirm-delete-trade", "submit_n_clicks"),
        [
            State("pending-delete-trade", "data"),
            State("trades-date-range", "start_date"),
            State("trades-date-range", "end_date"),
            State("selected-journal", "data"),
        ],
        prevent_initial_call=True,
    )
    def delete_trade(submit, trade_id, start, end, journal_id):
        if not submit or trade_id is None:
            raise PreventUpdate
        if service.delete_trade(trade_id):
            alert = _alert("Trade deleted.", "success")
        else:
            alert = _alert("Could not delete trade.")
        return trades_table(journal_id, start, end), alert

    @app.callback(
        Output("trades-download", "data"),
        Input("export-trades-btn", "n_clicks"),
        [
            State("trades-date-range", "start_date"),
            State("trades-date-range", "end_date"),
            State("selected-journal", "data"),
        ],
        prevent_initial_call=True,
    )
    def export_trades(n_clicks, start, end, journal_id):
        if not n_clicks:
            raise PreventUpdate
        trades = filter_by_date_range(
            service.get_trades(journal_id), to_date(start), to_date(end),
        )
        frame = trades_to_frame(trades)
        return dcc.send_data_frame(frame.to_csv, "trades.csv", index=False)

    # -- Trade form -------------------------------------------------------

    @app.callback(
        Output("entry-rows", "children"),
        Input("add-entry-btn", "n_clicks"),
        prevent_initial_call=True,
    )
    def add_entry_row(n_clicks):
        rows = Patch()
        rows.append(build_entry_row(f"new-{n_clicks}", EntryPoint()))
        return rows

    @app.callback(
        Output("exit-rows", "children"),
        Input("add-exit-btn", "n_clicks"),
        prevent_initial_call=True,
    )
    def add_exit_row(n_clicks):
        rows = Patch()
        rows.append(build_exit_row(f"new-{n_clicks}", ExitPoint()))
        return rows

    @app.callback(
        Output("trade-calc-summary", "children"),
        _form_deps(Input),
    )
    def update_calc_summary(*args):
        form = _form_from_args(args)
        return build_calc_summary(form, currency_for(form.journal_id))

    @app.callback(
        [
            Output("trade-form-alert", "children"),
            Output("url", "pathname", allow_duplicate=True),
        ],
        Input("save-trade-btn", "n_clicks"),
        [State("trade-form-id", "data")] + _form_deps(State),
        prevent_initial_call=True,
    )
    def save_trade(n_clicks, trade_id, *args):
        if not n_clicks:
            raise PreventUpdate

        form = _form_from_args(args)
        error = validate_trade_form(form)
        if error:
            return _alert(error), no_update

        payload = build_trade_payload(form)
        if trade_id:
            saved = service.update_trade(trade_id, trade_changes(payload))
        else:
            saved = service.add_trade(payload)
        if saved is None:
            return _alert("Could not save trade. Check the logs for details."), no_update

        if not service.set_trade_indicators(saved.id, form.indicators):
            logger.warning("Trade %s saved but indicators were not updated", saved.id)
        return None, f"/trades/{saved.id}"

    # -- Trade detail / screenshots ---------------------------------------

    @app.callback(
        [
            Output("screenshot-gallery", "children"),
            Output("screenshot-alert", "children"),
        ],
        Input("screenshot-upload", "contents"),
        [
            State("screenshot-upload", "filename"),
            State("detail-trade-id", "data"),
        ],
        prevent_initial_call=True,
    )
    def upload_screenshot(contents, filename, trade_id):
        if not contents:
            raise PreventUpdate
        try:
            data = decode_upload(contents)
        except ValueError as e:
            return no_update, _alert(str(e))

        result = service.upload_trade_screenshot(trade_id, filename or "screenshot.png", data)
        alert = _alert("Screenshot uploaded.", "success") if result else _alert(
            "Could not upload screenshot."
        )
        return build_screenshot_gallery(service.get_trade_screenshots(trade_id)), alert

    @app.callback(
        [
            Output("screenshot-gallery", "children", allow_duplicate=True),
            Output("screenshot-alert", "children", allow_duplicate=True),
        ],
        Input({"type": "delete-screenshot", "index": ALL}, "n_clicks"),
        State("detail-trade-id", "data"),
        prevent_initial_call=True,
    )
    def delete_screenshot(n_clicks, trade_id):
        if not _clicked():
            raise PreventUpdate
        if service.delete_trade_screenshot(ctx.triggered_id["index"]):
            alert = _alert("Screenshot deleted.", "success")
        else:
            alert = _alert("Could not delete screenshot.")
        return build_screenshot_gallery(service.get_trade_screenshots(trade_id)), alert

    # -- Journals ---------------------------------------------------------

    journal_form_outputs = [
        ("editing-journal-id", "data"),
        ("journal-name", "value"),
        ("journal-description", "value"),
        ("journal-currency", "value"),
        ("journal-tags", "value"),
        ("journal-active", "value"),
        ("journal-form-title", "children"),
    ]

    def _outputs(specs: list[tuple[str, str]], duplicate: bool = False) -> list[Output]:
        if duplicate:
            return [Output(cid, prop, allow_duplicate=True) for cid, prop in specs]
        return [Output(cid, prop) for cid, prop in specs]

    blank_journal_form = [None, "", "", "USD", "", True, "New Journal"]

    @app.callback(
        _outputs(journal_form_outputs),
        [
            Input({"type": "edit-journal", "index": ALL}, "n_clicks"),
            Input("clear-journal-btn", "n_clicks"),
        ],
        prevent_initial_call=True,
    )
    def fill_journal_form(edit_clicks, clear_clicks):
        if not _clicked():
            raise PreventUpdate
        if ctx.triggered_id == "clear-journal-btn":
            return blank_journal_form

        journal = service.get_journal(ctx.triggered_id["index"])
        if journal is None:
            raise PreventUpdate
        return [
            journal.id, journal.name, journal.description, journal.base_currency,
            ", ".join(journal.tags), journal.is_active, f"Edit {journal.name}",
        ]

    @app.callback(
        [
            Output("journal-alert", "children"),
            Output("journal-list", "children"),
            Output("journal-selector", "options", allow_duplicate=True),
        ] + _outputs(journal_form_outputs, duplicate=True),
        Input("save-journal-btn", "n_clicks"),
        [
            State("editing-journal-id", "data"),
            State("journal-name", "value"),
            State("journal-description", "value"),
            State("journal-currency", "value"),
            State("journal-tags", "value"),
            State("journal-active", "value"),
        ],
        prevent_initial_call=True,
    )
    def save_journal(n_clicks, journal_id, name, description, currency, tags, active):
        unchanged = [no_update] * len(journal_form_outputs)
        if not n_clicks:
            raise PreventUpdate

        currency = (currency or "").strip().upper()
        error = validate_journal_form(name, currency)
        if error:
            return [_alert(error), no_update, no_update] + unchanged

        values = {
            "name": name.strip(),
            "description": description or "",
            "base_currency": currency,
            "tags": split_tags(tags),
            "is_active": bool(active),
        }
        if journal_id:
            saved = service.update_journal(journal_id, values)
        else:
            saved = service.add_journal(Journal(**values))
        if saved is None:
            return [_alert("Could not save journal."), no_update, no_update] + unchanged

        journal_list = build_journal_list(service.get_journals(), service.get_journal_stats())
        return [
            _alert(f"Journal '{saved.name}' saved.", "success"),
            journal_list,
            journal_options(),
        ] + blank_journal_form

    @app.callback(
        [
            Output("confirm-delete-journal", "displayed"),
            Output("pending-delete-journal", "data"),
        ],
        Input({"type": "delete-journal", "index": ALL}, "n_clicks"),
        prevent_initial_call=True,
    )
    def ask_delete_journal(n_clicks):
        if not _clicked():
            raise PreventUpdate
        return True, ctx.triggered_id["index"]

    @app.callback(
        [
            Output("journal-alert", "children", allow_duplicate=True),
            Output("journal-list", "children", allow_duplicate=True),
            Output("journal-selector", "options", allow_duplicate=True),
            Output("selected-journal", "data", allow_duplicate=True),
        ],
        Input("confirm-delete-journal", "submit_n_clicks"),
        [
            State("pending-delete-journal", "data"),
            State("selected-journal", "data"),
        ],
        prevent_initial_call=True,
    )
    def delete_journal(submit, journal_id, selected):
        if not submit or journal_id is None:
            raise PreventUpdate
        if service.delete_journal(journal_id):
            alert = _alert("Journal deleted. Its trades were kept.", "success")
        else:
            alert = _alert("Could not delete journal.")
        journal_list = build_journal_list(service.get_journals(), service.get_journal_stats())
        new_selected = None if selected == journal_id else no_update
        return alert, journal_list, journal_options(), new_selected

    # -- Calendar ---------------------------------------------------------

    @app.callback(
        Output("calendar-month", "data"),
        [
            Input("cal-prev", "n_clicks"),
            Input("cal-next", "n_clicks"),
            Input("cal-today", "n_clicks"),
        ],
        State("calendar-month", "data"),
        prevent_initial_call=True,
    )
    def change_month(prev_clicks, next_clicks, today_clicks, current):
        if not _clicked():
            raise PreventUpdate
        if ctx.triggered_id == "cal-today":
            today = date.today()
            return {"year": today.year, "month": today.month}
        delta = -1 if ctx.triggered_id == "cal-prev" else 1
        year, month = shift_month(current["year"], current["month"], delta)
        return {"year": year, "month": month}

    @app.callback(
        [
            Output("calendar-title", "children"),
            Output("calendar-grid", "children"),
        ],
        Input("calendar-month", "data"),
        State("selected-journal", "data"),
    )
    def render_calendar(current, journal_id):
        year, month = current["year"], current["month"]
        weeks = month_summaries(service.get_trades(journal_id), year, month)
        title = date(year, month, 1).strftime("%B %Y")
        return title, build_calendar_grid(weeks, month, currency_for(journal_id))

    # -- Statistics -------------------------------------------------------

    @app.callback(
        [
            Output("stats-kpis", "children"),
            Output("stats-pnl-period", "figure"),
            Output("stats-strategy", "figure"),
            Output("stats-asset-class", "figure"),
            Output("stats-equity", "figure"),
            Output("stats-indicator-table", "children"),
        ],
        [
            Input("stats-timeframe", "value"),
            Input("stats-grouping", "value"),
        ],
        State("selected-journal", "data"),
    )
    def update_statistics(timeframe, grouping, journal_id):
        currency = currency_for(journal_id)
        trades = filter_by_timeframe(service.get_trades(journal_id), timeframe or "all")
        stats = compute_trade_stats(trades)
        indicators = service.get_indicators_by_trade(t.id for t in trades)
        return (
            build_kpi_panel(build_kpis(stats, currency)),
            build_pnl_period_figure(pnl_by_period(trades, grouping or "month")),
            build_strategy_figure(win_loss_by_strategy(trades)),
            build_asset_class_figure(asset_class_distribution(trades)),
            build_equity_figure(equity_curve(trades)),
            build_indicator_table(indicator_performance(trades, indicators), currency),
        )

    @app.callback(
        Output("report-download", "data"),
        Input("download-report-btn", "n_clicks"),
        [
            State("stats-timeframe", "value"),
            State("selected-journal", "data"),
        ],
        prevent_initial_call=True,
    )
    def download_report(n_clicks, timeframe, journal_id):
        if not n_clicks:
            raise PreventUpdate
        journal = service.get_journal(journal_id) if journal_id else None
        trades = filter_by_timeframe(service.get_trades(journal_id), timeframe or "all")
        return dcc.send_string(generate_report(trades, journal=journal), "trading-report.html")

    # -- Settings ---------------------------------------------------------

    @app.callback(
        Output("settings-alert", "children"),
        Input("save-settings-btn", "n_clicks"),
        [
            State("settings-custom-symbols", "value"),
            State("settings-custom-indicators", "value"),
            State("settings-custom-strategies", "value"),
        ],
        prevent_initial_call=True,
    )
    def save_settings(n_clicks, symbols, indicators, strategies):
        if not n_clicks:
            raise PreventUpdate
        saved = service.update_user_settings({
            "custom_symbols": [s.upper() for s in split_tags(symbols)],
            "custom_indicators": split_tags(indicators),
            "custom_strategies": split_tags(strategies),
        })
        if saved is None:
            return _alert("Could not save settings.")
        return _alert("Settings saved.", "success")
