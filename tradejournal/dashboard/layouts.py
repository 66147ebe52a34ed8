"""
layouts.py — Page layouts for the trading journal dashboard.

Builds the Dash layout with:
- Navbar with page links and the journal selector
- Dashboard page (KPI cards, win-rate ring, recent trades)
- Trades list with date-range filter and delete confirmation
- Trade form (entry/exit rows, fee breakdown, indicators, live summary)
- Trade detail with screenshots
- Journals, calendar, statistics and settings pages

Page builders take already-fetched data and return components; the
routing callback in callbacks.py does the fetching.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from dash import html, dcc
import dash_bootstrap_components as dbc

from tradejournal.forms import EntryPoint, ExitPoint, TradeForm
from tradejournal.models import Direction, FeeType, Journal, Trade, TradeStatus, UserSettings
from tradejournal.stats import GROUPINGS, TIMEFRAMES

NAV_LINKS = [
    ("Dashboard", "/"),
    ("Trades", "/trades"),
    ("Journals", "/journals"),
    ("Calendar", "/calendar"),
    ("Statistics", "/statistics"),
    ("Settings", "/settings"),
]

FEE_FIELDS = [
    ("entry_commission", "Entry commission"),
    ("exit_commission", "Exit commission"),
    ("swap_fees", "Swap fees"),
    ("exchange_fees", "Exchange fees"),
    ("other_fees", "Other fees"),
]

TIMEFRAME_LABELS = {
    "week": "Last 7 days",
    "month": "Last month",
    "quarter": "Last 3 months",
    "year": "Last 12 months",
    "all": "All time",
}


def _num(value) -> Optional[float]:
    return float(value) if value is not None else None


def _iso(day: Optional[date]) -> Optional[str]:
    return day.isoformat() if day else None


def build_kpi_card(title: str, value: str, value_id: Optional[str] = None) -> dbc.Card:
    """Build a single KPI card."""
    value_props = {"id": value_id} if value_id else {}
    return dbc.Card(
        dbc.CardBody([
            html.H6(title, className="card-title text-muted mb-1",
                    style={"fontSize": "0.8rem"}),
            html.H4(value, className="card-text mb-0",
                    style={"fontWeight": "bold"}, **value_props),
        ]),
        className="shadow-sm",
        style={"minWidth": "140px"},
    )


def build_kpi_panel(kpis: list[tuple[str, str]]) -> dbc.Row:
    """Row of KPI cards from (title, formatted value) pairs."""
    return dbc.Row(
        [dbc.Col(build_kpi_card(title, value), width="auto") for title, value in kpis],
        className="g-2 mb-3 flex-nowrap overflow-auto",
    )


def _card(header, body, className: str = "shadow-sm mb-3") -> dbc.Card:
    return dbc.Card([dbc.CardHeader(header), dbc.CardBody(body)], className=className)


# ---------------------------------------------------------------------------
# Shell
# ---------------------------------------------------------------------------

def build_navbar() -> dbc.Navbar:
    return dbc.Navbar(
        dbc.Container([
            dbc.NavbarBrand(
                "Trading Journal",
                href="/",
                className="fw-bold",
                style={"fontSize": "1.3rem"},
            ),
            dbc.Nav(
                [dbc.NavLink(label, href=href, active="exact") for label, href in NAV_LINKS],
                className="me-auto",
                navbar=True,
            ),
            html.Div(
                dcc.Dropdown(
                    id="journal-selector",
                    options=[],
                    placeholder="All journals",
                    clearable=True,
                    style={"minWidth": "220px", "color": "#212529"},
                ),
            ),
        ], fluid=True),
        color="dark",
        dark=True,
        className="mb-3",
    )


def build_layout(user_id: Optional[str] = None) -> html.Div:
    """Build the app shell; pages render into page-content."""
    return html.Div([
        dcc.Location(id="url", refresh=False),
        dcc.Store(id="selected-journal", storage_type="session"),
        dcc.Store(id="current-user", data=user_id),
        build_navbar(),
        dbc.Container(
            dcc.Loading(html.Div(id="page-content"), type="circle"),
            fluid=True,
        ),
    ])


def build_not_found_page(pathname: str) -> html.Div:
    return html.Div([
        html.H3("Page not found"),
        html.P(f"No page at {pathname}", className="text-muted"),
        dcc.Link("Back to dashboard", href="/"),
    ])


def build_no_user_page() -> html.Div:
    return dbc.Alert(
        "No user configured. Set TRADEJOURNAL_USER_ID and restart.",
        color="warning",
    )


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def build_dashboard_page(
    kpis: list[tuple[str, str]],
    win_rate_figure,
    recent_trades,
) -> html.Div:
    return html.Div([
        html.H3("Dashboard", className="mb-3"),
        build_kpi_panel(kpis),
        dbc.Row([
            dbc.Col(_card("Win Rate", dcc.Graph(
                id="win-rate-ring",
                figure=win_rate_figure,
                config={"displayModeBar": False},
                style={"height": "300px"},
            )), md=4),
            dbc.Col(_card(
                [html.Span("Recent Trades"),
                 dcc.Link("View all", href="/trades", className="float-end")],
                html.Div(recent_trades, id="recent-trades"),
            ), md=8),
        ]),
    ])


# ---------------------------------------------------------------------------
# Trades list
# ---------------------------------------------------------------------------

def build_trades_page(table) -> html.Div:
    return html.Div([
        dbc.Row([
            dbc.Col(html.H3("Trades"), md=6),
            dbc.Col([
                dbc.Button("New Trade", href="/trades/new", color="primary",
                           className="float-end ms-2"),
                dbc.Button("Export CSV", id="export-trades-btn", color="secondary",
                           className="float-end"),
                dcc.Download(id="trades-download"),
            ], md=6),
        ], className="mb-3"),
        dbc.Row([
            dbc.Col([
                html.Label("Entry date range", className="fw-bold mb-1 d-block"),
                dcc.DatePickerRange(
                    id="trades-date-range",
                    clearable=True,
                    display_format="YYYY-MM-DD",
                ),
            ], md=6),
        ], className="mb-3"),
        html.Div(id="trades-alert"),
        html.Div(table, id="trades-table"),
        dcc.Store(id="pending-delete-trade"),
        dcc.ConfirmDialog(
            id="confirm-delete-trade",
            message="Delete this trade? This cannot be undone.",
        ),
    ])


# ---------------------------------------------------------------------------
# Trade form
# ---------------------------------------------------------------------------

def build_entry_row(index, point: EntryPoint) -> dbc.Row:
    """One entry point row; ids are pattern-matching {type, index}."""
    return dbc.Row([
        dbc.Col(dcc.DatePickerSingle(
            id={"type": "entry-date", "index": index},
            date=_iso(point.date),
            display_format="YYYY-MM-DD",
            placeholder="Date",
        ), md=3),
        dbc.Col(dbc.Input(
            id={"type": "entry-time", "index": index},
            type="time", value=point.time,
        ), md=2),
        dbc.Col(dbc.Input(
            id={"type": "entry-price", "index": index},
            type="number", min=0, step="any", placeholder="Price",
            value=_num(point.price),
        ), md=2),
        dbc.Col(dbc.Input(
            id={"type": "entry-quantity", "index": index},
            type="number", min=0, step="any", placeholder="Quantity",
            value=_num(point.quantity),
        ), md=2),
        dbc.Col(dbc.Input(
            id={"type": "entry-notes", "index": index},
            type="text", placeholder="Notes", value=point.notes,
        ), md=3),
    ], className="g-2 mb-2")


def build_exit_row(index, point: ExitPoint) -> dbc.Row:
    return dbc.Row([
        dbc.Col(dcc.DatePickerSingle(
            id={"type": "exit-date", "index": index},
            date=_iso(point.date),
            display_format="YYYY-MM-DD",
            placeholder="Date",
        ), md=2),
        dbc.Col(dbc.Input(
            id={"type": "exit-time", "index": index},
            type="time", value=point.time,
        ), md=2),
        dbc.Col(dbc.Input(
            id={"type": "exit-price", "index": index},
            type="number", min=0, step="any", placeholder="Price",
            value=_num(point.price),
        ), md=2),
        dbc.Col(dbc.Input(
            id={"type": "exit-quantity", "index": index},
            type="number", min=0, step="any", placeholder="Quantity",
            value=_num(point.quantity),
        ), md=2),
        dbc.Col(dbc.Input(
            id={"type": "exit-notes", "index": index},
            type="text", placeholder="Notes", value=point.notes,
        ), md=2),
        dbc.Col([
            dbc.Checkbox(
                id={"type": "exit-stop-loss", "index": index},
                label="Stop loss", value=point.is_stop_loss,
            ),
            dbc.Checkbox(
                id={"type": "exit-take-profit", "index": index},
                label="Take profit", value=point.is_take_profit,
            ),
        ], md=2),
    ], className="g-2 mb-2")


def build_trade_form_page(
    form: TradeForm,
    journals: list[Journal],
    settings: Optional[UserSettings],
    trade_id: Optional[int] = None,
) -> html.Div:
    """New / edit trade form."""
    strategies = settings.all_strategies if settings else []
    if form.strategy and form.strategy not in strategies:
        strategies = strategies + [form.strategy]
    indicators = settings.all_indicators if settings else []
    symbols = settings.all_symbols if settings else []

    details = form.fee_details
    title = "Edit Trade" if trade_id else "New Trade"

    return html.Div([
        html.H3(title, className="mb-3"),
        dcc.Store(id="trade-form-id", data=trade_id),
        html.Div(id="trade-form-alert"),

        _card("Trade", [
            dbc.Row([
                dbc.Col([
                    dbc.Label("Symbol"),
                    dbc.Input(id="trade-symbol", type="text", value=form.symbol,
                              list="symbol-options", placeholder="e.g. AAPL"),
                    html.Datalist(id="symbol-options",
                                  children=[html.Option(value=s) for s in symbols]),
                ], md=3),
                dbc.Col([
                    dbc.Label("Direction"),
                    dbc.RadioItems(
                        id="trade-direction",
                        options=[{"label": d.value.title(), "value": d.value} for d in Direction],
                        value=form.direction,
                        inline=True,
                    ),
                ], md=3),
                dbc.Col([
                    dbc.Label("Status"),
                    dbc.Select(
                        id="trade-status",
                        options=[{"label": s.value.title(), "value": s.value} for s in TradeStatus],
                        value=form.status,
                    ),
                ], md=3),
                dbc.Col([
                    dbc.Label("Journal"),
                    dcc.Dropdown(
                        id="trade-journal-id",
                        options=[{"label": j.name, "value": j.id} for j in journals],
                        value=form.journal_id,
                        placeholder="No journal",
                        style={"color": "#212529"},
                    ),
                ], md=3),
            ], className="mb-3"),
            dbc.Row([
                dbc.Col([
                    dbc.Label("Strategy"),
                    dcc.Dropdown(
                        id="trade-strategy",
                        options=[{"label": s.title(), "value": s} for s in strategies],
                        value=form.strategy,
                        style={"color": "#212529"},
                    ),
                ], md=3),
                dbc.Col([
                    dbc.Label("Tags"),
                    dbc.Input(id="trade-tags", type="text", value=form.tags,
                              placeholder="comma, separated"),
                ], md=9),
            ], className="mb-3"),
            dbc.Label("Notes"),
            dbc.Textarea(id="trade-notes", value=form.notes, rows=3),
        ]),

        _card(
            [html.Span("Entry Points"),
             dbc.Button("Add entry", id="add-entry-btn", size="sm",
                        color="secondary", className="float-end")],
            html.Div(
                [build_entry_row(i, p) for i, p in enumerate(form.entries)],
                id="entry-rows",
            ),
        ),

        _card(
            [html.Span("Exit Points"),
             dbc.Button("Add exit", id="add-exit-btn", size="sm",
                        color="secondary", className="float-end")],
            html.Div(
                [build_exit_row(i, p) for i, p in enumerate(form.exits)],
                id="exit-rows",
            ),
        ),

        _card("Fees", [
            dbc.Row([
                dbc.Col([
                    dbc.Label("Total fees"),
                    dbc.Input(id="trade-fees", type="number", min=0, step="any",
                              value=_num(form.fees)),
                ], md=3),
                dbc.Col([
                    dbc.Label("Fee type"),
                    dbc.Select(
                        id="trade-fee-type",
                        options=[{"label": f.value.title(), "value": f.value} for f in FeeType],
                        value=form.fee_type,
                    ),
                ], md=3),
            ], className="mb-2"),
            html.Small("Breakdown (overrides the total when set)",
                       className="text-muted d-block mb-1"),
            dbc.Row([
                dbc.Col([
                    dbc.Label(label, size="sm"),
                    dbc.Input(
                        id=f"fee-{name.replace('_', '-')}",
                        type="number", min=0, step="any", size="sm",
                        value=_num(getattr(details, name)),
                    ),
                ])
                for name, label in FEE_FIELDS
            ]),
        ]),

        _card("Indicators", dbc.Checklist(
            id="trade-indicators",
            options=[{"label": name, "value": name} for name in indicators],
            value=form.indicators,
            inline=True,
        )),

        _card("Summary", html.Div(id="trade-calc-summary")),

        dbc.Button("Save Trade", id="save-trade-btn", color="primary", className="me-2"),
        dbc.Button("Cancel", href=f"/trades/{trade_id}" if trade_id else "/trades",
                   color="secondary"),
    ])


# ---------------------------------------------------------------------------
# Trade detail
# ---------------------------------------------------------------------------

def build_trade_detail_page(
    trade: Trade,
    summary,
    entries_table,
    exits_table,
    indicators: list[str],
    gallery,
) -> html.Div:
    return html.Div([
        dcc.Store(id="detail-trade-id", data=trade.id),
        dbc.Row([
            dbc.Col(html.H3(
                f"{trade.symbol} {trade.direction.upper()} ({trade.status})",
            ), md=8),
            dbc.Col(
                dbc.Button("Edit", href=f"/trades/{trade.id}/edit",
                           color="primary", className="float-end"),
                md=4,
            ),
        ], className="mb-3"),
        _card("Summary", summary),
        dbc.Row([
            dbc.Col(_card("Entries", entries_table), md=6),
            dbc.Col(_card("Exits", exits_table), md=6),
        ]),
        _card("Indicators", html.Div(
            [dbc.Badge(name, color="info", className="me-1") for name in indicators]
            or html.Span("None", className="text-muted"),
        )),
        _card("Notes", html.P(trade.notes or "No notes", className="mb-0")),
        _card("Screenshots", [
            html.Div(id="screenshot-alert"),
            dcc.Upload(
                id="screenshot-upload",
                children=html.Div(["Drag and drop or ", html.A("select an image")]),
                accept="image/*",
                multiple=False,
                style={
                    "borderWidth": "1px", "borderStyle": "dashed",
                    "borderRadius": "5px", "textAlign": "center",
                    "padding": "20px", "marginBottom": "10px",
                },
            ),
            html.Div(gallery, id="screenshot-gallery"),
        ]),
    ])


# ---------------------------------------------------------------------------
# Journals
# ---------------------------------------------------------------------------

def build_journals_page(journal_list) -> html.Div:
    return html.Div([
        html.H3("Journals", className="mb-3"),
        html.Div(id="journal-alert"),
        dbc.Row([
            dbc.Col(_card(html.Span("New Journal", id="journal-form-title"), [
                dcc.Store(id="editing-journal-id"),
                dbc.Label("Name"),
                dbc.Input(id="journal-name", type="text", className="mb-2"),
                dbc.Label("Description"),
                dbc.Textarea(id="journal-description", rows=2, className="mb-2"),
                dbc.Label("Base currency"),
                dbc.Input(id="journal-currency", type="text", value="USD",
                          className="mb-2"),
                dbc.Label("Tags"),
                dbc.Input(id="journal-tags", type="text",
                          placeholder="comma, separated", className="mb-2"),
                dbc.Switch(id="journal-active", label="Active", value=True,
                           className="mb-3"),
                dbc.Button("Save Journal", id="save-journal-btn", color="primary",
                           className="me-2"),
                dbc.Button("Clear", id="clear-journal-btn", color="secondary"),
            ]), md=4),
            dbc.Col(html.Div(journal_list, id="journal-list"), md=8),
        ]),
        dcc.Store(id="pending-delete-journal"),
        dcc.ConfirmDialog(
            id="confirm-delete-journal",
            message=(
                "Delete this journal? Its trades are kept and will no longer "
                "belong to any journal."
            ),
        ),
    ])


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------

def build_calendar_page(year: int, month: int) -> html.Div:
    return html.Div([
        dcc.Store(id="calendar-month", data={"year": year, "month": month}),
        dbc.Row([
            dbc.Col(html.H3(id="calendar-title"), md=6),
            dbc.Col(dbc.ButtonGroup([
                dbc.Button("‹ Prev", id="cal-prev", color="secondary"),
                dbc.Button("Today", id="cal-today", color="secondary"),
                dbc.Button("Next ›", id="cal-next", color="secondary"),
            ], className="float-end"), md=6),
        ], className="mb-3"),
        html.Div(id="calendar-grid"),
    ])


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

def _graph(graph_id: str, height: str = "350px") -> dcc.Graph:
    return dcc.Graph(id=graph_id, config={"displayModeBar": False},
                     style={"height": height})


def build_statistics_page() -> html.Div:
    return html.Div([
        dbc.Row([
            dbc.Col(html.H3("Statistics"), md=4),
            dbc.Col(dcc.Dropdown(
                id="stats-timeframe",
                options=[{"label": TIMEFRAME_LABELS[t], "value": t} for t in TIMEFRAMES],
                value="all",
                clearable=False,
                style={"color": "#212529"},
            ), md=3),
            dbc.Col(dcc.Dropdown(
                id="stats-grouping",
                options=[{"label": f"By {g}", "value": g} for g in GROUPINGS],
                value="month",
                clearable=False,
                style={"color": "#212529"},
            ), md=3),
            dbc.Col([
                dbc.Button("Download report", id="download-report-btn",
                           color="secondary", className="float-end"),
                dcc.Download(id="report-download"),
            ], md=2),
        ], className="mb-3"),
        html.Div(id="stats-kpis"),
        dbc.Row([
            dbc.Col(_card("P/L by Period", _graph("stats-pnl-period")), md=6),
            dbc.Col(_card("Win / Loss by Strategy", _graph("stats-strategy")), md=6),
        ]),
        dbc.Row([
            dbc.Col(_card("Asset Classes", _graph("stats-asset-class")), md=6),
            dbc.Col(_card("Equity Curve", _graph("stats-equity")), md=6),
        ]),
        _card("Indicator Performance", html.Div(id="stats-indicator-table")),
    ])


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def build_settings_page(settings: UserSettings) -> html.Div:
    def field(label: str, field_id: str, values: list[str], defaults: list[str]):
        return html.Div([
            dbc.Label(label),
            dbc.Textarea(id=field_id, value=", ".join(values), rows=2),
            html.Small(f"Defaults: {', '.join(defaults)}", className="text-muted"),
        ], className="mb-3")

    default_symbols: list[str] = []
    for symbols in settings.default_asset_classes.values():
        default_symbols.extend(symbols)

    return html.Div([
        html.H3("Settings", className="mb-3"),
        html.Div(id="settings-alert"),
        _card("Custom lists", [
            field("Custom symbols", "settings-custom-symbols",
                  settings.custom_symbols, default_symbols),
            field("Custom indicators", "settings-custom-indicators",
                  settings.custom_indicators, settings.default_indicators),
            field("Custom strategies", "settings-custom-strategies",
                  settings.custom_strategies, settings.default_strategies),
            dbc.Button("Save Settings", id="save-settings-btn", color="primary"),
        ]),
    ])
