"""
report.py — HTML statistics report for a journal or the whole account.

Renders templates/report.html with Jinja2:
- KPI block from TradeStats
- Equity curve and monthly P/L charts (interactive Plotly, via CDN)
- Trade table

Currency amounts are formatted in the journal's base currency.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Optional

import jinja2
import plotly.graph_objects as go

from tradejournal.models import Journal, Trade
from tradejournal.stats import (
    TradeStats,
    average_trade_duration,
    compute_trade_stats,
    equity_curve,
    pnl_by_period,
)


# Default template directory
_TEMPLATE_DIR = Path(__file__).parent.parent / "templates"

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥", "CHF": "CHF "}


def format_currency(amount: Optional[Decimal], currency: str = "USD") -> str:
    """Format an amount like '-$1,234.56'. None renders as '-'."""
    if amount is None:
        return "-"
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_percent(value: Optional[Decimal]) -> str:
    if value is None:
        return "-"
    return f"{value:.2f}%"


def _build_equity_figure(trades: list[Trade]) -> go.Figure:
    """Cumulative P/L line."""
    points = equity_curve(trades)
    if not points:
        return go.Figure()

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=[p["label"] for p in points],
        y=[float(p["equity"]) for p in points],
        mode="lines+markers", name="Equity",
        line=dict(color="#0f3460", width=2),
        fill="tozeroy", fillcolor="rgba(15,52,96,0.1)",
    ))
    fig.update_layout(
        title="Equity Curve",
        xaxis_title="Exit date", yaxis_title="Cumulative P/L",
        template="plotly_white",
        height=400,
        margin=dict(l=60, r=30, t=50, b=40),
    )
    return fig


def _build_monthly_figure(trades: list[Trade]) -> go.Figure:
    """Profit and loss bars per month."""
    rows = pnl_by_period(trades, "month")
    if not rows:
        return go.Figure()

    labels = [r["label"] for r in rows]
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=labels, y=[float(r["profit"]) for r in rows],
        name="Profit", marker_color="#28a745",
    ))
    fig.add_trace(go.Bar(
        x=labels, y=[-float(r["loss"]) for r in rows],
        name="Loss", marker_color="#dc3545",
    ))
    fig.update_layout(
        title="Monthly P/L",
        barmode="relative",
        template="plotly_white",
        height=300,
        margin=dict(l=60, r=30, t=50, b=40),
    )
    return fig


def _fig_to_html(fig: go.Figure) -> str:
    """Convert Plotly figure to inline HTML div."""
    return fig.to_html(full_html=False, include_plotlyjs=False)


def _trade_rows(trades: Iterable[Trade], currency: str) -> list[dict]:
    rows = []
    for t in sorted(trades, key=lambda t: t.entry_date):
        rows.append({
            "entry_date": t.entry_date.strftime("%Y-%m-%d %H:%M"),
            "symbol": t.symbol,
            "direction": t.direction.upper(),
            "status": t.status,
            "quantity": f"{t.quantity:,}",
            "entry_price": f"{t.entry_price:,.2f}",
            "exit_price": f"{t.exit_price:,.2f}" if t.exit_price is not None else "-",
            "fees": format_currency(t.fees, currency),
            "pnl": format_currency(t.profit_loss, currency),
            "pnl_value": float(t.profit_loss) if t.profit_loss is not None else 0.0,
            "pnl_percent": format_percent(t.profit_loss_percent),
        })
    return rows


def generate_report(
    trades: Iterable[Trade],
    stats: Optional[TradeStats] = None,
    journal: Optional[Journal] = None,
    template_path: Optional[str] = None,
    title: Optional[str] = None,
    show_sections: Optional[dict[str, bool]] = None,
    output_path: Optional[str] = None,
) -> str:
    """Render the statistics report.

    Parameters
    ----------
    trades : Iterable[Trade]
        Trades to report on (already filtered by the caller).
    stats : Optional[TradeStats]
        Precomputed stats. Default: computed from trades.
    journal : Optional[Journal]
        Journal the trades belong to; sets title and currency.
    template_path : Optional[str]
        Path to custom Jinja2 template. Default: built-in template.
    title : Optional[str]
        Report title.
    show_sections : Optional[dict[str, bool]]
        Control which sections to show: kpis, equity, monthly, trades.
    output_path : Optional[str]
        If provided, write the report to this file path.

    Returns
    -------
    str
        The rendered HTML.
    """
    trades = list(trades)
    if stats is None:
        stats = compute_trade_stats(trades)

    if template_path:
        template_dir = str(Path(template_path).parent)
        template_name = Path(template_path).name
    else:
        template_dir = str(_TEMPLATE_DIR)
        template_name = "report.html"
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(template_dir),
        autoescape=True,
    )
    template = env.get_template(template_name)

    sections = {
        "show_kpis": True,
        "show_equity": True,
        "show_monthly": True,
        "show_trades": True,
    }
    if show_sections:
        sections.update({f"show_{k}": v for k, v in show_sections.items()})

    currency = journal.base_currency if journal else "USD"
    journal_name = journal.name if journal else "All journals"

    date_range = ""
    if trades:
        start = min(t.entry_date for t in trades)
        end = max(t.entry_date for t in trades)
        date_range = f"{start.strftime('%Y-%m-%d')} to {end.strftime('%Y-%m-%d')}"

    context = {
        "title": title or f"Trading Report — {journal_name}",
        "journal_name": journal_name,
        "currency": currency,
        "date_range": date_range,
        "generated_at": datetime.now().strftime("%Y-%m-%d %H:%M"),

        # KPIs
        "total_trades": stats.total_trades,
        "open_trades": stats.open_trades,
        "winning_trades": stats.winning_trades,
        "losing_trades": stats.losing_trades,
        "win_rate": format_percent(stats.win_rate),
        "total_pnl": format_currency(stats.total_profit_loss, currency),
        "total_pnl_value": float(stats.total_profit_loss),
        "average_pnl": format_currency(stats.average_profit_loss, currency),
        "largest_win": format_currency(stats.largest_win, currency),
        "largest_loss": format_currency(stats.largest_loss, currency),
        "average_duration": average_trade_duration(trades),

        # Charts
        "equity_chart_html": _fig_to_html(_build_equity_figure(trades)),
        "monthly_chart_html": _fig_to_html(_build_monthly_figure(trades)),

        # Trades
        "trades": _trade_rows(trades, currency),

        **sections,
    }

    html_content = template.render(**context)

    if output_path:
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_text(html_content, encoding="utf-8")

    return html_content
