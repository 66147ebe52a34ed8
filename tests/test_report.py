"""
test_report.py — Tests for the HTML statistics report.

Covers:
- Currency and percent formatting
- Figure construction (equity, monthly)
- generate_report content, sections, custom templates, file output
- Empty trade list renders without exception

Run: pytest tests/test_report.py -v
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

from tradejournal.models import Journal, Trade
from tradejournal.report import (
    _build_equity_figure,
    _build_monthly_figure,
    _fig_to_html,
    format_currency,
    format_percent,
    generate_report,
)

D = Decimal


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _trade(pnl: str, exit_: datetime, symbol: str = "AAPL") -> Trade:
    return Trade(
        symbol=symbol,
        direction="long",
        status="closed",
        entry_date=exit_.replace(hour=9),
        entry_price=D("100"),
        quantity=D("10"),
        exit_date=exit_,
        exit_price=D("100") + D(pnl) / D("10"),
        profit_loss=D(pnl),
        profit_loss_percent=D(pnl) / D("10"),
        fees=D("1.5"),
    )


@pytest.fixture
def trades() -> list[Trade]:
    return [
        _trade("250", datetime(2024, 1, 10, 15)),
        _trade("-80", datetime(2024, 1, 22, 15), symbol="MSFT"),
        _trade("40", datetime(2024, 2, 5, 15), symbol="TSLA"),
    ]


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

class TestFormatting:

    @pytest.mark.parametrize("amount,currency,expected", [
        (D("1234.5"), "USD", "$1,234.50"),
        (D("-1234.567"), "USD", "-$1,234.57"),
        (D("0"), "eur", "€0.00"),
        (D("12"), "GBP", "£12.00"),
        (D("3"), "AUD", "AUD 3.00"),
    ])
    def test_format_currency(self, amount: Decimal, currency: str, expected: str) -> None:
        assert format_currency(amount, currency) == expected

    def test_format_currency_none(self) -> None:
        assert format_currency(None) == "-"

    def test_format_percent(self) -> None:
        assert format_percent(D("66.6666")) == "66.67%"
        assert format_percent(None) == "-"


# ---------------------------------------------------------------------------
# Figures
# ---------------------------------------------------------------------------

class TestFigures:

    def test_equity_figure(self, trades: list[Trade]) -> None:
        fig = _build_equity_figure(trades)
        assert fig.data[0].name == "Equity"
        assert list(fig.data[0].y) == [0.0, 250.0, 170.0, 210.0]

    def test_monthly_figure(self, trades: list[Trade]) -> None:
        fig = _build_monthly_figure(trades)
        assert [t.name for t in fig.data] == ["Profit", "Loss"]
        assert list(fig.data[0].x) == ["Jan 2024", "Feb 2024"]

    def test_empty_figures(self) -> None:
        assert len(_build_equity_figure([]).data) == 0
        assert len(_build_monthly_figure([]).data) == 0

    def test_fig_to_html_is_fragment(self, trades: list[Trade]) -> None:
        html = _fig_to_html(_build_equity_figure(trades))
        assert "<html" not in html
        assert "<div" in html


# ---------------------------------------------------------------------------
# generate_report
# ---------------------------------------------------------------------------

class TestGenerateReport:

    def test_default_report(self, trades: list[Trade]) -> None:
        html = generate_report(trades)
        assert "All journals" in html
        assert "$210.00" in html
        assert "2024-01-10 to 2024-02-05" in html
        assert "MSFT" in html
        assert "-$80.00" in html
        assert "66.67%" in html

    def test_journal_sets_title_and_currency(self, trades: list[Trade]) -> None:
        html = generate_report(trades, journal=Journal(name="Swing Book", base_currency="EUR"))
        assert "Swing Book" in html
        assert "€210.00" in html

    def test_custom_title(self, trades: list[Trade]) -> None:
        html = generate_report(trades, title="Q1 Review")
        assert "<title>Q1 Review</title>" in html

    def test_title_is_escaped(self, trades: list[Trade]) -> None:
        html = generate_report(trades, title="<script>x</script>")
        assert "<script>x</script>" not in html

    def test_hide_sections(self, trades: list[Trade]) -> None:
        html = generate_report(trades, show_sections={"trades": False, "equity": False})
        assert 'id="trades"' not in html
        assert 'id="equity"' not in html
        assert 'id="monthly"' in html

    def test_empty_trades(self) -> None:
        html = generate_report([])
        assert "No trades recorded." in html
        assert "$0.00" in html

    def test_output_path(self, trades: list[Trade], tmp_path: Path) -> None:
        out = tmp_path / "reports" / "report.html"
        html = generate_report(trades, output_path=str(out))
        assert out.read_text(encoding="utf-8") == html

    def test_custom_template(self, trades: list[Trade], tmp_path: Path) -> None:
        tpl = tmp_path / "mini.html"
        tpl.write_text("{{ journal_name }}|{{ total_trades }}|{{ total_pnl }}", encoding="utf-8")
        html = generate_report(trades, template_path=str(tpl))
        assert html == "All journals|3|$210.00"
