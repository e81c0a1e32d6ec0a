from __future__ import annotations

from decimal import Decimal

import pytest

from domain.capital_gains import CapitalGainsEngine, CapitalGainsSummary, compute_unrealized_gains
from domain.tax_position import TaxPosition
from tests.constants import BTC, ETH
from tests.helpers.records import buy, sell, ts
from utils.formatting import format_currency, format_decimal, format_percentage
from utils.reports import (
    render_asset_summary,
    render_capital_gains,
    render_tax_position,
    render_unrealized_gains,
    summarize_by_asset,
)


@pytest.mark.parametrize(
    ("value", "show_sign", "expected"),
    [
        (Decimal("1234.5"), False, "$1,234.50"),
        (Decimal("-1234.5"), False, "-$1,234.50"),
        (Decimal("0.005"), False, "$0.01"),
        (Decimal("1500"), True, "+$1,500.00"),
        (Decimal("0"), False, "$0.00"),
    ],
)
def test_format_currency(value: Decimal, show_sign: bool, expected: str) -> None:
    assert format_currency(value, show_sign=show_sign) == expected


def test_format_decimal_and_percentage() -> None:
    assert format_decimal(Decimal("1.500")) == "1.5"
    assert format_decimal(Decimal("1E+3")) == "1000"
    assert format_percentage(Decimal("22.788")) == "22.79%"


def test_summarize_by_asset(capital_gains_engine: CapitalGainsEngine) -> None:
    summary = capital_gains_engine.process(
        [
            buy(ETH, "2", "2000", ts(2024, 1, 1)),
            buy(BTC, "1", "1000", ts(2024, 1, 1)),
            sell(ETH, "1", "1500", ts(2024, 2, 1)),
            sell(ETH, "1", "500", ts(2024, 3, 1)),
            sell(BTC, "1", "3000", ts(2024, 4, 1)),
        ]
    )

    rows = summarize_by_asset(summary.events)

    assert [row.asset_id for row in rows] == [BTC, ETH]
    btc, eth = rows
    assert btc.disposals == 1
    assert btc.gross_gain == Decimal("2000")
    assert eth.disposals == 2
    assert eth.quantity == Decimal("2")
    assert eth.proceeds == Decimal("2000")
    assert eth.gross_gain == Decimal("0")


def test_render_capital_gains(capital_gains_engine: CapitalGainsEngine) -> None:
    summary = capital_gains_engine.process(
        [
            buy(BTC, "1", "1000", ts(2023, 1, 1)),
            sell(BTC, "1", "3000", ts(2024, 2, 1)),
            sell(BTC, "0.5", "2000", ts(2024, 3, 1)),
        ]
    )

    text = render_capital_gains(summary)

    assert text.startswith("Capital gains events:")
    assert "2024-02-01" in text
    assert "Taxable capital gain: $3,000.00" in text
    assert "Discount applied:     $1,000.00" in text
    assert "WARNING: Could not match 0.5 units of asset=BTC" in text


def test_render_empty_reports() -> None:
    assert "(no disposals)" in render_capital_gains(CapitalGainsSummary())
    assert "(no disposals)" in render_asset_summary([])
    assert "(empty)" in render_unrealized_gains([])


def test_render_unrealized_gains(capital_gains_engine: CapitalGainsEngine) -> None:
    summary = capital_gains_engine.process([buy(BTC, "0.5", "10000", ts(2024, 1, 1))])

    text = render_unrealized_gains(compute_unrealized_gains(summary.open_lots, {BTC: Decimal("30000")}))

    assert text.startswith("Open inventory:")
    assert "+$5,000.00" in text


def test_render_tax_position() -> None:
    position = TaxPosition(
        taxable_income=Decimal("100000"),
        tax_payable=Decimal("20788"),
        total_deductions=Decimal("3000"),
        deduction_count=3,
        total_income=Decimal("103000"),
    )

    text = render_tax_position(position)

    assert "Taxable income:     $100,000.00" in text
    assert "Tax payable:        $20,788.00" in text
    assert "(3 items)" in text
    assert "Effective tax rate: 20.79%" in text
