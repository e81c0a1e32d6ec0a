from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from domain.base_types import ZERO
from domain.capital_gains import CapitalGainsSummary, DisposalEvent, UnrealizedGain
from domain.tax_brackets import effective_tax_rate
from domain.tax_position import TaxPosition

from .formatting import format_currency, format_decimal, format_percentage


@dataclass
class AssetGainSummary:
    asset_id: str
    disposals: int
    quantity: Decimal
    proceeds: Decimal
    cost_base: Decimal
    gross_gain: Decimal
    discount: Decimal
    taxable_gain: Decimal


def summarize_by_asset(events: Iterable[DisposalEvent]) -> list[AssetGainSummary]:
    """Roll disposal events up per asset, sorted by asset id."""
    totals: dict[str, AssetGainSummary] = {}
    for event in events:
        row = totals.get(event.asset_id)
        if row is None:
            row = AssetGainSummary(
                asset_id=event.asset_id,
                disposals=0,
                quantity=ZERO,
                proceeds=ZERO,
                cost_base=ZERO,
                gross_gain=ZERO,
                discount=ZERO,
                taxable_gain=ZERO,
            )
            totals[event.asset_id] = row
        row.disposals += 1
        row.quantity += event.quantity
        row.proceeds += event.proceeds
        row.cost_base += event.cost_base
        row.gross_gain += event.gross_gain
        row.discount += event.discount_amount
        row.taxable_gain += event.taxable_gain

    return [totals[asset_id] for asset_id in sorted(totals)]


def _render_table(headers: list[str], rows: list[list[str]], *, left_columns: int = 1) -> str:
    widths = [max(len(header), max((len(row[idx]) for row in rows), default=0)) for idx, header in enumerate(headers)]

    def line(cells: list[str]) -> str:
        parts = [
            f"{cell:<{width}}" if idx < left_columns else f"{cell:>{width}}"
            for idx, (cell, width) in enumerate(zip(cells, widths))
        ]
        return " ".join(parts)

    header = line(headers)
    return "\n".join([header, "-" * len(header), *(line(row) for row in rows)])


def render_capital_gains(summary: CapitalGainsSummary) -> str:
    lines = ["Capital gains events:"]
    if not summary.events:
        lines.append("  (no disposals)")
    else:
        rows = [
            [
                event.disposal_timestamp.date().isoformat(),
                event.asset_id,
                format_decimal(event.quantity),
                format_currency(event.proceeds),
                format_currency(event.cost_base),
                format_currency(event.gross_gain),
                str(event.holding_period_days),
                "yes" if event.discount_applied else "no",
                format_currency(event.taxable_gain),
            ]
            for event in summary.events
        ]
        headers = ["Date", "Asset", "Quantity", "Proceeds", "Cost base", "Gross gain", "Days", "Discount", "Taxable"]
        lines.append(_render_table(headers, rows, left_columns=2))

    lines.append("")
    lines.append(f"Total gains:          {format_currency(summary.total_gains)}")
    lines.append(f"Total losses:         {format_currency(summary.total_losses)}")
    lines.append(f"Net capital gain:     {format_currency(summary.net_capital_gain)}")
    lines.append(f"Discount applied:     {format_currency(summary.total_discount_applied)}")
    lines.append(f"Taxable capital gain: {format_currency(summary.taxable_capital_gain)}")

    for warning in summary.warnings:
        lines.append(f"WARNING: {warning}")

    return "\n".join(lines)


def render_asset_summary(rows: Iterable[AssetGainSummary]) -> str:
    rows_list = list(rows)
    if not rows_list:
        return "Per-asset totals:\n  (no disposals)"
    table_rows = [
        [
            row.asset_id,
            str(row.disposals),
            format_decimal(row.quantity),
            format_currency(row.proceeds),
            format_currency(row.cost_base),
            format_currency(row.gross_gain),
            format_currency(row.discount),
            format_currency(row.taxable_gain),
        ]
        for row in rows_list
    ]
    headers = ["Asset", "Events", "Quantity", "Proceeds", "Cost base", "Gross gain", "Discount", "Taxable"]
    return "Per-asset totals:\n" + _render_table(headers, table_rows)


def render_unrealized_gains(gains: Iterable[UnrealizedGain]) -> str:
    rows = [
        [
            gain.asset_id,
            format_decimal(gain.quantity),
            format_currency(gain.cost_base),
            format_currency(gain.market_value),
            format_currency(gain.unrealized_gain, show_sign=True),
        ]
        for gain in gains
    ]
    if not rows:
        return "Open inventory:\n  (empty)"
    headers = ["Asset", "Quantity", "Cost base", "Value", "Unrealized"]
    return "Open inventory:\n" + _render_table(headers, rows)


def render_tax_position(position: TaxPosition) -> str:
    rate = effective_tax_rate(position.tax_payable, position.taxable_income)
    return "\n".join(
        [
            "Tax position:",
            f"  Total income:       {format_currency(position.total_income)}",
            f"  Total deductions:   {format_currency(position.total_deductions)} ({position.deduction_count} items)",
            f"  Taxable income:     {format_currency(position.taxable_income)}",
            f"  Tax payable:        {format_currency(position.tax_payable)}",
            f"  Effective tax rate: {format_percentage(rate)}",
        ]
    )
