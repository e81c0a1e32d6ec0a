from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import Sequence

from pydantic import BaseModel, model_validator

from .base_types import ZERO
from .errors import NoMatchingBracketError

HUNDRED = Decimal(100)


class TaxBracket(BaseModel):
    """One marginal-rate band.

    ``min_income`` is the first dollar of the band and ``base_tax`` is the tax
    already payable below it. ``max_income`` of None marks the top band.
    """

    min_income: Decimal
    max_income: Decimal | None = None
    rate: Decimal
    base_tax: Decimal = ZERO

    @model_validator(mode="after")
    def _validate_fields(self) -> TaxBracket:
        if self.min_income < 0:
            raise ValueError("min_income must be >= 0")
        if self.max_income is not None and self.max_income < self.min_income:
            raise ValueError("max_income must be >= min_income")
        if not ZERO <= self.rate <= HUNDRED:
            raise ValueError("rate must be a percentage between 0 and 100")
        if self.base_tax < 0:
            raise ValueError("base_tax must be >= 0")
        return self

    def contains(self, income: Decimal) -> bool:
        return income >= self.min_income and (self.max_income is None or income <= self.max_income)


RESIDENT_BRACKETS_2024_25: tuple[TaxBracket, ...] = (
    TaxBracket(min_income=Decimal(0), max_income=Decimal(18200), rate=Decimal(0), base_tax=Decimal(0)),
    TaxBracket(min_income=Decimal(18201), max_income=Decimal(45000), rate=Decimal(16), base_tax=Decimal(0)),
    TaxBracket(min_income=Decimal(45001), max_income=Decimal(135000), rate=Decimal(30), base_tax=Decimal(4288)),
    TaxBracket(min_income=Decimal(135001), max_income=Decimal(190000), rate=Decimal(37), base_tax=Decimal(31288)),
    TaxBracket(min_income=Decimal(190001), max_income=None, rate=Decimal(45), base_tax=Decimal(51638)),
)


def find_bracket(taxable_income: Decimal, brackets: Sequence[TaxBracket]) -> TaxBracket:
    # Bands are keyed on whole dollars; cents must not fall between max and the next min.
    whole_dollars = taxable_income.to_integral_value(rounding=ROUND_FLOOR)
    for bracket in sorted(brackets, key=lambda b: b.min_income):
        if bracket.contains(whole_dollars):
            return bracket
    raise NoMatchingBracketError(
        f"No tax bracket covers taxable income {taxable_income}; check the table for gaps or a missing top band",
        income=taxable_income,
    )


def compute_tax(taxable_income: Decimal, brackets: Sequence[TaxBracket]) -> Decimal:
    """Income tax payable on ``taxable_income`` under a progressive bracket table.

    Tax is the band's base tax plus the marginal rate applied to
    ``income - min_income + 1``; the ``+1`` counts the band's first dollar and
    keeps results identical to the published base-tax figures.
    """
    if taxable_income <= 0:
        return ZERO

    bracket = find_bracket(taxable_income, brackets)
    taxable_in_bracket = taxable_income - bracket.min_income + 1
    return bracket.base_tax + taxable_in_bracket * bracket.rate / HUNDRED


def validate_brackets(brackets: Sequence[TaxBracket]) -> None:
    """Check that ``brackets`` partition [0, inf) without gaps or overlaps."""
    if not brackets:
        raise NoMatchingBracketError("Tax bracket table is empty")

    ordered = sorted(brackets, key=lambda b: b.min_income)
    if ordered[0].min_income != 0:
        raise NoMatchingBracketError(f"First tax bracket starts at {ordered[0].min_income}, expected 0")

    for current, following in zip(ordered, ordered[1:]):
        if current.max_income is None:
            raise NoMatchingBracketError(
                f"Unbounded tax bracket starting at {current.min_income} is followed by {following.min_income}"
            )
        if current.max_income + 1 != following.min_income:
            raise NoMatchingBracketError(
                f"Tax brackets are not contiguous: {current.max_income} is followed by {following.min_income}"
            )

    if ordered[-1].max_income is not None:
        raise NoMatchingBracketError(f"Top tax bracket is capped at {ordered[-1].max_income}; it must be unbounded")


MEDICARE_LEVY_RATE = Decimal("0.02")
MEDICARE_SHADE_IN_RATE = Decimal("0.10")
MEDICARE_SHADE_IN_FACTOR = Decimal("1.25")


def compute_medicare_levy(taxable_income: Decimal, threshold: Decimal = Decimal(26000)) -> Decimal:
    if taxable_income <= threshold:
        return ZERO

    shade_in_limit = threshold * MEDICARE_SHADE_IN_FACTOR
    if taxable_income < shade_in_limit:
        return (taxable_income - threshold) * MEDICARE_SHADE_IN_RATE

    return taxable_income * MEDICARE_LEVY_RATE


@dataclass
class TotalTax:
    income_tax: Decimal
    medicare_levy: Decimal
    total_tax: Decimal


def compute_total_tax(
    taxable_income: Decimal,
    brackets: Sequence[TaxBracket],
    *,
    medicare_levy_threshold: Decimal = Decimal(26000),
) -> TotalTax:
    income_tax = compute_tax(taxable_income, brackets)
    medicare_levy = compute_medicare_levy(taxable_income, medicare_levy_threshold)
    return TotalTax(
        income_tax=income_tax,
        medicare_levy=medicare_levy,
        total_tax=income_tax + medicare_levy,
    )


def effective_tax_rate(total_tax: Decimal, taxable_income: Decimal) -> Decimal:
    """Total tax as a percentage of taxable income."""
    if taxable_income == 0:
        return ZERO
    return total_tax / taxable_income * HUNDRED
