from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from domain.errors import NoMatchingBracketError
from domain.tax_brackets import (
    RESIDENT_BRACKETS_2024_25,
    TaxBracket,
    compute_medicare_levy,
    compute_tax,
    compute_total_tax,
    effective_tax_rate,
    find_bracket,
    validate_brackets,
)


@pytest.mark.parametrize(
    ("income", "expected"),
    [
        (Decimal("-500"), Decimal("0")),
        (Decimal("0"), Decimal("0")),
        (Decimal("18200"), Decimal("0")),
        (Decimal("18201"), Decimal("0.16")),
        (Decimal("45000"), Decimal("4288")),
        (Decimal("45001"), Decimal("4288.3")),
        (Decimal("135000"), Decimal("31288")),
        (Decimal("190000"), Decimal("51638")),
        (Decimal("200000"), Decimal("56138")),
    ],
)
def test_resident_rates(income: Decimal, expected: Decimal) -> None:
    assert compute_tax(income, RESIDENT_BRACKETS_2024_25) == expected


def test_band_boundaries_step_by_the_next_marginal_rate() -> None:
    for lower, upper in zip(RESIDENT_BRACKETS_2024_25, RESIDENT_BRACKETS_2024_25[1:]):
        assert lower.max_income is not None
        below = compute_tax(lower.max_income, RESIDENT_BRACKETS_2024_25)
        above = compute_tax(upper.min_income, RESIDENT_BRACKETS_2024_25)
        assert above - below == upper.rate / 100


def test_cents_between_bands_use_the_lower_band() -> None:
    assert find_bracket(Decimal("45000.50"), RESIDENT_BRACKETS_2024_25).min_income == Decimal(18201)
    assert compute_tax(Decimal("45000.50"), RESIDENT_BRACKETS_2024_25) == Decimal("4288.08")


def test_unsorted_table_is_accepted() -> None:
    shuffled = list(reversed(RESIDENT_BRACKETS_2024_25))

    assert compute_tax(Decimal("100000"), shuffled) == Decimal("20788")


def test_gap_in_table_raises() -> None:
    gappy = [
        TaxBracket(min_income=Decimal(0), max_income=Decimal(10000), rate=Decimal(0)),
        TaxBracket(min_income=Decimal(20001), rate=Decimal(20), base_tax=Decimal(2000)),
    ]

    with pytest.raises(NoMatchingBracketError) as exc_info:
        compute_tax(Decimal("15000"), gappy)

    assert exc_info.value.income == Decimal("15000")


def test_resident_table_is_valid() -> None:
    validate_brackets(RESIDENT_BRACKETS_2024_25)


@pytest.mark.parametrize(
    "brackets",
    [
        [],
        [TaxBracket(min_income=Decimal(1), rate=Decimal(10))],
        [
            TaxBracket(min_income=Decimal(0), max_income=Decimal(100), rate=Decimal(0)),
            TaxBracket(min_income=Decimal(200), rate=Decimal(10)),
        ],
        [
            TaxBracket(min_income=Decimal(0), rate=Decimal(0)),
            TaxBracket(min_income=Decimal(101), rate=Decimal(10)),
        ],
        [TaxBracket(min_income=Decimal(0), max_income=Decimal(100), rate=Decimal(10))],
    ],
    ids=["empty", "not-from-zero", "gap", "unbounded-not-last", "capped-top"],
)
def test_invalid_tables_are_rejected(brackets: list[TaxBracket]) -> None:
    with pytest.raises(NoMatchingBracketError):
        validate_brackets(brackets)


def test_bracket_field_validation() -> None:
    with pytest.raises(ValidationError):
        TaxBracket(min_income=Decimal(100), max_income=Decimal(50), rate=Decimal(10))
    with pytest.raises(ValidationError):
        TaxBracket(min_income=Decimal(0), rate=Decimal(101))


@pytest.mark.parametrize(
    ("income", "expected"),
    [
        (Decimal("20000"), Decimal("0")),
        (Decimal("26000"), Decimal("0")),
        (Decimal("30000"), Decimal("400")),
        (Decimal("32500"), Decimal("650")),
        (Decimal("100000"), Decimal("2000")),
    ],
)
def test_medicare_levy(income: Decimal, expected: Decimal) -> None:
    assert compute_medicare_levy(income) == expected


def test_total_tax_includes_medicare_levy() -> None:
    total = compute_total_tax(Decimal("100000"), RESIDENT_BRACKETS_2024_25)

    assert total.income_tax == Decimal("20788")
    assert total.medicare_levy == Decimal("2000")
    assert total.total_tax == Decimal("22788")


def test_effective_tax_rate() -> None:
    assert effective_tax_rate(Decimal("22788"), Decimal("100000")) == Decimal("22.788")
    assert effective_tax_rate(Decimal("0"), Decimal("0")) == 0
