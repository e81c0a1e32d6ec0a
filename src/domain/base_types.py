from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import NewType
from uuid import UUID

from .errors import ParseError

AssetId = NewType("AssetId", str)
RecordId = NewType("RecordId", UUID)
PropertyId = NewType("PropertyId", UUID)
ProfileId = NewType("ProfileId", str)

# e.g. "2024-2025"
FinancialYear = NewType("FinancialYear", str)

ZERO = Decimal("0")

_CURRENCY_NOISE = str.maketrans("", "", "$ \t")
_GROUPED_THOUSANDS = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d*)?$")


def parse_amount(raw: str | Decimal | int | None, *, field: str, record: str) -> Decimal:
    """Parse a persisted amount string into a Decimal.

    Blank values read as zero. Currency symbols and whitespace are ignored, as
    are commas separating groups of three digits; any other comma is rejected.
    Anything else that is not a finite decimal raises ParseError pointing at
    ``record``.
    """
    if raw is None:
        return ZERO
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, int):
        value = Decimal(raw)
    else:
        cleaned = raw.translate(_CURRENCY_NOISE)
        if not cleaned:
            return ZERO
        if "," in cleaned:
            if not _GROUPED_THOUSANDS.match(cleaned):
                raise ParseError(
                    f"Misplaced thousands separator in {field}={raw!r} in {record}",
                    record=record,
                    field=field,
                    value=raw,
                )
            cleaned = cleaned.replace(",", "")
        try:
            value = Decimal(cleaned)
        except InvalidOperation as err:
            raise ParseError(f"Malformed {field}={raw!r} in {record}", record=record, field=field, value=raw) from err

    if not value.is_finite():
        raise ParseError(f"Non-finite {field}={raw!r} in {record}", record=record, field=field, value=str(raw))
    return value


def financial_year_end(financial_year: str) -> date:
    """30 June of the closing calendar year of a "YYYY-YYYY" financial year."""
    parts = financial_year.split("-")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise ParseError(
            f"Malformed financial year {financial_year!r}",
            record="financial year",
            field="financial_year",
            value=financial_year,
        )
    start_year, end_year = (int(part) for part in parts)
    if end_year != start_year + 1:
        raise ParseError(
            f"Financial year {financial_year!r} must span consecutive years",
            record="financial year",
            field="financial_year",
            value=financial_year,
        )
    return date(end_year, 6, 30)
