from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from config import AppSettings, config
from db.db import init_db
from db.repositories import TaxBracketRepository, TaxRecordRepository
from domain.base_types import financial_year_end
from domain.capital_gains import CapitalGainsEngine
from domain.errors import TaxCoreError
from domain.tax_brackets import TaxBracket, compute_total_tax, validate_brackets
from domain.tax_position import TaxPositionAggregator
from utils.formatting import format_currency
from utils.reports import render_asset_summary, render_capital_gains, render_tax_position, summarize_by_asset

logger = logging.getLogger(__name__)


def build_capital_gains_engine(settings: AppSettings) -> CapitalGainsEngine:
    return CapitalGainsEngine(
        discount_days=settings.cgt_discount_days,
        discount_rate=settings.cgt_discount_rate,
        strict=settings.strict_disposal_matching,
    )


def build_aggregator(settings: AppSettings, brackets: Sequence[TaxBracket]) -> TaxPositionAggregator:
    return TaxPositionAggregator(
        brackets,
        wfh_fixed_rate=settings.wfh_fixed_rate,
        capital_gains_engine=build_capital_gains_engine(settings),
    )


def run(db_file: Path, *, profile_id: str, financial_year: str, settings: AppSettings) -> None:
    # Rejects a malformed year before anything is written for it.
    financial_year_end(financial_year)

    session = init_db(db_file)
    record_repository = TaxRecordRepository(session)
    bracket_repository = TaxBracketRepository(session)

    brackets = bracket_repository.get_or_create(financial_year)
    validate_brackets(brackets)

    records = record_repository.load(profile_id, financial_year)
    logger.info(
        "Loaded %d transactions, %d assets, %d incomes for profile=%s year=%s",
        len(records.transactions),
        len(records.depreciable_assets),
        len(records.incomes),
        profile_id,
        financial_year,
    )

    # Capital gains only depend on transactions; report them before any other record is parsed.
    capital_gains = build_capital_gains_engine(settings).process(records.transactions)
    print(render_capital_gains(capital_gains))
    print()
    print(render_asset_summary(summarize_by_asset(capital_gains.events)))
    print()

    position = build_aggregator(settings, brackets).aggregate(records, capital_gains=capital_gains)
    print(render_tax_position(position))

    total = compute_total_tax(
        position.taxable_income, brackets, medicare_levy_threshold=settings.medicare_levy_threshold
    )
    print(f"  Medicare levy:      {format_currency(total.medicare_levy)}")
    print(f"  Total tax:          {format_currency(total.total_tax)}")


def main(argv: Sequence[str] | None = None) -> None:
    settings = config()
    parser = argparse.ArgumentParser(description="Compute the tax position for one profile and financial year.")
    parser.add_argument("--db", type=Path, default=settings.db_file)
    parser.add_argument("--profile", required=True)
    parser.add_argument("--financial-year", required=True, help='e.g. "2024-2025"')
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        run(args.db, profile_id=args.profile, financial_year=args.financial_year, settings=settings)
    except TaxCoreError as err:
        logger.error("Tax position calculation failed: %s", err)
        sys.exit(1)


if __name__ == "__main__":
    main()
