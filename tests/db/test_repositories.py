from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from db.repositories import TaxBracketRepository, TaxRecordRepository
from domain.base_types import FinancialYear
from domain.records import (
    ActualCosts,
    DepreciableAsset,
    DepreciationMethod,
    IncomeCategory,
    IncomeRecord,
    OwnershipSplit,
    Property,
    PropertyExpense,
    PropertyIncome,
    Receipt,
    TaxRecords,
    Transaction,
    TransactionKind,
    WorkDeductionMethod,
    WorkDeductionRecord,
)
from domain.tax_brackets import RESIDENT_BRACKETS_2024_25, TaxBracket
from domain.tax_position import TaxPositionAggregator
from tests.constants import BTC, FINANCIAL_YEAR, PROFILE_ID


@pytest.fixture()
def repo(test_session: Session) -> TaxRecordRepository:
    return TaxRecordRepository(test_session)


@pytest.fixture()
def bracket_repo(test_session: Session) -> TaxBracketRepository:
    return TaxBracketRepository(test_session)


def _sample_records() -> TaxRecords:
    rental = Property(
        address="1 Example St",
        ownership_split=[
            OwnershipSplit(owner_name="me", percentage=Decimal(60)),
            OwnershipSplit(owner_name="partner", percentage=Decimal(40)),
        ],
    )
    return TaxRecords(
        financial_year=FinancialYear(FINANCIAL_YEAR),
        incomes=[IncomeRecord(date=date(2025, 6, 30), category=IncomeCategory.SALARY, amount="90000")],
        properties=[rental],
        property_incomes=[PropertyIncome(property_id=rental.id, gross_rent="20000")],
        property_expenses=[
            PropertyExpense(property_id=rental.id, date=date(2024, 9, 1), category="repairs", amount="4000")
        ],
        receipts=[Receipt(date=date(2024, 8, 1), vendor="Officeworks", category="stationery", amount="$45.90")],
        work_deduction=WorkDeductionRecord(
            method=WorkDeductionMethod.ACTUAL_COST,
            actual_costs=ActualCosts(electricity="120", internet="300"),
        ),
        depreciable_assets=[
            DepreciableAsset(
                item_name="laptop",
                cost="3000",
                effective_life_years=Decimal(4),
                acquisition_date=date(2024, 7, 1),
                method=DepreciationMethod.DIMINISHING_VALUE,
                business_use_fraction=Decimal("0.8"),
            )
        ],
        transactions=[
            Transaction(
                asset_id=BTC,
                kind=TransactionKind.ACQUISITION,
                timestamp=datetime(2024, 1, 1, 12, tzinfo=timezone.utc),
                consideration="10000",
                quantity="0.25",
                fees="12.5",
                exchange="kraken",
            )
        ],
    )


def test_save_and_load_round_trip(repo: TaxRecordRepository) -> None:
    records = _sample_records()

    repo.save(PROFILE_ID, records)
    loaded = repo.load(PROFILE_ID, FINANCIAL_YEAR)

    assert loaded == records


def test_load_is_scoped_by_profile_and_year(repo: TaxRecordRepository) -> None:
    repo.save(PROFILE_ID, _sample_records())

    other_profile = repo.load("someone-else", FINANCIAL_YEAR)
    other_year = repo.load(PROFILE_ID, "2023-2024")

    assert other_profile == TaxRecords(financial_year=FinancialYear(FINANCIAL_YEAR))
    assert other_year.incomes == []
    assert other_year.properties == []
    assert other_year.work_deduction is None


def test_naive_timestamps_come_back_as_utc(repo: TaxRecordRepository) -> None:
    records = _sample_records()

    repo.save(PROFILE_ID, records)
    loaded = repo.load(PROFILE_ID, FINANCIAL_YEAR)

    assert loaded.transactions[0].timestamp.tzinfo is not None
    assert loaded.transactions[0].timestamp == records.transactions[0].timestamp


def test_delete_property_keeps_its_income_and_expenses(repo: TaxRecordRepository) -> None:
    records = _sample_records()
    repo.save(PROFILE_ID, records)

    repo.delete_property(records.properties[0].id)
    loaded = repo.load(PROFILE_ID, FINANCIAL_YEAR)

    assert loaded.properties == []
    assert loaded.property_incomes == records.property_incomes
    assert loaded.property_expenses == records.property_expenses


def test_bracket_defaults_are_seeded(bracket_repo: TaxBracketRepository) -> None:
    assert bracket_repo.get(FINANCIAL_YEAR) is None

    brackets = bracket_repo.get_or_create(FINANCIAL_YEAR)

    assert brackets == list(RESIDENT_BRACKETS_2024_25)
    assert bracket_repo.get(FINANCIAL_YEAR) == list(RESIDENT_BRACKETS_2024_25)


def test_new_year_clones_latest_stored_table(bracket_repo: TaxBracketRepository) -> None:
    custom = [
        TaxBracket(min_income=Decimal(0), max_income=Decimal(20000), rate=Decimal(0)),
        TaxBracket(min_income=Decimal(20001), rate=Decimal(20), base_tax=Decimal(0)),
    ]
    bracket_repo.save("2025-2026", custom)

    cloned = bracket_repo.get_or_create("2026-2027")

    assert cloned == custom
    assert bracket_repo.get("2026-2027") == custom


def test_save_replaces_and_sorts_table(bracket_repo: TaxBracketRepository) -> None:
    bracket_repo.save(FINANCIAL_YEAR, RESIDENT_BRACKETS_2024_25)
    replacement = [
        TaxBracket(min_income=Decimal(10001), rate=Decimal(10)),
        TaxBracket(min_income=Decimal(0), max_income=Decimal(10000), rate=Decimal(0)),
    ]

    bracket_repo.save(FINANCIAL_YEAR, replacement)

    assert bracket_repo.get(FINANCIAL_YEAR) == [replacement[1], replacement[0]]


def test_loaded_records_give_the_same_tax_position(
    repo: TaxRecordRepository, aggregator: TaxPositionAggregator
) -> None:
    records = _sample_records()

    repo.save(PROFILE_ID, records)
    loaded = repo.load(PROFILE_ID, FINANCIAL_YEAR)

    assert aggregator.aggregate(loaded) == aggregator.aggregate(records)
