from __future__ import annotations

import logging
from datetime import timezone
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from db import models
from domain.base_types import AssetId, FinancialYear, PropertyId, RecordId
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

logger = logging.getLogger(__name__)


class TaxRecordRepository:
    """Stores and loads every record kind, scoped by profile and financial year."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def save(self, profile_id: str, records: TaxRecords) -> None:
        scope = {"profile_id": profile_id, "financial_year": records.financial_year}

        for prop in records.properties:
            orm_property = models.PropertyOrm(id=prop.id, address=prop.address, **scope)
            orm_property.ownership_split = [
                models.OwnershipSplitOrm(position=idx, owner_name=split.owner_name, percentage=split.percentage)
                for idx, split in enumerate(prop.ownership_split)
            ]
            self._session.add(orm_property)

        self._session.add_all(
            models.IncomeOrm(
                id=income.id,
                date=income.date,
                category=income.category.value,
                amount=income.amount,
                description=income.description,
                **scope,
            )
            for income in records.incomes
        )
        self._session.add_all(
            models.PropertyIncomeOrm(
                id=income.id,
                property_id=income.property_id,
                gross_rent=income.gross_rent,
                insurance_payouts=income.insurance_payouts,
                other_income=income.other_income,
                **scope,
            )
            for income in records.property_incomes
        )
        self._session.add_all(
            models.PropertyExpenseOrm(
                id=expense.id,
                property_id=expense.property_id,
                date=expense.date,
                category=expense.category,
                amount=expense.amount,
                description=expense.description,
                is_capital_improvement=expense.is_capital_improvement,
                **scope,
            )
            for expense in records.property_expenses
        )
        self._session.add_all(
            models.ReceiptOrm(
                id=receipt.id,
                date=receipt.date,
                vendor=receipt.vendor,
                category=receipt.category,
                amount=receipt.amount,
                description=receipt.description,
                **scope,
            )
            for receipt in records.receipts
        )
        if records.work_deduction is not None:
            wfh = records.work_deduction
            self._session.add(
                models.WorkDeductionOrm(
                    id=wfh.id,
                    method=wfh.method.value,
                    total_hours=wfh.total_hours,
                    **wfh.actual_costs.model_dump(),
                    **scope,
                )
            )
        self._session.add_all(
            models.DepreciableAssetOrm(
                id=asset.id,
                item_name=asset.item_name,
                cost=asset.cost,
                effective_life_years=asset.effective_life_years,
                acquisition_date=asset.acquisition_date,
                method=asset.method.value,
                business_use_fraction=asset.business_use_fraction,
                **scope,
            )
            for asset in records.depreciable_assets
        )
        self._session.add_all(
            models.TransactionOrm(
                id=tx.id,
                asset_id=tx.asset_id,
                kind=tx.kind.value,
                timestamp=tx.timestamp,
                consideration=tx.consideration,
                quantity=tx.quantity,
                fees=tx.fees,
                exchange=tx.exchange,
                **scope,
            )
            for tx in records.transactions
        )
        self._session.commit()

    def load(self, profile_id: str, financial_year: str) -> TaxRecords:
        def scoped(orm_class: type) -> list:
            stmt = select(orm_class).where(
                orm_class.profile_id == profile_id,
                orm_class.financial_year == financial_year,
            )
            return list(self._session.scalars(stmt).unique())

        work_deductions = scoped(models.WorkDeductionOrm)
        if len(work_deductions) > 1:
            logger.warning(
                "Profile %s has %d work-from-home records for %s; using the first",
                profile_id,
                len(work_deductions),
                financial_year,
            )

        return TaxRecords(
            financial_year=FinancialYear(financial_year),
            incomes=[self._income(row) for row in scoped(models.IncomeOrm)],
            properties=[self._property(row) for row in scoped(models.PropertyOrm)],
            property_incomes=[self._property_income(row) for row in scoped(models.PropertyIncomeOrm)],
            property_expenses=[self._property_expense(row) for row in scoped(models.PropertyExpenseOrm)],
            receipts=[self._receipt(row) for row in scoped(models.ReceiptOrm)],
            work_deduction=self._work_deduction(work_deductions[0]) if work_deductions else None,
            depreciable_assets=[self._asset(row) for row in scoped(models.DepreciableAssetOrm)],
            transactions=[self._transaction(row) for row in scoped(models.TransactionOrm)],
        )

    def delete_property(self, property_id: UUID) -> None:
        """Remove a property; income and expenses entered against it are kept."""
        orm_property = self._session.get(models.PropertyOrm, property_id)
        if orm_property is None:
            return
        self._session.delete(orm_property)
        self._session.commit()

    @staticmethod
    def _property(row: models.PropertyOrm) -> Property:
        return Property(
            id=PropertyId(row.id),
            address=row.address,
            ownership_split=[
                OwnershipSplit(owner_name=split.owner_name, percentage=split.percentage)
                for split in row.ownership_split
            ],
        )

    @staticmethod
    def _income(row: models.IncomeOrm) -> IncomeRecord:
        return IncomeRecord(
            id=RecordId(row.id),
            date=row.date,
            category=IncomeCategory(row.category),
            amount=row.amount,
            description=row.description,
        )

    @staticmethod
    def _property_income(row: models.PropertyIncomeOrm) -> PropertyIncome:
        return PropertyIncome(
            id=RecordId(row.id),
            property_id=PropertyId(row.property_id),
            gross_rent=row.gross_rent,
            insurance_payouts=row.insurance_payouts,
            other_income=row.other_income,
        )

    @staticmethod
    def _property_expense(row: models.PropertyExpenseOrm) -> PropertyExpense:
        return PropertyExpense(
            id=RecordId(row.id),
            property_id=PropertyId(row.property_id),
            date=row.date,
            category=row.category,
            amount=row.amount,
            description=row.description,
            is_capital_improvement=row.is_capital_improvement,
        )

    @staticmethod
    def _receipt(row: models.ReceiptOrm) -> Receipt:
        return Receipt(
            id=RecordId(row.id),
            date=row.date,
            vendor=row.vendor,
            category=row.category,
            amount=row.amount,
            description=row.description,
        )

    @staticmethod
    def _work_deduction(row: models.WorkDeductionOrm) -> WorkDeductionRecord:
        return WorkDeductionRecord(
            id=RecordId(row.id),
            method=WorkDeductionMethod(row.method),
            total_hours=row.total_hours,
            actual_costs=ActualCosts(
                electricity=row.electricity,
                internet=row.internet,
                cleaning=row.cleaning,
                phone_usage=row.phone_usage,
                stationery=row.stationery,
            ),
        )

    @staticmethod
    def _asset(row: models.DepreciableAssetOrm) -> DepreciableAsset:
        return DepreciableAsset(
            id=RecordId(row.id),
            item_name=row.item_name,
            cost=row.cost,
            effective_life_years=row.effective_life_years,
            acquisition_date=row.acquisition_date,
            method=DepreciationMethod(row.method),
            business_use_fraction=row.business_use_fraction,
        )

    @staticmethod
    def _transaction(row: models.TransactionOrm) -> Transaction:
        timestamp = row.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        return Transaction(
            id=RecordId(row.id),
            asset_id=AssetId(row.asset_id),
            kind=TransactionKind(row.kind),
            timestamp=timestamp,
            consideration=row.consideration,
            quantity=row.quantity,
            fees=row.fees,
            exchange=row.exchange,
        )


class TaxBracketRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, financial_year: str) -> list[TaxBracket] | None:
        stmt = (
            select(models.TaxBracketOrm)
            .where(models.TaxBracketOrm.financial_year == financial_year)
            .order_by(models.TaxBracketOrm.position.asc())
        )
        rows = list(self._session.scalars(stmt))
        if not rows:
            return None
        return [
            TaxBracket(min_income=row.min_income, max_income=row.max_income, rate=row.rate, base_tax=row.base_tax)
            for row in rows
        ]

    def save(self, financial_year: str, brackets: Sequence[TaxBracket]) -> None:
        self._session.execute(delete(models.TaxBracketOrm).where(models.TaxBracketOrm.financial_year == financial_year))
        self._session.add_all(
            models.TaxBracketOrm(
                financial_year=financial_year,
                position=idx,
                min_income=bracket.min_income,
                max_income=bracket.max_income,
                rate=bracket.rate,
                base_tax=bracket.base_tax,
            )
            for idx, bracket in enumerate(sorted(brackets, key=lambda b: b.min_income))
        )
        self._session.commit()

    def get_or_create(self, financial_year: str) -> list[TaxBracket]:
        """Brackets for ``financial_year``, cloned from the latest stored year or the 2024-25 defaults."""
        brackets = self.get(financial_year)
        if brackets is not None:
            return brackets

        latest_year = self._session.scalars(
            select(models.TaxBracketOrm.financial_year).order_by(models.TaxBracketOrm.financial_year.desc()).limit(1)
        ).first()
        source = self.get(latest_year) if latest_year is not None else None
        if source is None:
            source = list(RESIDENT_BRACKETS_2024_25)

        logger.info("Seeding tax brackets for %s from %s", financial_year, latest_year or "2024-2025 defaults")
        self.save(financial_year, source)
        return source
