from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Sequence

from .base_types import ZERO, PropertyId, financial_year_end, parse_amount
from .capital_gains import CapitalGainsEngine, CapitalGainsSummary
from .depreciation import compute_depreciation
from .records import Property, PropertyExpense, PropertyIncome, TaxRecords
from .tax_brackets import TaxBracket, compute_tax
from .work_deductions import DEFAULT_FIXED_RATE, compute_work_deduction

logger = logging.getLogger(__name__)


@dataclass
class TaxPosition:
    taxable_income: Decimal
    tax_payable: Decimal
    total_deductions: Decimal
    deduction_count: int
    total_income: Decimal = ZERO
    capital_gains: CapitalGainsSummary = field(default_factory=CapitalGainsSummary)


def ownership_fractions(properties: Iterable[Property]) -> dict[PropertyId, Decimal]:
    return {prop.id: prop.ownership_fraction for prop in properties}


class TaxPositionAggregator:
    """Combine one profile's records for one financial year into a tax position."""

    def __init__(
        self,
        brackets: Sequence[TaxBracket],
        *,
        wfh_fixed_rate: Decimal = DEFAULT_FIXED_RATE,
        capital_gains_engine: CapitalGainsEngine | None = None,
    ) -> None:
        self._brackets = list(brackets)
        self._wfh_fixed_rate = wfh_fixed_rate
        self._capital_gains_engine = capital_gains_engine or CapitalGainsEngine()

    def aggregate(self, records: TaxRecords, *, capital_gains: CapitalGainsSummary | None = None) -> TaxPosition:
        """``capital_gains`` reuses a summary already computed from ``records.transactions``."""
        fy_end = financial_year_end(records.financial_year)
        ownership = ownership_fractions(records.properties)

        if capital_gains is None:
            capital_gains = self._capital_gains_engine.process(records.transactions)

        total_income = ZERO
        for income in records.incomes:
            total_income += parse_amount(income.amount, field="amount", record=income.describe())
        for property_income in records.property_incomes:
            total_income += self._property_income(property_income, ownership)
        total_income += capital_gains.taxable_capital_gain

        deductible_expenses = [e for e in records.property_expenses if not e.is_capital_improvement]

        total_deductions = ZERO
        for expense in deductible_expenses:
            total_deductions += self._property_expense(expense, ownership)
        for receipt in records.receipts:
            total_deductions += parse_amount(receipt.amount, field="amount", record=receipt.describe())
        if records.work_deduction is not None:
            total_deductions += compute_work_deduction(records.work_deduction, fixed_rate=self._wfh_fixed_rate)
        for asset in records.depreciable_assets:
            total_deductions += compute_depreciation(asset, fy_end)

        deduction_count = (
            len(deductible_expenses)
            + len(records.receipts)
            + (1 if records.work_deduction is not None else 0)
            + len(records.depreciable_assets)
        )

        taxable_income = max(total_income - total_deductions, ZERO)
        tax_payable = compute_tax(taxable_income, self._brackets)

        logger.info(
            "Tax position for %s: income=%s deductions=%s taxable=%s payable=%s",
            records.financial_year,
            total_income,
            total_deductions,
            taxable_income,
            tax_payable,
        )

        return TaxPosition(
            taxable_income=taxable_income,
            tax_payable=tax_payable,
            total_deductions=total_deductions,
            deduction_count=deduction_count,
            total_income=total_income,
            capital_gains=capital_gains,
        )

    @staticmethod
    def _ownership_for(property_id: PropertyId, ownership: dict[PropertyId, Decimal], record: str) -> Decimal:
        fraction = ownership.get(property_id)
        if fraction is None:
            # Records left behind by a deleted property contribute nothing.
            logger.debug("Ignoring %s: property %s not found", record, property_id)
            return ZERO
        return fraction

    def _property_income(self, income: PropertyIncome, ownership: dict[PropertyId, Decimal]) -> Decimal:
        record = income.describe()
        fraction = self._ownership_for(income.property_id, ownership, record)
        gross = (
            parse_amount(income.gross_rent, field="gross_rent", record=record)
            + parse_amount(income.insurance_payouts, field="insurance_payouts", record=record)
            + parse_amount(income.other_income, field="other_income", record=record)
        )
        return gross * fraction

    def _property_expense(self, expense: PropertyExpense, ownership: dict[PropertyId, Decimal]) -> Decimal:
        record = expense.describe()
        fraction = self._ownership_for(expense.property_id, ownership, record)
        return parse_amount(expense.amount, field="amount", record=record) * fraction


def aggregate(
    records: TaxRecords,
    brackets: Sequence[TaxBracket],
    *,
    wfh_fixed_rate: Decimal = DEFAULT_FIXED_RATE,
) -> TaxPosition:
    return TaxPositionAggregator(brackets, wfh_fixed_rate=wfh_fixed_rate).aggregate(records)
