"""Input records handed to the core by the surrounding application.

Amounts are kept in their persisted string form and parsed by the component
that consumes them, so a malformed value is reported against its record.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import StrEnum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .base_types import AssetId, FinancialYear, PropertyId, RecordId


class TransactionKind(StrEnum):
    ACQUISITION = "ACQUISITION"
    DISPOSAL = "DISPOSAL"
    OPENING_BALANCE = "OPENING_BALANCE"


class Transaction(BaseModel):
    """A buy, sell or opening balance of one asset.

    ``consideration`` is the total paid or received, not a per-unit price.
    """

    model_config = ConfigDict(frozen=True)

    id: RecordId = RecordId(Field(default_factory=uuid4))
    asset_id: AssetId
    kind: TransactionKind
    timestamp: dt.datetime
    consideration: str
    quantity: str
    fees: str = "0"
    exchange: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _ensure_timezone(cls, value: dt.datetime) -> dt.datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value

    @model_validator(mode="after")
    def _validate_asset(self) -> Transaction:
        if not self.asset_id:
            raise ValueError("asset_id must be non-empty")
        return self

    @property
    def is_acquisition(self) -> bool:
        return self.kind in (TransactionKind.ACQUISITION, TransactionKind.OPENING_BALANCE)

    def describe(self) -> str:
        return f"{self.kind} transaction {self.id} asset={self.asset_id} @{self.timestamp.isoformat()}"


class DepreciationMethod(StrEnum):
    DIMINISHING_VALUE = "DIMINISHING_VALUE"
    PRIME_COST = "PRIME_COST"


class DepreciableAsset(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: RecordId = RecordId(Field(default_factory=uuid4))
    item_name: str = ""
    cost: str
    effective_life_years: Decimal
    acquisition_date: dt.date
    method: DepreciationMethod
    business_use_fraction: Decimal = Decimal("1")

    @model_validator(mode="after")
    def _validate_fraction(self) -> DepreciableAsset:
        if not Decimal(0) <= self.business_use_fraction <= Decimal(1):
            raise ValueError("business_use_fraction must be between 0 and 1")
        return self

    def describe(self) -> str:
        label = f" {self.item_name!r}" if self.item_name else ""
        return f"depreciable asset {self.id}{label} acquired {self.acquisition_date.isoformat()}"


class OwnershipSplit(BaseModel):
    owner_name: str
    percentage: Decimal

    @model_validator(mode="after")
    def _validate_percentage(self) -> OwnershipSplit:
        if not Decimal(0) < self.percentage <= Decimal(100):
            raise ValueError("percentage must be in (0, 100]")
        return self


class Property(BaseModel):
    id: PropertyId = PropertyId(Field(default_factory=uuid4))
    address: str = ""
    ownership_split: list[OwnershipSplit] = Field(default_factory=list)

    @property
    def ownership_fraction(self) -> Decimal:
        # The first split entry is the share held by the profile being assessed.
        if not self.ownership_split:
            return Decimal(1)
        return self.ownership_split[0].percentage / Decimal(100)


class IncomeCategory(StrEnum):
    SALARY = "SALARY"
    DIVIDENDS = "DIVIDENDS"
    INTEREST = "INTEREST"
    GOVERNMENT_PAYMENT = "GOVERNMENT_PAYMENT"
    ATO_SUMMARY = "ATO_SUMMARY"
    OTHER = "OTHER"


class IncomeRecord(BaseModel):
    id: RecordId = RecordId(Field(default_factory=uuid4))
    date: dt.date
    category: IncomeCategory = IncomeCategory.OTHER
    amount: str
    description: str = ""

    def describe(self) -> str:
        return f"income record {self.id} ({self.category}) on {self.date.isoformat()}"


class PropertyIncome(BaseModel):
    id: RecordId = RecordId(Field(default_factory=uuid4))
    property_id: PropertyId
    gross_rent: str = "0"
    insurance_payouts: str = "0"
    other_income: str = "0"

    def describe(self) -> str:
        return f"property income {self.id} property={self.property_id}"


class PropertyExpense(BaseModel):
    id: RecordId = RecordId(Field(default_factory=uuid4))
    property_id: PropertyId
    date: dt.date
    category: str = "other"
    amount: str
    description: str = ""
    is_capital_improvement: bool = False

    def describe(self) -> str:
        return f"property expense {self.id} property={self.property_id} on {self.date.isoformat()}"


class Receipt(BaseModel):
    id: RecordId = RecordId(Field(default_factory=uuid4))
    date: dt.date
    vendor: str = ""
    category: str = "other"
    amount: str
    description: str = ""

    def describe(self) -> str:
        return f"receipt {self.id} vendor={self.vendor!r} on {self.date.isoformat()}"


class WorkDeductionMethod(StrEnum):
    FIXED_RATE = "FIXED_RATE"
    ACTUAL_COST = "ACTUAL_COST"


class ActualCosts(BaseModel):
    electricity: str = "0"
    internet: str = "0"
    cleaning: str = "0"
    phone_usage: str = "0"
    stationery: str = "0"


class WorkDeductionRecord(BaseModel):
    id: RecordId = RecordId(Field(default_factory=uuid4))
    method: WorkDeductionMethod
    total_hours: Decimal = Decimal(0)
    actual_costs: ActualCosts = Field(default_factory=ActualCosts)

    def describe(self) -> str:
        return f"work-from-home record {self.id} ({self.method})"


class TaxRecords(BaseModel):
    """Every record of one profile for one financial year."""

    financial_year: FinancialYear
    incomes: list[IncomeRecord] = Field(default_factory=list)
    properties: list[Property] = Field(default_factory=list)
    property_incomes: list[PropertyIncome] = Field(default_factory=list)
    property_expenses: list[PropertyExpense] = Field(default_factory=list)
    receipts: list[Receipt] = Field(default_factory=list)
    work_deduction: WorkDeductionRecord | None = None
    depreciable_assets: list[DepreciableAsset] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
