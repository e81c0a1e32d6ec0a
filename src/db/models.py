from __future__ import annotations

import datetime as dt
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class _ScopedRecord:
    """Columns every per-profile, per-year record carries."""

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    profile_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    financial_year: Mapped[str] = mapped_column(String, nullable=False, index=True)


class PropertyOrm(_ScopedRecord, Base):
    __tablename__ = "properties"

    address: Mapped[str] = mapped_column(String, nullable=False, default="")

    ownership_split: Mapped[list["OwnershipSplitOrm"]] = relationship(
        cascade="all, delete-orphan",
        back_populates="owned_property",
        lazy="joined",
        order_by="OwnershipSplitOrm.position",
    )


class OwnershipSplitOrm(Base):
    __tablename__ = "ownership_splits"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    property_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("properties.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    owner_name: Mapped[str] = mapped_column(String, nullable=False)
    percentage: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)

    owned_property: Mapped[PropertyOrm] = relationship(back_populates="ownership_split")


class IncomeOrm(_ScopedRecord, Base):
    __tablename__ = "incomes"

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False, default="")


# No foreign key to properties: these rows may outlive the property
# they were entered against.
class PropertyIncomeOrm(_ScopedRecord, Base):
    __tablename__ = "property_incomes"

    property_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    gross_rent: Mapped[str] = mapped_column(String, nullable=False, default="0")
    insurance_payouts: Mapped[str] = mapped_column(String, nullable=False, default="0")
    other_income: Mapped[str] = mapped_column(String, nullable=False, default="0")


class PropertyExpenseOrm(_ScopedRecord, Base):
    __tablename__ = "property_expenses"

    property_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False, default="")
    is_capital_improvement: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class ReceiptOrm(_ScopedRecord, Base):
    __tablename__ = "receipts"

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    vendor: Mapped[str] = mapped_column(String, nullable=False, default="")
    category: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False, default="")


class WorkDeductionOrm(_ScopedRecord, Base):
    __tablename__ = "work_deductions"

    method: Mapped[str] = mapped_column(String, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    electricity: Mapped[str] = mapped_column(String, nullable=False, default="0")
    internet: Mapped[str] = mapped_column(String, nullable=False, default="0")
    cleaning: Mapped[str] = mapped_column(String, nullable=False, default="0")
    phone_usage: Mapped[str] = mapped_column(String, nullable=False, default="0")
    stationery: Mapped[str] = mapped_column(String, nullable=False, default="0")


class DepreciableAssetOrm(_ScopedRecord, Base):
    __tablename__ = "depreciable_assets"

    item_name: Mapped[str] = mapped_column(String, nullable=False, default="")
    cost: Mapped[str] = mapped_column(String, nullable=False)
    effective_life_years: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    acquisition_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    method: Mapped[str] = mapped_column(String, nullable=False)
    business_use_fraction: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)


class TransactionOrm(_ScopedRecord, Base):
    __tablename__ = "transactions"

    asset_id: Mapped[str] = mapped_column(String, nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    timestamp: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    consideration: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[str] = mapped_column(String, nullable=False)
    fees: Mapped[str] = mapped_column(String, nullable=False, default="0")
    exchange: Mapped[str | None] = mapped_column(String, nullable=True)


class TaxBracketOrm(Base):
    __tablename__ = "tax_brackets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    financial_year: Mapped[str] = mapped_column(String, nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    min_income: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    max_income: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    rate: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    base_tax: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
