from __future__ import annotations

from datetime import datetime
from decimal import Decimal


class TaxCoreError(Exception):
    """Base class for failures raised by the tax-position core."""


class ParseError(TaxCoreError):
    def __init__(self, message: str, *, record: str, field: str, value: str | None = None) -> None:
        super().__init__(message)
        self.record = record
        self.field = field
        self.value = value


class InvalidAssetError(TaxCoreError):
    def __init__(self, message: str, *, asset: str) -> None:
        super().__init__(message)
        self.asset = asset


class NoMatchingBracketError(TaxCoreError):
    def __init__(self, message: str, *, income: Decimal | None = None) -> None:
        super().__init__(message)
        self.income = income


class UnmatchedDisposalError(TaxCoreError):
    def __init__(self, message: str, *, warning: UnmatchedDisposalWarning) -> None:
        super().__init__(message)
        self.warning = warning


class UnmatchedDisposalWarning(UserWarning):
    """A disposal sold more units than the recorded acquisition history holds.

    The shortfall is carried with a zero cost base, so the reported gain is
    overstated by the proceeds attributable to it.
    """

    def __init__(
        self,
        *,
        asset_id: str,
        transaction_id: str,
        timestamp: datetime,
        unmatched_quantity: Decimal,
    ) -> None:
        self.asset_id = asset_id
        self.transaction_id = transaction_id
        self.timestamp = timestamp
        self.unmatched_quantity = unmatched_quantity
        super().__init__(
            f"Could not match {unmatched_quantity} units of asset={asset_id} "
            f"disposal={transaction_id} @{timestamp.isoformat()}: missing acquisition records"
        )
