from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_FLOOR, Decimal
from typing import Iterable, Iterator, Mapping

from pydantic import BaseModel

from .base_types import ZERO, AssetId, RecordId, parse_amount
from .errors import ParseError, UnmatchedDisposalError, UnmatchedDisposalWarning
from .records import Transaction

logger = logging.getLogger(__name__)

DEFAULT_DISCOUNT_DAYS = 365
DEFAULT_DISCOUNT_RATE = Decimal("0.5")


class MatchedLot(BaseModel):
    acquisition_id: RecordId
    acquired_timestamp: datetime
    quantity_used: Decimal
    cost_base: Decimal
    holding_days: int


class DisposalEvent(BaseModel):
    asset_id: AssetId
    disposal_id: RecordId
    disposal_timestamp: datetime
    quantity: Decimal
    proceeds: Decimal
    cost_base: Decimal
    fees: Decimal
    gross_gain: Decimal
    holding_period_days: int
    discount_applied: bool
    discount_amount: Decimal
    taxable_gain: Decimal
    unmatched_quantity: Decimal = ZERO
    matched_lots: list[MatchedLot]


class OpenLotSnapshot(BaseModel):
    asset_id: AssetId
    acquisition_id: RecordId
    acquired_timestamp: datetime
    quantity_remaining: Decimal
    cost_per_unit: Decimal


@dataclass
class CapitalGainsSummary:
    total_gains: Decimal = ZERO
    total_losses: Decimal = ZERO
    net_capital_gain: Decimal = ZERO
    total_discount_applied: Decimal = ZERO
    taxable_capital_gain: Decimal = ZERO
    events: list[DisposalEvent] = field(default_factory=list)
    open_lots: list[OpenLotSnapshot] = field(default_factory=list)
    warnings: list[UnmatchedDisposalWarning] = field(default_factory=list)


@dataclass
class _ParsedTransaction:
    transaction: Transaction
    consideration: Decimal
    quantity: Decimal
    fees: Decimal


@dataclass
class _OpenLot:
    source: _ParsedTransaction
    remaining_quantity: Decimal

    @property
    def unit_cost(self) -> Decimal:
        return self.source.consideration / self.source.quantity

    @property
    def unit_fee(self) -> Decimal:
        return self.source.fees / self.source.quantity

    @property
    def acquired_timestamp(self) -> datetime:
        return self.source.transaction.timestamp


class CapitalGainsEngine:
    """Match disposals against earlier acquisitions, first in first out."""

    def __init__(
        self,
        *,
        discount_days: int = DEFAULT_DISCOUNT_DAYS,
        discount_rate: Decimal = DEFAULT_DISCOUNT_RATE,
        strict: bool = False,
    ) -> None:
        self._discount_days = discount_days
        self._discount_rate = discount_rate
        self._strict = strict

    def process(self, transactions: Iterable[Transaction]) -> CapitalGainsSummary:
        """Transactions may arrive in any order; each asset is matched independently."""
        parsed = [self._parse(tx) for tx in transactions]
        parsed.sort(key=lambda p: p.transaction.timestamp)

        by_asset: dict[str, list[_ParsedTransaction]] = defaultdict(list)
        for item in parsed:
            by_asset[item.transaction.asset_id].append(item)

        summary = CapitalGainsSummary()
        for asset_id, asset_transactions in by_asset.items():
            open_lots: deque[_OpenLot] = deque()
            for item in asset_transactions:
                if item.transaction.is_acquisition:
                    open_lots.append(_OpenLot(source=item, remaining_quantity=item.quantity))
                    continue
                summary.events.append(self._dispose(item, open_lots, summary.warnings))

            summary.open_lots.extend(self._snapshot(asset_id, open_lots))

        summary.events.sort(key=lambda e: e.disposal_timestamp)
        summary.open_lots.sort(key=lambda snap: (snap.asset_id, snap.acquired_timestamp))

        for event in summary.events:
            if event.gross_gain > 0:
                summary.total_gains += event.gross_gain
            else:
                summary.total_losses += abs(event.gross_gain)
            summary.total_discount_applied += event.discount_amount
            summary.taxable_capital_gain += event.taxable_gain
        summary.net_capital_gain = summary.total_gains - summary.total_losses

        return summary

    def _parse(self, tx: Transaction) -> _ParsedTransaction:
        record = tx.describe()
        quantity = parse_amount(tx.quantity, field="quantity", record=record)
        consideration = parse_amount(tx.consideration, field="consideration", record=record)
        fees = parse_amount(tx.fees, field="fees", record=record)

        if quantity <= 0:
            raise ParseError(f"Quantity must be positive in {record}", record=record, field="quantity", value=tx.quantity)
        if consideration < 0:
            raise ParseError(
                f"Consideration must not be negative in {record}",
                record=record,
                field="consideration",
                value=tx.consideration,
            )
        if fees < 0:
            raise ParseError(f"Fees must not be negative in {record}", record=record, field="fees", value=tx.fees)

        return _ParsedTransaction(transaction=tx, consideration=consideration, quantity=quantity, fees=fees)

    def _dispose(
        self,
        disposal: _ParsedTransaction,
        open_lots: deque[_OpenLot],
        warnings: list[UnmatchedDisposalWarning],
    ) -> DisposalEvent:
        tx = disposal.transaction
        total_cost_base = ZERO
        weighted_holding_days = ZERO
        matched_lots: list[MatchedLot] = []

        remaining = disposal.quantity
        for lot, take_quantity in self._match_lots(remaining, open_lots):
            holding_days = (tx.timestamp - lot.acquired_timestamp).days
            cost_base = take_quantity * (lot.unit_cost + lot.unit_fee)

            total_cost_base += cost_base
            weighted_holding_days += take_quantity * holding_days
            remaining -= take_quantity
            matched_lots.append(
                MatchedLot(
                    acquisition_id=lot.source.transaction.id,
                    acquired_timestamp=lot.acquired_timestamp,
                    quantity_used=take_quantity,
                    cost_base=cost_base,
                    holding_days=holding_days,
                )
            )

        if remaining > 0:
            self._report_unmatched(tx, remaining, warnings)

        proceeds = disposal.consideration - disposal.fees
        gross_gain = proceeds - total_cost_base
        holding_period_days = int((weighted_holding_days / disposal.quantity).to_integral_value(rounding=ROUND_FLOOR))

        discount_applied = holding_period_days > self._discount_days and gross_gain > 0
        discount_amount = gross_gain * self._discount_rate if discount_applied else ZERO
        # Losses are never discounted.
        taxable_gain = gross_gain - discount_amount if gross_gain > 0 else gross_gain

        return DisposalEvent(
            asset_id=tx.asset_id,
            disposal_id=tx.id,
            disposal_timestamp=tx.timestamp,
            quantity=disposal.quantity,
            proceeds=proceeds,
            cost_base=total_cost_base,
            fees=disposal.fees,
            gross_gain=gross_gain,
            holding_period_days=holding_period_days,
            discount_applied=discount_applied,
            discount_amount=discount_amount,
            taxable_gain=taxable_gain,
            unmatched_quantity=remaining,
            matched_lots=matched_lots,
        )

    @staticmethod
    def _match_lots(quantity_needed: Decimal, open_lots: deque[_OpenLot]) -> Iterator[tuple[_OpenLot, Decimal]]:
        remaining = quantity_needed
        while remaining > 0 and open_lots:
            lot = open_lots[0]
            if lot.remaining_quantity <= 0:
                open_lots.popleft()
                continue

            take_quantity = min(remaining, lot.remaining_quantity)
            lot.remaining_quantity -= take_quantity
            remaining -= take_quantity
            if lot.remaining_quantity <= 0:
                open_lots.popleft()
            yield lot, take_quantity

    def _report_unmatched(
        self,
        tx: Transaction,
        unmatched_quantity: Decimal,
        warnings: list[UnmatchedDisposalWarning],
    ) -> None:
        warning = UnmatchedDisposalWarning(
            asset_id=tx.asset_id,
            transaction_id=str(tx.id),
            timestamp=tx.timestamp,
            unmatched_quantity=unmatched_quantity,
        )
        if self._strict:
            raise UnmatchedDisposalError(str(warning), warning=warning)

        logger.warning("%s; treating the shortfall as zero cost base", warning)
        warnings.append(warning)

    @staticmethod
    def _snapshot(asset_id: str, open_lots: deque[_OpenLot]) -> list[OpenLotSnapshot]:
        return [
            OpenLotSnapshot(
                asset_id=AssetId(asset_id),
                acquisition_id=lot.source.transaction.id,
                acquired_timestamp=lot.acquired_timestamp,
                quantity_remaining=lot.remaining_quantity,
                cost_per_unit=lot.unit_cost + lot.unit_fee,
            )
            for lot in open_lots
            if lot.remaining_quantity > 0
        ]


def compute_capital_gains(transactions: Iterable[Transaction]) -> CapitalGainsSummary:
    return CapitalGainsEngine().process(transactions)


@dataclass
class UnrealizedGain:
    asset_id: str
    quantity: Decimal
    cost_base: Decimal
    market_value: Decimal
    unrealized_gain: Decimal


def compute_unrealized_gains(
    open_lots: Iterable[OpenLotSnapshot],
    prices: Mapping[str, Decimal],
) -> list[UnrealizedGain]:
    """Value remaining inventory at caller-supplied unit prices.

    Assets missing from ``prices`` are valued at zero.
    """
    holdings: dict[str, tuple[Decimal, Decimal]] = {}
    for lot in open_lots:
        quantity, cost_base = holdings.get(lot.asset_id, (ZERO, ZERO))
        holdings[lot.asset_id] = (
            quantity + lot.quantity_remaining,
            cost_base + lot.quantity_remaining * lot.cost_per_unit,
        )

    results: list[UnrealizedGain] = []
    for asset_id, (quantity, cost_base) in sorted(holdings.items()):
        market_value = quantity * prices.get(asset_id, ZERO)
        results.append(
            UnrealizedGain(
                asset_id=asset_id,
                quantity=quantity,
                cost_base=cost_base,
                market_value=market_value,
                unrealized_gain=market_value - cost_base,
            )
        )
    return results
