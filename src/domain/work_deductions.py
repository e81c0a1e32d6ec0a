from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from .base_types import ZERO, parse_amount
from .records import WorkDeductionMethod, WorkDeductionRecord

DEFAULT_FIXED_RATE = Decimal("0.67")

FULL_TIME_HOURS = Decimal(2080)
MAX_REASONABLE_HOURS = Decimal(3120)

_ACTUAL_COST_LABELS = {
    "electricity": "Electricity (heating/cooling/lighting)",
    "internet": "Internet",
    "phone_usage": "Phone usage",
    "cleaning": "Cleaning (home office area)",
    "stationery": "Stationery & consumables",
}


@dataclass
class DeductionLine:
    label: str
    amount: Decimal


@dataclass
class WorkDeductionResult:
    method: WorkDeductionMethod
    total_hours: Decimal
    rate_per_hour: Decimal
    total_deduction: Decimal
    breakdown: list[DeductionLine] = field(default_factory=list)


def calculate_work_deduction(
    record: WorkDeductionRecord,
    *,
    fixed_rate: Decimal = DEFAULT_FIXED_RATE,
    work_use_fraction: Decimal = Decimal(1),
) -> WorkDeductionResult:
    """Work-from-home deduction with a per-line breakdown.

    Fixed rate is hours worked from home times ``fixed_rate``. Actual cost sums
    the itemized running costs, each scaled by ``work_use_fraction``.
    """
    if record.method == WorkDeductionMethod.FIXED_RATE:
        total = record.total_hours * fixed_rate
        return WorkDeductionResult(
            method=record.method,
            total_hours=record.total_hours,
            rate_per_hour=fixed_rate,
            total_deduction=total,
            breakdown=[DeductionLine(label=f"{record.total_hours} hours x ${fixed_rate:.2f}/hr", amount=total)],
        )

    costs = record.actual_costs.model_dump()
    breakdown: list[DeductionLine] = []
    total = ZERO
    for name, label in _ACTUAL_COST_LABELS.items():
        amount = parse_amount(costs[name], field=name, record=record.describe()) * work_use_fraction
        total += amount
        if amount:
            breakdown.append(DeductionLine(label=label, amount=amount))

    return WorkDeductionResult(
        method=record.method,
        total_hours=ZERO,
        rate_per_hour=ZERO,
        total_deduction=total,
        breakdown=breakdown,
    )


def compute_work_deduction(record: WorkDeductionRecord, *, fixed_rate: Decimal = DEFAULT_FIXED_RATE) -> Decimal:
    return calculate_work_deduction(record, fixed_rate=fixed_rate).total_deduction


def validate_wfh_hours(hours: Decimal) -> tuple[bool, str | None]:
    if hours < 0:
        return False, "Hours cannot be negative"
    if hours > MAX_REASONABLE_HOURS:
        return False, f"Hours exceed reasonable limit ({MAX_REASONABLE_HOURS} hours = 12 hours/day for 52 weeks)"
    if hours > FULL_TIME_HOURS:
        return True, f"Hours exceed typical full-time work year ({FULL_TIME_HOURS} hours)"
    return True, None
