from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from pydantic import BaseModel

from .base_types import ZERO, parse_amount
from .errors import InvalidAssetError
from .records import DepreciableAsset, DepreciationMethod

# Fixed-length year; a window containing 29 February counts 366 days.
DAYS_IN_YEAR = Decimal(365)

PRIME_COST_MULTIPLIER = Decimal(1)
DIMINISHING_VALUE_MULTIPLIER = Decimal(2)

INSTANT_WRITE_OFF_THRESHOLD = Decimal(20000)
LOW_VALUE_POOL_THRESHOLD = Decimal(1000)
DEFAULT_EFFECTIVE_LIFE = Decimal(5)

COMMON_EFFECTIVE_LIVES: dict[str, Decimal] = {
    "laptop": Decimal(4),
    "desktop_computer": Decimal(4),
    "mobile_phone": Decimal(3),
    "tablet": Decimal(2),
    "monitor": Decimal(5),
    "printer": Decimal(5),
    "office_furniture": Decimal(10),
    "desk": Decimal(10),
    "chair": Decimal(10),
    "bookshelf": Decimal(15),
    "tools_general": Decimal(5),
    "camera": Decimal(5),
    "software": Decimal("2.5"),
}


class DepreciationResult(BaseModel):
    method: DepreciationMethod
    original_cost: Decimal
    effective_life_years: Decimal
    days_held_in_year: int
    annual_rate: Decimal
    full_year_deduction: Decimal
    prorated_deduction: Decimal
    business_use_deduction: Decimal
    opening_written_down_value: Decimal
    closing_written_down_value: Decimal


def financial_year_start(fy_end: date) -> date:
    """First day of the year-long window closing on ``fy_end``."""
    try:
        one_year_back = fy_end.replace(year=fy_end.year - 1)
    except ValueError:
        # 29 February has no counterpart in the previous year.
        one_year_back = fy_end.replace(year=fy_end.year - 1, day=28)
    return one_year_back + timedelta(days=1)


def days_held_in_year(acquisition_date: date, fy_end: date) -> int:
    """Inclusive count of days the asset was held in the window ending ``fy_end``."""
    effective_start = max(acquisition_date, financial_year_start(fy_end))
    if effective_start > fy_end:
        return 0
    return (fy_end - effective_start).days + 1


def _validated_cost_and_life(asset: DepreciableAsset) -> tuple[Decimal, Decimal]:
    record = asset.describe()
    cost = parse_amount(asset.cost, field="cost", record=record)
    if cost <= 0:
        raise InvalidAssetError(f"Non-positive cost {cost} for {record}", asset=record)
    life = asset.effective_life_years
    if life <= 0:
        raise InvalidAssetError(f"Non-positive effective life {life} for {record}", asset=record)
    return cost, life


def _method_multiplier(method: DepreciationMethod) -> Decimal:
    if method == DepreciationMethod.PRIME_COST:
        return PRIME_COST_MULTIPLIER
    return DIMINISHING_VALUE_MULTIPLIER


def compute_depreciation(asset: DepreciableAsset, fy_end: date) -> Decimal:
    """Business-use decline in value of ``asset`` for the financial year ending ``fy_end``.

    Both methods work from the asset's original cost; there is no carried
    written-down value between years.
    """
    cost, life = _validated_cost_and_life(asset)

    days_held = days_held_in_year(asset.acquisition_date, fy_end)
    if days_held == 0:
        return ZERO

    pro_rata = Decimal(days_held) / DAYS_IN_YEAR
    deduction = cost * (_method_multiplier(asset.method) / life) * pro_rata
    return deduction * asset.business_use_fraction


def calculate_asset_depreciation(
    asset: DepreciableAsset,
    fy_end: date,
    *,
    prior_depreciation: Decimal = ZERO,
) -> DepreciationResult:
    """Full depreciation breakdown for one year.

    ``prior_depreciation`` is the decline in value already claimed in earlier
    years. Diminishing value applies its rate to the opening written-down value
    (cost less prior claims); prime cost always applies to cost. Days held are
    capped at one year, so a window containing 29 February prorates to the
    full-year figure.
    """
    cost, life = _validated_cost_and_life(asset)
    if prior_depreciation < 0:
        raise InvalidAssetError(
            f"Negative prior depreciation {prior_depreciation} for {asset.describe()}", asset=asset.describe()
        )

    opening_wdv = max(cost - prior_depreciation, ZERO)
    base_value = cost if asset.method == DepreciationMethod.PRIME_COST else opening_wdv
    rate = _method_multiplier(asset.method) / life

    days_held = min(days_held_in_year(asset.acquisition_date, fy_end), int(DAYS_IN_YEAR))
    full_year = base_value * rate
    prorated = full_year * (Decimal(days_held) / DAYS_IN_YEAR)
    # An asset cannot decline below nil.
    prorated = min(prorated, opening_wdv)

    return DepreciationResult(
        method=asset.method,
        original_cost=cost,
        effective_life_years=life,
        days_held_in_year=days_held,
        annual_rate=rate * 100,
        full_year_deduction=full_year,
        prorated_deduction=prorated,
        business_use_deduction=prorated * asset.business_use_fraction,
        opening_written_down_value=opening_wdv,
        closing_written_down_value=max(opening_wdv - prorated, ZERO),
    )


def can_instant_write_off(cost: Decimal, threshold: Decimal = INSTANT_WRITE_OFF_THRESHOLD) -> bool:
    return cost <= threshold


def should_use_low_value_pool(written_down_value: Decimal, threshold: Decimal = LOW_VALUE_POOL_THRESHOLD) -> bool:
    return written_down_value < threshold


def effective_life_for(asset_type: str) -> Decimal:
    return COMMON_EFFECTIVE_LIVES.get(asset_type.strip().lower(), DEFAULT_EFFECTIVE_LIFE)
