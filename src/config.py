from __future__ import annotations

from decimal import Decimal
from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
DB_FILE = ARTIFACTS_DIR / "tax_position.db"


class AppSettings(BaseSettings):
    db_file: Path = DB_FILE
    wfh_fixed_rate: Decimal = Decimal("0.67")
    cgt_discount_days: int = 365
    cgt_discount_rate: Decimal = Decimal("0.5")
    medicare_levy_threshold: Decimal = Decimal(26000)
    strict_disposal_matching: bool = False

    model_config = SettingsConfigDict(env_prefix="TAX_", env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()
