from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import BaseModel

from slot_ledger.domain.models import Tier
from slot_ledger.utils.time import DEFAULT_TIMEZONE


class StoreConfig(BaseModel):
    db_path: str = "data/slot_ledger.sqlite"
    busy_timeout_s: float = 5.0


class ScheduleConfig(BaseModel):
    timezone: str = DEFAULT_TIMEZONE
    backfill_interval_s: int = 30


class PricingConfig(BaseModel):
    SILVER: int = 11
    GOLD: int = 55
    DIAMOND: int = 110

    def unit_price(self, tier: Tier) -> int:
        return int(getattr(self, tier.value))

    def as_dict(self) -> dict[Tier, int]:
        return {tier: self.unit_price(tier) for tier in Tier}


class WageringConfig(BaseModel):
    max_batch_entries: int = 60
    audit_default_limit: int = 100
    audit_max_limit: int = 500


class AppConfig(BaseModel):
    store: StoreConfig = StoreConfig()
    schedule: ScheduleConfig = ScheduleConfig()
    pricing: PricingConfig = PricingConfig()
    wagering: WageringConfig = WageringConfig()


def load_config(path: str | Path) -> AppConfig:
    data: Dict[str, Any] = {}
    config_path = Path(path)
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle)
            if isinstance(loaded, dict):
                data = loaded
    pricing = data.get("pricing")
    if isinstance(pricing, dict):
        data["pricing"] = {str(key).upper(): value for key, value in pricing.items()}
    return AppConfig(**data)
