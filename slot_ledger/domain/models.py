from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel

from slot_ledger.errors import ValidationError


class Tier(str, Enum):
    """The three guessing rounds of a slot, lowest priced first."""

    SILVER = "SILVER"
    GOLD = "GOLD"
    DIAMOND = "DIAMOND"

    @classmethod
    def parse(cls, value: "Tier | str") -> "Tier":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            raise ValidationError("Invalid tier", tier=value) from None


TIERS: tuple[Tier, ...] = (Tier.SILVER, Tier.GOLD, Tier.DIAMOND)


class Role(str, Enum):
    OPERATOR = "OPERATOR"
    SUPERVISOR = "SUPERVISOR"
    AGENT = "AGENT"


class SourceKind(str, Enum):
    CURATED = "curated"
    GENERATED = "generated"


class Actor(BaseModel):
    id: int
    role: Role


class Slot(BaseModel):
    id: int
    date: str
    hour: int


class Wager(BaseModel):
    agent_id: int
    slot_id: int
    tier: Tier
    digit: int
    ticket_count: int
    unit_price: int
    total_stake: int
    placed_by_actor_id: int
    first_placed_at: str
    last_updated_at: str


class WagerEntry(BaseModel):
    tier: Tier
    digit: int
    ticket_count: int


class Result(BaseModel):
    slot_id: int
    tier: Tier
    winning_digit: int
    published_by_actor_id: int
    published_at: str
    label: Optional[str] = None


class AuditEntry(BaseModel):
    id: int
    actor_id: int
    slot_id: int
    tier: Tier
    digit: int
    action: str
    timestamp: str


class ContentSet(BaseModel):
    slot_id: int
    tier: Tier
    labels: List[str]
    narrative: str
    source_kind: SourceKind
    suggested_digit: int
    template_id: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[str] = None


class GeneratedContent(BaseModel):
    template_id: str
    template_name: str
    narrative: str
    labels: List[str]
    suggested_digit: int


LockStatus = Dict[Tier, bool]


def parse_digit(value: int | str, field: str = "digit") -> int:
    number = _strict_int(value, field)
    if number < 0 or number > 9:
        raise ValidationError(f"{field} must be 0-9", **{field: value})
    return number


def parse_positive_int(value: int | str, field: str) -> int:
    number = _strict_int(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be a positive integer", **{field: value})
    return number


def _strict_int(value: int | str, field: str) -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be an integer", **{field: value})
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer", **{field: value})
        return int(value)
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{field} must be an integer", **{field: value}) from None
