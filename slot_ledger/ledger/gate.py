from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Iterable

from slot_ledger.domain.models import TIERS, Actor, LockStatus, Role, Slot, Tier
from slot_ledger.errors import SlotClosedError, SlotNotCurrentError
from slot_ledger.utils.time import current_slot_key


def closed_tiers(conn: sqlite3.Connection, slot_id: int, tiers: Iterable[Tier] = TIERS) -> list[Tier]:
    wanted = list(dict.fromkeys(Tier.parse(tier) for tier in tiers))
    if not wanted:
        return []
    placeholders = ",".join("?" for _ in wanted)
    rows = conn.execute(
        f"SELECT tier FROM results WHERE slot_id = ? AND tier IN ({placeholders})",
        (slot_id, *[tier.value for tier in wanted]),
    ).fetchall()
    published = {row["tier"] for row in rows}
    return [tier for tier in wanted if tier.value in published]


def is_closed(conn: sqlite3.Connection, slot_id: int, tier: Tier) -> bool:
    return bool(closed_tiers(conn, slot_id, [tier]))


def lock_map(conn: sqlite3.Connection, slot_id: int) -> LockStatus:
    closed = set(closed_tiers(conn, slot_id))
    return {tier: tier in closed for tier in TIERS}


def ensure_open(conn: sqlite3.Connection, slot_id: int, tiers: Iterable[Tier]) -> None:
    closed = closed_tiers(conn, slot_id, tiers)
    if closed:
        raise SlotClosedError(
            "SLOT CLOSED: result already published",
            closed=[tier.value for tier in closed],
        )


def ensure_current(actor: Actor, slot: Slot, tz_name: str, now: datetime | None = None) -> None:
    """Field agents may only play the slot open right now in ``tz_name``."""
    if actor.role != Role.AGENT:
        return
    current_date, current_hour = current_slot_key(tz_name, now)
    if slot.date != current_date or slot.hour != current_hour:
        raise SlotNotCurrentError(
            "SLOT CLOSED: agents can only play the current slot",
            current_date=current_date,
            current_hour=current_hour,
        )
