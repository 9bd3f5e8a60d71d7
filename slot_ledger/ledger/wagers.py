from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime
from typing import Any, Iterable, Mapping

from slot_ledger.config import PricingConfig, WageringConfig
from slot_ledger.db import store
from slot_ledger.domain.models import (
    Actor,
    LockStatus,
    Tier,
    Wager,
    WagerEntry,
    parse_digit,
    parse_positive_int,
)
from slot_ledger.errors import ValidationError
from slot_ledger.ledger import gate
from slot_ledger.ledger.slots import find_slot, get_slot
from slot_ledger.utils.time import DEFAULT_TIMEZONE, parse_slot_date, utc_now_iso

logger = logging.getLogger(__name__)

MAX_BATCH_ENTRIES = WageringConfig().max_batch_entries
DEFAULT_PRICES = PricingConfig().as_dict()

_UPSERT_SQL = """
INSERT INTO wagers
(agent_id, slot_id, tier, digit, ticket_count, unit_price, total_stake, placed_by, created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT (agent_id, slot_id, tier, digit) DO UPDATE SET
    ticket_count = wagers.ticket_count + excluded.ticket_count,
    total_stake = wagers.total_stake + excluded.total_stake,
    unit_price = excluded.unit_price,
    placed_by = excluded.placed_by,
    updated_at = excluded.updated_at
"""


def place_wager(
    conn: sqlite3.Connection,
    actor: Actor,
    agent_id: int,
    slot_id: int,
    tier: Tier | str,
    digit: int,
    ticket_count: int,
    unit_price: int | None = None,
    tz_name: str = DEFAULT_TIMEZONE,
    now: datetime | None = None,
) -> Wager:
    """Add ``ticket_count`` tickets on ``digit`` to the agent's row for (slot, tier).

    The first wager on a key inserts the row; later ones add tickets and
    stake to it and take over the latest unit price and placing actor.
    Without ``unit_price`` the tier's default price applies.
    """
    tier = Tier.parse(tier)
    digit = parse_digit(digit)
    ticket_count = parse_positive_int(ticket_count, "ticket_count")
    if unit_price is None:
        unit_price = DEFAULT_PRICES[tier]
    unit_price = parse_positive_int(unit_price, "unit_price")

    slot = get_slot(conn, slot_id)
    gate.ensure_current(actor, slot, tz_name, now)

    with store.transaction(conn):
        gate.ensure_open(conn, slot.id, [tier])
        _upsert(conn, agent_id, slot.id, tier, digit, ticket_count, unit_price, actor.id)
        wager = _fetch_wager(conn, agent_id, slot.id, tier, digit)

    logger.info(
        "Wager placed agent=%s slot=%s tier=%s digit=%s tickets=+%s total_tickets=%s total_stake=%s",
        agent_id,
        slot.id,
        tier.value,
        digit,
        ticket_count,
        wager.ticket_count,
        wager.total_stake,
    )
    return wager


def place_wager_batch(
    conn: sqlite3.Connection,
    actor: Actor,
    agent_id: int,
    slot_id: int,
    entries: Iterable[WagerEntry | Mapping[str, Any]],
    prices: Mapping[Tier, int] | None = None,
    tz_name: str = DEFAULT_TIMEZONE,
    now: datetime | None = None,
    max_entries: int = MAX_BATCH_ENTRIES,
) -> list[Wager]:
    """Apply several wagers for one agent and slot, all or nothing.

    If any tier named by the entries is already closed the whole batch is
    rejected with the closed tiers listed, and nothing is written. Tiers
    missing from ``prices`` are charged their default price.
    """
    parsed = _parse_entries(entries, max_entries)
    tier_prices = dict(DEFAULT_PRICES)
    for tier, price in (prices or {}).items():
        if price is not None:
            tier_prices[Tier.parse(tier)] = price
    unit_prices = {
        entry.tier: parse_positive_int(tier_prices[entry.tier], f"{entry.tier.value}_price") for entry in parsed
    }

    slot = get_slot(conn, slot_id)
    gate.ensure_current(actor, slot, tz_name, now)

    with store.transaction(conn):
        gate.ensure_open(conn, slot.id, [entry.tier for entry in parsed])
        for entry in parsed:
            _upsert(
                conn,
                agent_id,
                slot.id,
                entry.tier,
                entry.digit,
                entry.ticket_count,
                unit_prices[entry.tier],
                actor.id,
            )
        keys = list(dict.fromkeys((entry.tier, entry.digit) for entry in parsed))
        wagers = [_fetch_wager(conn, agent_id, slot.id, tier, digit) for tier, digit in keys]

    logger.info("Wager batch applied agent=%s slot=%s entries=%d", agent_id, slot.id, len(parsed))
    return wagers


def lock_status(conn: sqlite3.Connection, agent_id: int, slot_id: int) -> LockStatus:
    """Per-tier lock flags for the agent's view of a slot.

    Locks are per tier and shared by every agent; ``agent_id`` does not
    change the result.
    """
    return gate.lock_map(conn, slot_id)


def lock_status_for(conn: sqlite3.Connection, slot_date: str | date, slot_hour: int) -> LockStatus:
    slot = find_slot(conn, slot_date, slot_hour)
    if slot is None:
        return {tier: False for tier in Tier}
    return gate.lock_map(conn, slot.id)


def my_wagers(conn: sqlite3.Connection, agent_id: int, slot_id: int) -> list[dict[str, Any]]:
    rows = conn.execute(
        """
        SELECT w.tier, w.digit, cl.label,
               SUM(w.ticket_count) AS ticket_count,
               MAX(w.unit_price) AS unit_price,
               SUM(w.total_stake) AS total_stake,
               MIN(w.created_at) AS first_placed_at,
               MAX(w.updated_at) AS last_updated_at
        FROM wagers w
        LEFT JOIN content_sets cs ON cs.slot_id = w.slot_id AND cs.tier = w.tier
        LEFT JOIN content_labels cl ON cl.content_id = cs.id AND cl.digit = w.digit
        WHERE w.agent_id = ? AND w.slot_id = ?
        GROUP BY w.tier, w.digit
        """,
        (agent_id, slot_id),
    ).fetchall()
    results = []
    for row in rows:
        results.append(
            {
                "tier": Tier(row["tier"]),
                "digit": row["digit"],
                "label": row["label"],
                "ticket_count": row["ticket_count"],
                "unit_price": row["unit_price"],
                "total_stake": row["total_stake"],
                "first_placed_at": row["first_placed_at"],
                "last_updated_at": row["last_updated_at"],
            }
        )
    tier_order = {tier: index for index, tier in enumerate(Tier)}
    return sorted(results, key=lambda item: (tier_order[item["tier"]], item["digit"]))


def purge_wagers_by_date_range(conn: sqlite3.Connection, from_date: str | date, to_date: str | date) -> int:
    from_date = parse_slot_date(from_date)
    to_date = parse_slot_date(to_date)
    if from_date > to_date:
        raise ValidationError("from_date must be <= to_date", from_date=from_date, to_date=to_date)
    with store.transaction(conn):
        cursor = conn.execute(
            """
            DELETE FROM wagers
            WHERE slot_id IN (SELECT id FROM slots WHERE slot_date BETWEEN ? AND ?)
            """,
            (from_date, to_date),
        )
    deleted = cursor.rowcount or 0
    logger.warning("Purged %d wagers for slots %s..%s", deleted, from_date, to_date)
    return deleted


def purge_wagers_for_slot(conn: sqlite3.Connection, slot_id: int, tier: Tier | str | None = None) -> int:
    slot = get_slot(conn, slot_id)
    with store.transaction(conn):
        if tier is None:
            cursor = conn.execute("DELETE FROM wagers WHERE slot_id = ?", (slot.id,))
        else:
            cursor = conn.execute(
                "DELETE FROM wagers WHERE slot_id = ? AND tier = ?",
                (slot.id, Tier.parse(tier).value),
            )
    deleted = cursor.rowcount or 0
    logger.warning(
        "Purged %d wagers for slot=%s tier=%s",
        deleted,
        slot.id,
        Tier.parse(tier).value if tier is not None else "ALL",
    )
    return deleted


def _parse_entries(entries: Iterable[WagerEntry | Mapping[str, Any]], max_entries: int) -> list[WagerEntry]:
    items = list(entries or [])
    if not items:
        raise ValidationError("At least one wager entry is required")
    if len(items) > max_entries:
        raise ValidationError(f"Too many entries (max {max_entries})", count=len(items))
    parsed: list[WagerEntry] = []
    for item in items:
        if isinstance(item, WagerEntry):
            raw_tier, raw_digit, raw_count = item.tier, item.digit, item.ticket_count
        elif isinstance(item, Mapping):
            raw_tier, raw_digit, raw_count = item.get("tier"), item.get("digit"), item.get("ticket_count")
        else:
            raise ValidationError("Invalid wager entry", entry=repr(item))
        parsed.append(
            WagerEntry(
                tier=Tier.parse(raw_tier),
                digit=parse_digit(raw_digit),
                ticket_count=parse_positive_int(raw_count, "ticket_count"),
            )
        )
    return parsed


def _upsert(
    conn: sqlite3.Connection,
    agent_id: int,
    slot_id: int,
    tier: Tier,
    digit: int,
    ticket_count: int,
    unit_price: int,
    actor_id: int,
) -> None:
    now = utc_now_iso()
    conn.execute(
        _UPSERT_SQL,
        (
            agent_id,
            slot_id,
            tier.value,
            digit,
            ticket_count,
            unit_price,
            ticket_count * unit_price,
            actor_id,
            now,
            now,
        ),
    )


def _fetch_wager(conn: sqlite3.Connection, agent_id: int, slot_id: int, tier: Tier, digit: int) -> Wager:
    row = conn.execute(
        """
        SELECT agent_id, slot_id, tier, digit, ticket_count, unit_price, total_stake,
               placed_by, created_at, updated_at
        FROM wagers
        WHERE agent_id = ? AND slot_id = ? AND tier = ? AND digit = ?
        """,
        (agent_id, slot_id, tier.value, digit),
    ).fetchone()
    return Wager(
        agent_id=row["agent_id"],
        slot_id=row["slot_id"],
        tier=Tier(row["tier"]),
        digit=row["digit"],
        ticket_count=row["ticket_count"],
        unit_price=row["unit_price"],
        total_stake=row["total_stake"],
        placed_by_actor_id=row["placed_by"],
        first_placed_at=row["created_at"],
        last_updated_at=row["updated_at"],
    )
