from __future__ import annotations

import logging
import sqlite3
from typing import Dict, Iterable, Mapping

from slot_ledger.db import store
from slot_ledger.domain.models import TIERS, Actor, AuditEntry, Result, Tier, parse_digit
from slot_ledger.errors import (
    AlreadyPublishedError,
    ConflictError,
    ContentMissingError,
    NotFoundError,
    ValidationError,
)
from slot_ledger.ledger.slots import get_slot
from slot_ledger.utils.time import utc_now_iso

logger = logging.getLogger(__name__)

_AMEND_SQL = """
INSERT INTO results (slot_id, tier, winning_digit, published_by, published_at)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT (slot_id, tier) DO UPDATE SET
    winning_digit = excluded.winning_digit,
    published_by = excluded.published_by,
    published_at = excluded.published_at
"""


def publish(
    conn: sqlite3.Connection,
    slot_id: int,
    tier: Tier | str,
    winning_digit: int,
    actor: Actor,
) -> Result:
    """Publish the winning digit for one tier, closing it for wagers.

    The result and its audit entry are written together or not at all.
    """
    tier = Tier.parse(tier)
    winning_digit = parse_digit(winning_digit, "winning_digit")
    slot = get_slot(conn, slot_id)

    try:
        with store.transaction(conn):
            _ensure_content(conn, slot.id, [tier])
            existing = _fetch_results(conn, slot.id, [tier])
            if existing:
                raise AlreadyPublishedError(
                    "Result already published, use amend",
                    existing=_describe(existing),
                )
            published_at = utc_now_iso()
            conn.execute(
                """
                INSERT INTO results (slot_id, tier, winning_digit, published_by, published_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (slot.id, tier.value, winning_digit, actor.id, published_at),
            )
            _append_audit(conn, actor.id, slot.id, tier, winning_digit, "publish", published_at)
            result = _fetch_results(conn, slot.id, [tier])[tier]
    except ConflictError:
        raise AlreadyPublishedError("Result already published, use amend", existing=[tier.value]) from None

    logger.info(
        "Published slot=%s (%s %02d) tier=%s digit=%s by actor=%s",
        slot.id,
        slot.date,
        slot.hour,
        tier.value,
        winning_digit,
        actor.id,
    )
    return result


def publish_batch(
    conn: sqlite3.Connection,
    slot_id: int,
    digits: Mapping[Tier | str, int],
    actor: Actor,
) -> Dict[Tier, Result]:
    """Publish all three tiers of a slot at once.

    Any already published tier or any tier without content rejects the
    whole batch; nothing is written in that case.
    """
    parsed = _parse_mapping(digits, "winning_digit")
    missing = [tier.value for tier in TIERS if tier not in parsed]
    if missing:
        raise ValidationError("All three tiers are required", missing=missing)
    slot = get_slot(conn, slot_id)

    try:
        with store.transaction(conn):
            existing = _fetch_results(conn, slot.id, TIERS)
            if existing:
                raise AlreadyPublishedError(
                    "Result already published for some tiers, use amend",
                    existing=_describe(existing),
                )
            _ensure_content(conn, slot.id, TIERS)
            published_at = utc_now_iso()
            for tier in TIERS:
                conn.execute(
                    """
                    INSERT INTO results (slot_id, tier, winning_digit, published_by, published_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (slot.id, tier.value, parsed[tier], actor.id, published_at),
                )
                _append_audit(conn, actor.id, slot.id, tier, parsed[tier], "publish", published_at)
            results = _fetch_results(conn, slot.id, TIERS)
    except ConflictError:
        raise AlreadyPublishedError(
            "Result already published for some tiers, use amend",
            existing=[tier.value for tier in TIERS],
        ) from None

    logger.info(
        "Published batch slot=%s (%s %02d) digits=%s by actor=%s",
        slot.id,
        slot.date,
        slot.hour,
        {tier.value: digit for tier, digit in parsed.items()},
        actor.id,
    )
    return results


def amend(
    conn: sqlite3.Connection,
    slot_id: int,
    digits: Mapping[Tier | str, int],
    actor: Actor,
) -> Dict[Tier, Result]:
    """Set the winning digit for the named tiers whether or not they were published.

    Every call appends one audit entry per named tier, even when the digit
    is unchanged.
    """
    parsed = _parse_mapping(digits, "winning_digit")
    slot = get_slot(conn, slot_id)
    tiers = [tier for tier in TIERS if tier in parsed]

    with store.transaction(conn):
        _ensure_content(conn, slot.id, tiers)
        published_at = utc_now_iso()
        for tier in tiers:
            conn.execute(_AMEND_SQL, (slot.id, tier.value, parsed[tier], actor.id, published_at))
            _append_audit(conn, actor.id, slot.id, tier, parsed[tier], "amend", published_at)
        results = _fetch_results(conn, slot.id, tiers)

    logger.warning(
        "Amended slot=%s (%s %02d) digits=%s by actor=%s",
        slot.id,
        slot.date,
        slot.hour,
        {tier.value: parsed[tier] for tier in tiers},
        actor.id,
    )
    return results


def delete_results(conn: sqlite3.Connection, slot_id: int) -> int:
    """Remove every published result of a slot. Audit entries stay."""
    with store.transaction(conn):
        cursor = conn.execute("DELETE FROM results WHERE slot_id = ?", (slot_id,))
        deleted = cursor.rowcount or 0
        if not deleted:
            raise NotFoundError("No results to delete", slot_id=slot_id)
    logger.warning("Deleted %d results for slot=%s", deleted, slot_id)
    return deleted


def get_results(conn: sqlite3.Connection, slot_id: int) -> Dict[Tier, Result]:
    return _fetch_results(conn, slot_id, TIERS)


def audit_history(conn: sqlite3.Connection, slot_id: int, tier: Tier | str | None = None) -> list[AuditEntry]:
    params: list[object] = [slot_id]
    sql = "SELECT id, actor_id, slot_id, tier, digit, action, created_at FROM audit_entries WHERE slot_id = ?"
    if tier is not None:
        sql += " AND tier = ?"
        params.append(Tier.parse(tier).value)
    sql += " ORDER BY id ASC"
    rows = conn.execute(sql, params).fetchall()
    return [
        AuditEntry(
            id=row["id"],
            actor_id=row["actor_id"],
            slot_id=row["slot_id"],
            tier=Tier(row["tier"]),
            digit=row["digit"],
            action=row["action"],
            timestamp=row["created_at"],
        )
        for row in rows
    ]


def _parse_mapping(digits: Mapping[Tier | str, int], field: str) -> Dict[Tier, int]:
    if not isinstance(digits, Mapping) or not digits:
        raise ValidationError("At least one tier is required")
    parsed: Dict[Tier, int] = {}
    for raw_tier, raw_digit in digits.items():
        tier = Tier.parse(raw_tier)
        if tier in parsed:
            raise ValidationError("Duplicate tier", tier=tier.value)
        parsed[tier] = parse_digit(raw_digit, field)
    return parsed


def _ensure_content(conn: sqlite3.Connection, slot_id: int, tiers: Iterable[Tier]) -> None:
    rows = conn.execute("SELECT tier FROM content_sets WHERE slot_id = ?", (slot_id,)).fetchall()
    present = {row["tier"] for row in rows}
    missing = [tier.value for tier in tiers if tier.value not in present]
    if missing:
        raise ContentMissingError("Content is missing for some tiers", missing=missing)


def _append_audit(
    conn: sqlite3.Connection,
    actor_id: int,
    slot_id: int,
    tier: Tier,
    digit: int,
    action: str,
    created_at: str,
) -> None:
    conn.execute(
        """
        INSERT INTO audit_entries (actor_id, slot_id, tier, digit, action, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (actor_id, slot_id, tier.value, digit, action, created_at),
    )


def _fetch_results(conn: sqlite3.Connection, slot_id: int, tiers: Iterable[Tier]) -> Dict[Tier, Result]:
    rows = conn.execute(
        """
        SELECT r.slot_id, r.tier, r.winning_digit, r.published_by, r.published_at, cl.label
        FROM results r
        LEFT JOIN content_sets cs ON cs.slot_id = r.slot_id AND cs.tier = r.tier
        LEFT JOIN content_labels cl ON cl.content_id = cs.id AND cl.digit = r.winning_digit
        WHERE r.slot_id = ?
        """,
        (slot_id,),
    ).fetchall()
    by_tier = {
        Tier(row["tier"]): Result(
            slot_id=row["slot_id"],
            tier=Tier(row["tier"]),
            winning_digit=row["winning_digit"],
            published_by_actor_id=row["published_by"],
            published_at=row["published_at"],
            label=row["label"],
        )
        for row in rows
    }
    return {tier: by_tier[tier] for tier in tiers if tier in by_tier}


def _describe(results: Mapping[Tier, Result]) -> list[dict[str, object]]:
    return [{"tier": tier.value, "winning_digit": result.winning_digit} for tier, result in results.items()]
