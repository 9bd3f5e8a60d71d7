from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime
from typing import Any, Dict, Sequence

from slot_ledger.content import library
from slot_ledger.content.oracle import generate_content_for_slot
from slot_ledger.db import store
from slot_ledger.domain.models import TIERS, Actor, ContentSet, SourceKind, Tier, parse_digit
from slot_ledger.errors import ConflictError, ContentLockedError, ValidationError
from slot_ledger.ledger.slots import ensure_slot, get_slot
from slot_ledger.utils.time import DEFAULT_TIMEZONE, current_slot_key, utc_now_iso

logger = logging.getLogger(__name__)

LABEL_COUNT = 10
MIN_NARRATIVE_CHARS = 10


def ensure_content_for_slot(conn: sqlite3.Connection, slot_date: str | date, slot_hour: int) -> int:
    """Fill every tier of the slot that has no content with generated content.

    Returns how many tiers were filled. Losing a race against another
    backfill for the same slot returns 0: the winner wrote identical content.
    """
    slot = ensure_slot(conn, slot_date, slot_hour)
    if not _missing_tiers(conn, slot.id):
        return 0

    generated = generate_content_for_slot(slot.date, slot.hour)
    created = 0
    try:
        with store.transaction(conn):
            for tier in _missing_tiers(conn, slot.id):
                item = generated[tier]
                _insert_content(
                    conn,
                    slot.id,
                    tier,
                    item.labels,
                    item.narrative,
                    SourceKind.GENERATED,
                    item.suggested_digit,
                    template_id=item.template_id,
                )
                created += 1
    except (sqlite3.IntegrityError, ConflictError):
        logger.info("Content for slot %s %02d filled concurrently", slot.date, slot.hour)
        return 0

    if created:
        logger.info("Generated content for slot=%s (%s %02d) tiers=%d", slot.id, slot.date, slot.hour, created)
    return created


def ensure_content_for_current_slot(
    conn: sqlite3.Connection,
    tz_name: str = DEFAULT_TIMEZONE,
    now: datetime | None = None,
) -> int:
    slot_date, slot_hour = current_slot_key(tz_name, now)
    return ensure_content_for_slot(conn, slot_date, slot_hour)


def save_curated_content(
    conn: sqlite3.Connection,
    slot_id: int,
    tier: Tier | str,
    labels: Sequence[str],
    narrative: str,
    suggested_digit: int,
    actor: Actor,
) -> ContentSet:
    """Store hand-written content for one tier of a slot.

    Allowed only while the slot has neither wagers nor results. Generated
    content for the tier is replaced; existing curated content is not.
    """
    tier = Tier.parse(tier)
    cleaned = _validate_labels(labels)
    narrative = str(narrative or "").strip()
    if len(narrative) < MIN_NARRATIVE_CHARS:
        raise ValidationError(f"Narrative must be at least {MIN_NARRATIVE_CHARS} characters")
    suggested_digit = parse_digit(suggested_digit, "suggested_digit")

    slot = get_slot(conn, slot_id)
    with store.transaction(conn):
        _ensure_unlocked(conn, slot.id)
        existing = conn.execute(
            "SELECT id, source_kind FROM content_sets WHERE slot_id = ? AND tier = ?",
            (slot.id, tier.value),
        ).fetchone()
        if existing is not None:
            if existing["source_kind"] == SourceKind.CURATED.value:
                raise ConflictError("Curated content already exists for this tier", tier=tier.value)
            conn.execute("DELETE FROM content_sets WHERE id = ?", (existing["id"],))
        _insert_content(
            conn,
            slot.id,
            tier,
            cleaned,
            narrative,
            SourceKind.CURATED,
            suggested_digit,
            created_by=actor.id,
        )
        saved = get_content(conn, slot.id)[tier]

    logger.info(
        "Curated content saved slot=%s tier=%s by actor=%s replaced_generated=%s",
        slot.id,
        tier.value,
        actor.id,
        existing is not None,
    )
    return saved


def get_content(conn: sqlite3.Connection, slot_id: int) -> Dict[Tier, ContentSet]:
    rows = conn.execute(
        """
        SELECT id, slot_id, tier, source_kind, narrative, suggested_digit, template_id, created_by, created_at
        FROM content_sets
        WHERE slot_id = ?
        """,
        (slot_id,),
    ).fetchall()
    out: Dict[Tier, ContentSet] = {}
    for row in rows:
        labels = conn.execute(
            "SELECT label FROM content_labels WHERE content_id = ? ORDER BY digit",
            (row["id"],),
        ).fetchall()
        out[Tier(row["tier"])] = ContentSet(
            slot_id=row["slot_id"],
            tier=Tier(row["tier"]),
            labels=[label["label"] for label in labels],
            narrative=row["narrative"],
            source_kind=SourceKind(row["source_kind"]),
            suggested_digit=row["suggested_digit"],
            template_id=row["template_id"],
            created_by=row["created_by"],
            created_at=row["created_at"],
        )
    return {tier: out[tier] for tier in TIERS if tier in out}


def list_library() -> list[dict[str, Any]]:
    return library.list_library()


def _missing_tiers(conn: sqlite3.Connection, slot_id: int) -> list[Tier]:
    rows = conn.execute("SELECT tier FROM content_sets WHERE slot_id = ?", (slot_id,)).fetchall()
    present = {row["tier"] for row in rows}
    return [tier for tier in TIERS if tier.value not in present]


def _ensure_unlocked(conn: sqlite3.Connection, slot_id: int) -> None:
    row = conn.execute(
        """
        SELECT
            (SELECT COUNT(*) FROM wagers WHERE slot_id = ?) AS wagers,
            (SELECT COUNT(*) FROM results WHERE slot_id = ?) AS results
        """,
        (slot_id, slot_id),
    ).fetchone()
    if row["wagers"] or row["results"]:
        raise ContentLockedError(
            "Content is locked once the slot has wagers or results",
            wagers=row["wagers"],
            results=row["results"],
        )


def _validate_labels(labels: Sequence[str]) -> list[str]:
    if isinstance(labels, str) or labels is None:
        raise ValidationError(f"Exactly {LABEL_COUNT} labels are required")
    items = list(labels)
    if len(items) != LABEL_COUNT:
        raise ValidationError(f"Exactly {LABEL_COUNT} labels are required", count=len(items))
    cleaned = [str(item or "").strip() for item in items]
    empty = [index for index, item in enumerate(cleaned) if not item]
    if empty:
        raise ValidationError("Labels must be non-empty", digits=empty)
    return cleaned


def _insert_content(
    conn: sqlite3.Connection,
    slot_id: int,
    tier: Tier,
    labels: Sequence[str],
    narrative: str,
    source_kind: SourceKind,
    suggested_digit: int,
    template_id: str | None = None,
    created_by: int | None = None,
) -> int:
    cursor = conn.execute(
        """
        INSERT INTO content_sets
        (slot_id, tier, source_kind, narrative, suggested_digit, template_id, created_by, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            slot_id,
            tier.value,
            source_kind.value,
            narrative,
            suggested_digit,
            template_id,
            created_by,
            utc_now_iso(),
        ),
    )
    content_id = int(cursor.lastrowid)
    conn.executemany(
        "INSERT INTO content_labels (content_id, digit, label) VALUES (?, ?, ?)",
        [(content_id, digit, label) for digit, label in enumerate(labels)],
    )
    return content_id
