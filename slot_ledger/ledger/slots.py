from __future__ import annotations

import logging
import sqlite3
from datetime import date

from slot_ledger.db import store
from slot_ledger.domain.models import Slot
from slot_ledger.errors import ConflictError, NotFoundError, StoreError
from slot_ledger.utils.time import parse_slot_date, parse_slot_hour, utc_now_iso

logger = logging.getLogger(__name__)


def ensure_slot(conn: sqlite3.Connection, slot_date: str | date, slot_hour: int | str) -> Slot:
    """Return the slot for (date, hour), creating it on first reference.

    A concurrent creator that wins the insert is not an error: the row is
    re-read and the winner's id returned.
    """
    slot_date = parse_slot_date(slot_date)
    slot_hour = parse_slot_hour(slot_hour)

    existing = find_slot(conn, slot_date, slot_hour)
    if existing is not None:
        return existing

    try:
        with store.transaction(conn):
            conn.execute(
                "INSERT INTO slots (slot_date, slot_hour, created_at) VALUES (?, ?, ?)",
                (slot_date, slot_hour, utc_now_iso()),
            )
    except (sqlite3.IntegrityError, ConflictError):
        logger.debug("Slot %s %02d created concurrently", slot_date, slot_hour)

    slot = find_slot(conn, slot_date, slot_hour)
    if slot is None:
        raise StoreError("Storage failure")
    return slot


def find_slot(conn: sqlite3.Connection, slot_date: str | date, slot_hour: int | str) -> Slot | None:
    slot_date = parse_slot_date(slot_date)
    slot_hour = parse_slot_hour(slot_hour)
    row = conn.execute(
        "SELECT id, slot_date, slot_hour FROM slots WHERE slot_date = ? AND slot_hour = ?",
        (slot_date, slot_hour),
    ).fetchone()
    return _to_slot(row) if row else None


def get_slot(conn: sqlite3.Connection, slot_id: int) -> Slot:
    row = conn.execute(
        "SELECT id, slot_date, slot_hour FROM slots WHERE id = ?",
        (slot_id,),
    ).fetchone()
    if not row:
        raise NotFoundError("Slot not found", slot_id=slot_id)
    return _to_slot(row)


def _to_slot(row: sqlite3.Row) -> Slot:
    return Slot(id=row["id"], date=row["slot_date"], hour=row["slot_hour"])
