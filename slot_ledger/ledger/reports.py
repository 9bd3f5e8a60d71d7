from __future__ import annotations

import sqlite3
from datetime import date
from typing import Any, Dict, Optional

from slot_ledger.config import WageringConfig
from slot_ledger.domain.models import TIERS, Tier
from slot_ledger.errors import ValidationError
from slot_ledger.ledger.results import get_results
from slot_ledger.ledger.slots import find_slot
from slot_ledger.utils.time import parse_slot_date, parse_slot_hour

DEFAULT_AUDIT_LIMIT = WageringConfig().audit_default_limit
MAX_AUDIT_LIMIT = WageringConfig().audit_max_limit


def audit_query(
    conn: sqlite3.Connection,
    slot_date: str | date | None = None,
    slot_hour: int | str | None = None,
    agent_id: int | None = None,
    tier: Tier | str | None = None,
    limit: int | str | None = None,
    offset: int | str | None = 0,
    default_limit: int = DEFAULT_AUDIT_LIMIT,
    max_limit: int = MAX_AUDIT_LIMIT,
) -> Dict[str, Any]:
    """Page through wagers, newest activity first.

    ``limit`` is clamped to ``[1, max_limit]`` and falls back to
    ``default_limit`` when missing or not an integer; a bad ``offset``
    becomes 0. ``total`` counts every matching row, not just the page.
    """
    where: list[str] = []
    args: list[Any] = []
    if slot_date is not None and str(slot_date).strip():
        where.append("s.slot_date = ?")
        args.append(parse_slot_date(slot_date))
    if slot_hour is not None and str(slot_hour).strip():
        where.append("s.slot_hour = ?")
        args.append(parse_slot_hour(slot_hour))
    if agent_id is not None:
        if isinstance(agent_id, bool) or not str(agent_id).strip().isdigit():
            raise ValidationError("Invalid agent_id", agent_id=agent_id)
        where.append("w.agent_id = ?")
        args.append(int(agent_id))
    if tier is not None and str(tier).strip():
        where.append("w.tier = ?")
        args.append(Tier.parse(tier).value)
    where_sql = f"WHERE {' AND '.join(where)}" if where else ""

    page_limit = _clamp_limit(limit, default_limit, max_limit)
    page_offset = _coerce_offset(offset)

    rows = conn.execute(
        f"""
        SELECT w.id, w.agent_id, s.slot_date, s.slot_hour, w.tier, w.digit, cl.label,
               w.ticket_count, w.unit_price, w.total_stake, w.placed_by,
               w.created_at, w.updated_at
        FROM wagers w
        JOIN slots s ON s.id = w.slot_id
        LEFT JOIN content_sets cs ON cs.slot_id = w.slot_id AND cs.tier = w.tier
        LEFT JOIN content_labels cl ON cl.content_id = cs.id AND cl.digit = w.digit
        {where_sql}
        ORDER BY w.updated_at DESC, w.id DESC
        LIMIT ? OFFSET ?
        """,
        (*args, page_limit, page_offset),
    ).fetchall()
    total_row = conn.execute(
        f"""
        SELECT COUNT(1) AS total
        FROM wagers w
        JOIN slots s ON s.id = w.slot_id
        {where_sql}
        """,
        args,
    ).fetchone()

    return {
        "total": total_row["total"] if total_row else 0,
        "limit": page_limit,
        "offset": page_offset,
        "rows": [dict(row) for row in rows],
    }


def slot_matrix(conn: sqlite3.Connection, slot_date: str | date, slot_hour: int | str) -> Dict[str, Any]:
    """Tickets and revenue per digit and tier for one slot, plus published digits.

    A slot nobody has referenced yet yields an all-zero matrix and is not
    created.
    """
    slot_date = parse_slot_date(slot_date)
    slot_hour = parse_slot_hour(slot_hour)
    stats = {digit: {tier.value: {"tickets": 0, "revenue": 0} for tier in TIERS} for digit in range(10)}
    totals = {key: {"tickets": 0, "revenue": 0} for key in [*(tier.value for tier in TIERS), "ALL"]}
    published: Dict[str, Optional[Dict[str, Any]]] = {tier.value: None for tier in TIERS}

    slot = find_slot(conn, slot_date, slot_hour)
    if slot is not None:
        rows = conn.execute(
            """
            SELECT tier, digit, SUM(ticket_count) AS tickets, SUM(total_stake) AS revenue
            FROM wagers
            WHERE slot_id = ?
            GROUP BY tier, digit
            """,
            (slot.id,),
        ).fetchall()
        for row in rows:
            cell = stats[row["digit"]][row["tier"]]
            cell["tickets"] = row["tickets"] or 0
            cell["revenue"] = row["revenue"] or 0
            for key in (row["tier"], "ALL"):
                totals[key]["tickets"] += cell["tickets"]
                totals[key]["revenue"] += cell["revenue"]
        for tier, result in get_results(conn, slot.id).items():
            published[tier.value] = {
                "winning_digit": result.winning_digit,
                "label": result.label,
                "published_at": result.published_at,
            }

    return {
        "date": slot_date,
        "hour": slot_hour,
        "slot_id": slot.id if slot else None,
        "stats_by_digit": stats,
        "totals": totals,
        "published": published,
    }


def results_by_date(conn: sqlite3.Connection, slot_date: str | date) -> Dict[str, Any]:
    """Every slot of a day with each tier's winning digit and label, by hour."""
    slot_date = parse_slot_date(slot_date)
    slots = conn.execute(
        "SELECT id, slot_hour FROM slots WHERE slot_date = ? ORDER BY slot_hour",
        (slot_date,),
    ).fetchall()
    rows = []
    for slot in slots:
        row: Dict[str, Any] = {"hour": slot["slot_hour"]}
        results = get_results(conn, slot["id"])
        for tier in TIERS:
            result = results.get(tier)
            row[tier.value] = (
                {
                    "winning_digit": result.winning_digit,
                    "label": result.label,
                    "published_at": result.published_at,
                }
                if result
                else None
            )
        rows.append(row)
    return {"date": slot_date, "rows": rows}


def _clamp_limit(value: int | str | None, default_limit: int, max_limit: int) -> int:
    number = _as_int(value)
    if number is None:
        return default_limit
    return min(max(number, 1), max_limit)


def _coerce_offset(value: int | str | None) -> int:
    number = _as_int(value)
    if number is None or number < 0:
        return 0
    return number


def _as_int(value: int | str | None) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except ValueError:
        return None
