from __future__ import annotations

import sys
from pathlib import Path

from slot_ledger.config import load_config
from slot_ledger.db import store
from slot_ledger.domain.models import TIERS
from slot_ledger.ledger.reports import audit_query, slot_matrix
from slot_ledger.pipeline.run_backfill import resolve_db_path
from slot_ledger.utils.time import current_slot_key


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    root = Path(__file__).resolve().parents[2]
    config = load_config(root / "config.yaml")
    db_path = resolve_db_path(root, config.store.db_path)

    if len(args) >= 2:
        slot_date, slot_hour = args[0], int(args[1])
    else:
        slot_date, slot_hour = current_slot_key(config.schedule.timezone)

    conn = store.get_connection(db_path, config.store.busy_timeout_s)
    store.init_db(conn)
    matrix = slot_matrix(conn, slot_date, slot_hour)
    recent = audit_query(
        conn,
        slot_date=slot_date,
        slot_hour=slot_hour,
        limit=args[2] if len(args) >= 3 else None,
        default_limit=config.wagering.audit_default_limit,
        max_limit=config.wagering.audit_max_limit,
    )
    conn.close()

    print(f"slot: {matrix['date']} {matrix['hour']:02d} (id={matrix['slot_id'] or 'none'})")
    print("digit " + " ".join(f"{tier.value:>16}" for tier in TIERS))
    for digit, cells in matrix["stats_by_digit"].items():
        print(
            f"{digit:>5} "
            + " ".join(
                f"{_fmt_cell(cells[tier.value]['tickets'], cells[tier.value]['revenue']):>16}" for tier in TIERS
            )
        )
    totals = matrix["totals"]
    print(
        "totals: "
        + " ".join(f"{key}={totals[key]['tickets']}/{totals[key]['revenue']}" for key in [*(t.value for t in TIERS), "ALL"])
    )
    print("published:")
    for tier in TIERS:
        result = matrix["published"][tier.value]
        if result is None:
            print(f"- {tier.value} n/a")
        else:
            print(f"- {tier.value} digit={result['winning_digit']} label={result['label'] or 'n/a'}")
    print(f"recent wagers: {len(recent['rows'])} of {recent['total']}")
    for row in recent["rows"]:
        print(
            f"- agent={row['agent_id']} {row['tier']} digit={row['digit']} "
            f"tickets={row['ticket_count']} stake={row['total_stake']} at={row['updated_at']}"
        )


def _fmt_cell(tickets: int, revenue: int) -> str:
    if not tickets:
        return "-"
    return f"{tickets}t/{revenue}"


if __name__ == "__main__":
    main()
