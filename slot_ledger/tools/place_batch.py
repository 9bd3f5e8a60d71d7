from __future__ import annotations

import logging
import sqlite3
import sys
from pathlib import Path
from typing import Any, Dict

import yaml

from slot_ledger.config import AppConfig, load_config
from slot_ledger.db import store
from slot_ledger.domain.models import Actor, Wager
from slot_ledger.errors import LedgerError, ValidationError
from slot_ledger.ledger.slots import ensure_slot
from slot_ledger.ledger.wagers import place_wager_batch
from slot_ledger.pipeline.run_backfill import resolve_db_path

logger = logging.getLogger(__name__)


def load_batch(path: str | Path) -> Dict[str, Any]:
    """Read a batch file: ``agent_id``, ``actor``, ``date``, ``hour`` and ``entries``."""
    with Path(path).open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if not isinstance(data, dict):
        raise ValidationError("Batch file must be a mapping", path=str(path))
    missing = [key for key in ("agent_id", "actor", "date", "hour", "entries") if key not in data]
    if missing:
        raise ValidationError("Batch file is missing keys", missing=missing)
    return data


def run_batch(conn: sqlite3.Connection, batch: Dict[str, Any], config: AppConfig) -> list[Wager]:
    actor = Actor(**batch["actor"])
    slot = ensure_slot(conn, batch["date"], batch["hour"])
    return place_wager_batch(
        conn,
        actor,
        int(batch["agent_id"]),
        slot.id,
        batch["entries"],
        prices=config.pricing.as_dict(),
        tz_name=config.schedule.timezone,
        max_entries=config.wagering.max_batch_entries,
    )


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("usage: place_batch BATCH_FILE")
        return 2
    root = Path(__file__).resolve().parents[2]
    config = load_config(root / "config.yaml")
    db_path = resolve_db_path(root, config.store.db_path)

    conn = store.get_connection(db_path, config.store.busy_timeout_s)
    store.init_db(conn)
    try:
        placed = run_batch(conn, load_batch(args[0]), config)
    except LedgerError as exc:
        logger.error("Batch rejected: %s %s", exc.summary, exc.details)
        return 1
    finally:
        conn.close()

    for wager in placed:
        print(f"- {wager.tier.value} digit={wager.digit} tickets={wager.ticket_count} stake={wager.total_stake}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
