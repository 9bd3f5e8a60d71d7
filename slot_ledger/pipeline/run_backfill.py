from __future__ import annotations

import logging
from pathlib import Path

from slot_ledger.config import load_config
from slot_ledger.db import store
from slot_ledger.pipeline.backfill import BackfillScheduler

logger = logging.getLogger(__name__)


def resolve_db_path(root: Path, db_path: str) -> Path:
    path = Path(db_path)
    return path if path.is_absolute() else root / path


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    root = Path(__file__).resolve().parents[2]
    config = load_config(root / "config.yaml")
    db_path = resolve_db_path(root, config.store.db_path)

    conn = store.get_connection(db_path, config.store.busy_timeout_s)
    store.init_db(conn)
    conn.close()

    scheduler = BackfillScheduler(
        db_path,
        tz_name=config.schedule.timezone,
        interval_s=config.schedule.backfill_interval_s,
        timeout_s=config.store.busy_timeout_s,
    )
    scheduler.start()
    logger.info("Backfilling content into %s, press Ctrl+C to stop", db_path)
    try:
        scheduler.wait()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Received interrupt signal")
    finally:
        scheduler.stop()


if __name__ == "__main__":
    main()
