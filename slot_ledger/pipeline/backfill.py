from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from slot_ledger.db import store
from slot_ledger.ledger.content import ensure_content_for_current_slot
from slot_ledger.utils.time import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)

JOB_ID = "content-backfill"


class BackfillScheduler:
    """Periodically makes sure the current slot has content for every tier.

    Each tick opens its own connection. Failures are logged and never
    propagate to the scheduler thread; after ``stop()`` ticks do nothing.
    """

    def __init__(
        self,
        db_path: Path | str,
        tz_name: str = DEFAULT_TIMEZONE,
        interval_s: int = 30,
        timeout_s: float = 5.0,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.db_path = db_path
        self.tz_name = tz_name
        self.interval_s = interval_s
        self.timeout_s = timeout_s
        self.clock = clock
        self._stopped = threading.Event()
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def tick(self) -> Optional[int]:
        """Run one backfill pass. Returns the number of tiers filled, or None."""
        if self._stopped.is_set():
            return None
        now = self.clock() if self.clock else None
        try:
            conn = store.get_connection(self.db_path, self.timeout_s)
        except Exception:  # noqa: BLE001
            logger.exception("Backfill tick could not open the store at %s", self.db_path)
            return None
        try:
            created = ensure_content_for_current_slot(conn, self.tz_name, now)
        except Exception:  # noqa: BLE001
            logger.exception("Backfill tick failed")
            return None
        finally:
            conn.close()
        if created:
            logger.info("Backfill tick filled %d tiers", created)
        return created

    def start(self) -> None:
        if self._scheduler is not None:
            return
        self._stopped.clear()
        scheduler = BackgroundScheduler(timezone=ZoneInfo(self.tz_name))
        scheduler.add_job(
            self.tick,
            IntervalTrigger(seconds=self.interval_s),
            id=JOB_ID,
            name="Content backfill",
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(ZoneInfo(self.tz_name)),
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Backfill scheduler started (every %ss, tz=%s)", self.interval_s, self.tz_name)

    def stop(self, wait: bool = False) -> None:
        self._stopped.set()
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        logger.info("Backfill scheduler stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until ``stop()`` is called or ``timeout`` passes."""
        return self._stopped.wait(timeout)
