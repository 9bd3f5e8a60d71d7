from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from slot_ledger.db.schema import SCHEMA_SQL
from slot_ledger.errors import ConflictError, LedgerError, StoreBusyError, StoreError

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


def get_connection(db_path: Path | str, timeout_s: float = 5.0) -> sqlite3.Connection:
    """Open a connection in autocommit mode; writes go through ``transaction``."""
    if str(db_path) != MEMORY:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), timeout=timeout_s, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    if str(db_path) != MEMORY:
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the block as one ``BEGIN IMMEDIATE`` write transaction.

    Joins the caller's transaction when one is already open; the caller then
    owns commit and rollback. sqlite3 errors escaping the block are translated
    into ledger errors either way.
    """
    if conn.in_transaction:
        try:
            yield conn
        except sqlite3.Error as exc:
            raise translate_error(exc) from exc
        return
    try:
        conn.execute("BEGIN IMMEDIATE")
    except sqlite3.OperationalError as exc:
        raise translate_error(exc) from exc
    try:
        yield conn
        conn.commit()
    except LedgerError:
        conn.rollback()
        raise
    except sqlite3.Error as exc:
        conn.rollback()
        raise translate_error(exc) from exc
    except BaseException:
        conn.rollback()
        raise


def is_unique_violation(exc: sqlite3.Error) -> bool:
    return isinstance(exc, sqlite3.IntegrityError) and "UNIQUE" in str(exc).upper()


def translate_error(exc: sqlite3.Error) -> LedgerError:
    message = str(exc).lower()
    if isinstance(exc, sqlite3.OperationalError) and ("locked" in message or "busy" in message):
        logger.warning("Store busy: %s", exc)
        return StoreBusyError("Store is busy, try again")
    if is_unique_violation(exc):
        logger.info("Uniqueness race lost: %s", exc)
        return ConflictError("Concurrent update conflict, try again")
    logger.error("Unexpected store error: %s", exc)
    return StoreError("Storage failure")
