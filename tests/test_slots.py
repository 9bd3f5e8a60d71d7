from __future__ import annotations

import sqlite3
import threading
from datetime import date

import pytest

from slot_ledger.db import store
from slot_ledger.errors import NotFoundError, ValidationError
from slot_ledger.ledger import slots


def _setup_conn() -> sqlite3.Connection:
    conn = store.get_connection(store.MEMORY)
    store.init_db(conn)
    return conn


def test_ensure_slot_creates_once() -> None:
    conn = _setup_conn()
    first = slots.ensure_slot(conn, "2024-05-01", 14)
    second = slots.ensure_slot(conn, date(2024, 5, 1), "14")

    assert first.id == second.id
    assert (first.date, first.hour) == ("2024-05-01", 14)
    count = conn.execute("SELECT COUNT(*) AS n FROM slots").fetchone()["n"]
    assert count == 1


@pytest.mark.parametrize(
    "slot_date, slot_hour",
    [
        ("2024-02-30", 10),
        ("2024-5-1", 10),
        ("not-a-date", 10),
        ("2024-05-01", 24),
        ("2024-05-01", -1),
        ("2024-05-01", True),
        ("2024-05-01", 1.5),
    ],
)
def test_ensure_slot_rejects_bad_keys(slot_date, slot_hour) -> None:
    conn = _setup_conn()
    with pytest.raises(ValidationError):
        slots.ensure_slot(conn, slot_date, slot_hour)
    assert conn.execute("SELECT COUNT(*) AS n FROM slots").fetchone()["n"] == 0


def test_find_slot_does_not_create() -> None:
    conn = _setup_conn()
    assert slots.find_slot(conn, "2024-05-01", 3) is None
    assert conn.execute("SELECT COUNT(*) AS n FROM slots").fetchone()["n"] == 0


def test_get_slot_missing() -> None:
    conn = _setup_conn()
    with pytest.raises(NotFoundError) as excinfo:
        slots.get_slot(conn, 999)
    assert excinfo.value.kind == "not_found"


def test_concurrent_ensure_slot_returns_single_row(tmp_path) -> None:
    db_path = tmp_path / "ledger.sqlite"
    conn = store.get_connection(db_path)
    store.init_db(conn)
    conn.close()

    ids: list[int] = []
    errors: list[BaseException] = []
    barrier = threading.Barrier(8)
    lock = threading.Lock()

    def worker() -> None:
        local = store.get_connection(db_path, timeout_s=10.0)
        try:
            barrier.wait()
            slot = slots.ensure_slot(local, "2024-05-01", 9)
            with lock:
                ids.append(slot.id)
        except BaseException as exc:  # noqa: BLE001
            with lock:
                errors.append(exc)
        finally:
            local.close()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(ids) == 8
    assert len(set(ids)) == 1

    check = store.get_connection(db_path)
    count = check.execute(
        "SELECT COUNT(*) AS n FROM slots WHERE slot_date = ? AND slot_hour = ?",
        ("2024-05-01", 9),
    ).fetchone()["n"]
    check.close()
    assert count == 1
