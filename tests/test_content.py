from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timezone

import pytest

from slot_ledger.content.oracle import generate_content_for_slot
from slot_ledger.db import store
from slot_ledger.domain.models import Actor, Role, SourceKind, Tier
from slot_ledger.errors import ConflictError, ContentLockedError, NotFoundError, ValidationError
from slot_ledger.ledger import content, results, wagers
from slot_ledger.ledger.slots import ensure_slot, find_slot

CURATOR = Actor(id=3, role=Role.OPERATOR)
SUPERVISOR = Actor(id=2, role=Role.SUPERVISOR)
LABELS = [f"Curated {digit}" for digit in range(10)]


def _setup_conn() -> sqlite3.Connection:
    conn = store.get_connection(store.MEMORY)
    store.init_db(conn)
    return conn


def _content_rows(conn: sqlite3.Connection) -> int:
    return conn.execute("SELECT COUNT(*) AS n FROM content_sets").fetchone()["n"]


def test_ensure_content_fills_missing_tiers_once() -> None:
    conn = _setup_conn()
    assert content.ensure_content_for_slot(conn, "2024-05-01", 14) == 3
    assert content.ensure_content_for_slot(conn, "2024-05-01", 14) == 0

    slot = find_slot(conn, "2024-05-01", 14)
    stored = content.get_content(conn, slot.id)
    generated = generate_content_for_slot("2024-05-01", 14)
    for tier, item in stored.items():
        assert item.source_kind == SourceKind.GENERATED
        assert item.labels == generated[tier].labels
        assert item.narrative == generated[tier].narrative
        assert item.suggested_digit == generated[tier].suggested_digit
        assert item.template_id == generated[tier].template_id
        assert item.created_by is None


def test_ensure_content_keeps_curated_tiers() -> None:
    conn = _setup_conn()
    slot = ensure_slot(conn, "2024-05-01", 14)
    content.save_curated_content(conn, slot.id, Tier.GOLD, LABELS, "Hand written gold story.", 5, CURATOR)

    assert content.ensure_content_for_slot(conn, "2024-05-01", 14) == 2
    stored = content.get_content(conn, slot.id)
    assert stored[Tier.GOLD].source_kind == SourceKind.CURATED
    assert stored[Tier.SILVER].source_kind == SourceKind.GENERATED


def test_concurrent_backfill_writes_one_set_per_tier(tmp_path) -> None:
    db_path = tmp_path / "ledger.sqlite"
    conn = store.get_connection(db_path)
    store.init_db(conn)
    conn.close()

    created: list[int] = []
    errors: list[BaseException] = []
    barrier = threading.Barrier(6)
    lock = threading.Lock()

    def worker() -> None:
        local = store.get_connection(db_path, timeout_s=10.0)
        try:
            barrier.wait()
            count = content.ensure_content_for_slot(local, "2024-05-01", 20)
            with lock:
                created.append(count)
        except BaseException as exc:  # noqa: BLE001
            with lock:
                errors.append(exc)
        finally:
            local.close()

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert sum(created) == 3

    check = store.get_connection(db_path)
    assert _content_rows(check) == 3
    labels = check.execute("SELECT COUNT(*) AS n FROM content_labels").fetchone()["n"]
    check.close()
    assert labels == 30


def test_ensure_content_for_current_slot_uses_reference_timezone() -> None:
    conn = _setup_conn()
    # 08:45 UTC is 14:15 in Asia/Kolkata.
    now = datetime(2024, 5, 1, 8, 45, tzinfo=timezone.utc)
    assert content.ensure_content_for_current_slot(conn, "Asia/Kolkata", now) == 3
    assert find_slot(conn, "2024-05-01", 14) is not None


def test_curated_replaces_generated_content() -> None:
    conn = _setup_conn()
    content.ensure_content_for_slot(conn, "2024-05-01", 14)
    slot = find_slot(conn, "2024-05-01", 14)

    saved = content.save_curated_content(conn, slot.id, "silver", LABELS, "  A new silver story.  ", 7, CURATOR)

    assert saved.source_kind == SourceKind.CURATED
    assert saved.labels == LABELS
    assert saved.narrative == "A new silver story."
    assert saved.suggested_digit == 7
    assert saved.created_by == CURATOR.id
    assert _content_rows(conn) == 3

    with pytest.raises(ConflictError):
        content.save_curated_content(conn, slot.id, Tier.SILVER, LABELS, "Another silver story.", 1, CURATOR)


def test_curated_content_locked_after_wager_or_result() -> None:
    conn = _setup_conn()
    slot = ensure_slot(conn, "2024-05-01", 14)
    wagers.place_wager(conn, SUPERVISOR, 7, slot.id, Tier.SILVER, 1, 1, 11)
    with pytest.raises(ContentLockedError):
        content.save_curated_content(conn, slot.id, Tier.GOLD, LABELS, "Too late for this.", 1, CURATOR)

    other = ensure_slot(conn, "2024-05-01", 15)
    content.ensure_content_for_slot(conn, "2024-05-01", 15)
    results.publish(conn, other.id, Tier.DIAMOND, 0, CURATOR)
    with pytest.raises(ContentLockedError):
        content.save_curated_content(conn, other.id, Tier.SILVER, LABELS, "Too late for this.", 1, CURATOR)
    assert content.get_content(conn, other.id)[Tier.SILVER].source_kind == SourceKind.GENERATED


@pytest.mark.parametrize(
    "labels, narrative, digit",
    [
        (LABELS[:9], "Long enough story.", 1),
        (LABELS[:9] + ["   "], "Long enough story.", 1),
        ("0123456789", "Long enough story.", 1),
        (LABELS, "short", 1),
        (LABELS, "Long enough story.", 10),
    ],
)
def test_curated_content_validation(labels, narrative, digit) -> None:
    conn = _setup_conn()
    slot = ensure_slot(conn, "2024-05-01", 14)
    with pytest.raises(ValidationError):
        content.save_curated_content(conn, slot.id, Tier.SILVER, labels, narrative, digit, CURATOR)
    assert _content_rows(conn) == 0


def test_curated_content_unknown_slot() -> None:
    conn = _setup_conn()
    with pytest.raises(NotFoundError):
        content.save_curated_content(conn, 5, Tier.SILVER, LABELS, "Long enough story.", 1, CURATOR)


def test_list_library_passthrough() -> None:
    listing = content.list_library()
    assert listing
    assert all(item["id"] and item["name"] for item in listing)
