from __future__ import annotations

import sqlite3

import pytest

from slot_ledger.config import AppConfig, PricingConfig, WageringConfig
from slot_ledger.db import store
from slot_ledger.domain.models import Tier
from slot_ledger.errors import ValidationError
from slot_ledger.tools.place_batch import load_batch, run_batch

BATCH_YAML = """\
agent_id: 7
actor: {id: 2, role: SUPERVISOR}
date: 2024-05-01
hour: 14
entries:
  - {tier: gold, digit: 7, ticket_count: 2}
  - {tier: SILVER, digit: 1, ticket_count: 1}
"""


def _setup_conn() -> sqlite3.Connection:
    conn = store.get_connection(store.MEMORY)
    store.init_db(conn)
    return conn


def test_run_batch_uses_configured_prices(tmp_path) -> None:
    path = tmp_path / "batch.yaml"
    path.write_text(BATCH_YAML, encoding="utf-8")
    conn = _setup_conn()
    config = AppConfig(pricing=PricingConfig(GOLD=60))

    placed = run_batch(conn, load_batch(path), config)

    assert [(w.tier, w.digit, w.total_stake) for w in placed] == [(Tier.GOLD, 7, 120), (Tier.SILVER, 1, 11)]
    assert {w.agent_id for w in placed} == {7}


def test_run_batch_honours_configured_entry_limit(tmp_path) -> None:
    path = tmp_path / "batch.yaml"
    path.write_text(BATCH_YAML, encoding="utf-8")
    conn = _setup_conn()
    config = AppConfig(wagering=WageringConfig(max_batch_entries=1))

    with pytest.raises(ValidationError) as excinfo:
        run_batch(conn, load_batch(path), config)
    assert excinfo.value.details["count"] == 2
    assert conn.execute("SELECT COUNT(*) AS n FROM wagers").fetchone()["n"] == 0


def test_load_batch_requires_keys(tmp_path) -> None:
    path = tmp_path / "batch.yaml"
    path.write_text("agent_id: 7\nentries: []\n", encoding="utf-8")

    with pytest.raises(ValidationError) as excinfo:
        load_batch(path)
    assert excinfo.value.details["missing"] == ["actor", "date", "hour"]
