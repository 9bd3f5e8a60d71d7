from __future__ import annotations

from slot_ledger.config import load_config
from slot_ledger.domain.models import Tier


def test_missing_file_uses_defaults(tmp_path) -> None:
    config = load_config(tmp_path / "absent.yaml")

    assert config.schedule.timezone == "Asia/Kolkata"
    assert config.schedule.backfill_interval_s == 30
    assert config.pricing.as_dict() == {Tier.SILVER: 11, Tier.GOLD: 55, Tier.DIAMOND: 110}
    assert config.wagering.max_batch_entries == 60
    assert (config.wagering.audit_default_limit, config.wagering.audit_max_limit) == (100, 500)


def test_yaml_overrides(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "store:\n"
        "  db_path: /tmp/ledger.sqlite\n"
        "  busy_timeout_s: 2.5\n"
        "schedule:\n"
        "  timezone: UTC\n"
        "pricing:\n"
        "  gold: 60\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.store.db_path == "/tmp/ledger.sqlite"
    assert config.store.busy_timeout_s == 2.5
    assert config.schedule.timezone == "UTC"
    assert config.schedule.backfill_interval_s == 30
    assert config.pricing.unit_price(Tier.GOLD) == 60
    assert config.pricing.unit_price(Tier.SILVER) == 11


def test_empty_yaml_is_defaults(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path).pricing.DIAMOND == 110
