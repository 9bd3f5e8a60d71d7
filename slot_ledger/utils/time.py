from __future__ import annotations

import re
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from dateutil import parser

from slot_ledger.errors import ValidationError

DEFAULT_TIMEZONE = "Asia/Kolkata"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def local_now(tz_name: str, now: datetime | None = None) -> datetime:
    if now is None:
        return datetime.now(ZoneInfo(tz_name))
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz_name))


def current_slot_key(tz_name: str, now: datetime | None = None) -> tuple[str, int]:
    """(date, hour) of the slot open right now in ``tz_name``."""
    current = local_now(tz_name, now)
    return current.date().isoformat(), current.hour


def parse_slot_date(value: str | date) -> str:
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value or "").strip()
    if not _DATE_RE.match(text):
        raise ValidationError("Invalid date", date=value)
    try:
        parser.isoparse(text)
    except (ValueError, OverflowError):
        raise ValidationError("Invalid date", date=value) from None
    return text


def parse_slot_hour(value: int | str) -> int:
    if isinstance(value, bool):
        raise ValidationError("Invalid hour", hour=value)
    try:
        hour = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid hour", hour=value) from None
    if isinstance(value, float) and value != hour:
        raise ValidationError("Invalid hour", hour=value)
    if hour < 0 or hour > 23:
        raise ValidationError("Invalid hour", hour=value)
    return hour
