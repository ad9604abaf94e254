# Overview: UTC time helpers; the database stores naive datetimes that are always UTC.

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utcnow() -> datetime:
    return _as_naive_utc(datetime.now(timezone.utc))


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read a query/JSON timestamp. Blank means "no bound" and gives None.

    Offsets ("Z", "+02:00") are folded into UTC; a value without one is
    already UTC. Raises ValueError with the offending text otherwise.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"
    try:
        return _as_naive_utc(datetime.fromisoformat(text))
    except ValueError:
        raise ValueError(f"Invalid ISO-8601 datetime: {value!r}") from None


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second ISO-8601 in UTC with a trailing Z, e.g. 2026-03-02T09:05:00Z."""
    if dt is None:
        return None
    return _as_naive_utc(dt).replace(microsecond=0).isoformat() + "Z"


def week_start(day: date) -> date:
    """Sunday on or before `day`."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def month_start(day: date) -> date:
    return day.replace(day=1)
