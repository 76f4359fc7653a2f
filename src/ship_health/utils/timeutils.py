"""Timestamp helpers.

All timestamps handled by the package are timezone-aware UTC datetimes.
Storage and the command line work in epoch milliseconds.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

MS_PER_DAY = 24 * 60 * 60 * 1000
SECONDS_PER_DAY = 24 * 60 * 60.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_millis(value: datetime) -> int:
    return int(round(ensure_utc(value).timestamp() * 1000))


def from_millis(ms: float) -> datetime:
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)


def days_between(earlier: datetime, later: datetime) -> float:
    """Elapsed days from `earlier` to `later` (negative if reversed)."""
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds() / SECONDS_PER_DAY


def days_ago(now: datetime, days: float) -> datetime:
    return ensure_utc(now) - timedelta(days=days)


def isoformat(value: datetime) -> str:
    return ensure_utc(value).isoformat()
