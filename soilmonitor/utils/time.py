"""Utility functions for time handling.

All timestamps are UTC and timezone-aware. Persist them as ISO-8601 strings
with an explicit offset (e.g. "+00:00") via ``iso_now()`` / ``to_iso()``.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def iso_now(*, timespec: str | None = None) -> str:
    """Return current UTC time as an ISO8601 string (timezone-aware)."""
    now = utc_now()
    if timespec:
        return now.isoformat(timespec=timespec)
    return now.isoformat()


def to_iso(dt: datetime) -> str:
    """Serialize a datetime as ISO-8601, treating naive values as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()

