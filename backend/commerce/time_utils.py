# Overview: UTC clock and timestamp serialization helpers shared by models and services.

"""
Timestamps are stored as UTC-naive datetimes (SQLite and mongomock drop
tzinfo) and leave the API as ISO-8601 strings with a trailing 'Z'.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def days_from_now(days: int) -> datetime:
    return utcnow() + timedelta(days=days)


def as_utc_naive(dt: datetime) -> datetime:
    """Order filters may arrive with an offset; compare them against stored UTC values."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
