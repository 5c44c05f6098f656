"""Datetime helpers used across the application."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


def minutes_between(start: datetime, end: datetime) -> float:
    """Return the signed number of minutes from ``start`` to ``end``."""

    return (end - start) / timedelta(minutes=1)


__all__ = ["minutes_between", "utcnow"]
