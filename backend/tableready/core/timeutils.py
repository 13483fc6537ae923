"""Helpers for the explicit-clock convention.

Timestamps are persisted as naive UTC. Callers may pass aware datetimes
(any zone) or naive ones (taken as UTC); both normalise through here.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Wall-clock reading for the HTTP layer and the scheduler only."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_venue_local(value: datetime, tz_name: str) -> datetime:
    """Convert a UTC instant (naive or aware) to naive venue wall-clock time."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz_name)).replace(tzinfo=None)


def from_venue_local(value: datetime, tz_name: str) -> datetime:
    """Interpret naive venue wall-clock time and return naive UTC."""
    if value.tzinfo is not None:
        return to_utc_naive(value)
    return value.replace(tzinfo=ZoneInfo(tz_name)).astimezone(timezone.utc).replace(tzinfo=None)


def minutes_between(start: datetime, end: datetime) -> float:
    return (to_utc_naive(end) - to_utc_naive(start)).total_seconds() / 60
