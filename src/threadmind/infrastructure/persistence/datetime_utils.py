"""Datetime utilities for persistence layer."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_to_utc(dt: datetime) -> datetime:
    """Ensure datetime is UTC and timezone-aware.

    SQLite stores datetimes without timezone info, so naive values read
    back from the database are treated as UTC. Aware values are converted.

    Args:
        dt: datetime to process

    Returns:
        timezone-aware datetime in UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
