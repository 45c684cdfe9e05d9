"""
Time and date utilities for recency and context scoring.

Key concepts:
  - All timestamps are handled as timezone-aware UTC datetimes. Naive values
    coming back from SQLite are assumed to be UTC.
  - Item age is measured in fractional days (seconds / 86400), so recency
    decay is continuous rather than stepping at midnight.
  - Time-of-day buckets split the week into business hours
    (Mon–Fri, 09:00–17:59) and evening/weekend.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

TimeBucket = Literal["business", "leisure"]

DB_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_SECONDS_PER_DAY = 86_400.0
_BUSINESS_START_HOUR = 9
_BUSINESS_END_HOUR = 17    # inclusive: 17:59 is still business hours


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_db_timestamp(value: str | datetime) -> datetime:
    """Parse a timestamp as stored in SQLite into an aware UTC datetime.

    Accepts ISO-8601 with a trailing ``Z``, with an explicit offset, or with
    a space separator (``CURRENT_TIMESTAMP`` style).

    Raises:
        ValueError: If the string is not a recognizable timestamp.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def format_db_timestamp(value: datetime) -> str:
    """Format a datetime the way the schema's ``strftime`` defaults do."""
    return ensure_utc(value).strftime(DB_TIMESTAMP_FORMAT)


def days_between(earlier: datetime, later: datetime) -> float:
    """Return fractional days from ``earlier`` to ``later``.

    Never negative: an item timestamped in the future (clock skew between
    writers) counts as brand new.
    """
    delta = ensure_utc(later) - ensure_utc(earlier)
    return max(0.0, delta.total_seconds() / _SECONDS_PER_DAY)


def time_bucket(moment: datetime) -> TimeBucket:
    """Classify ``moment`` as business hours or evening/weekend."""
    moment = ensure_utc(moment)
    if moment.weekday() >= 5:
        return "leisure"
    if _BUSINESS_START_HOUR <= moment.hour <= _BUSINESS_END_HOUR:
        return "business"
    return "leisure"
