"""Timezone-aware datetime utilities for the memory engine."""

from datetime import datetime, timezone
from typing import Union

from dateutil import parser as date_parser


def now_utc() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value: Union[str, datetime, int, float]) -> datetime:
    """
    Coerce a datetime, an ISO-ish string, or epoch milliseconds to UTC.

    Raises:
        ValueError: if a string cannot be parsed
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)):
        return from_epoch_ms(int(value))
    try:
        return ensure_utc(date_parser.parse(value))
    except (OverflowError, TypeError) as exc:
        raise ValueError(f"Unparseable datetime: {value!r}") from exc


def to_epoch_ms(dt: datetime) -> int:
    """Convert a datetime to integer milliseconds since the epoch."""
    return int(ensure_utc(dt).timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    """Convert integer milliseconds since the epoch to a UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def format_datetime(dt: datetime, format_str: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Format a datetime to a string."""
    return ensure_utc(dt).strftime(format_str)
