"""Convert between the user's local wall clock and UTC instants.

The local zone is a fixed offset from UTC (UTC+9 by default). There is no
timezone database and no DST: conversion is plain offset arithmetic, so
``utc = local - offset`` and ``local = utc + offset``.

Calendar validity is whatever ``datetime()`` enforces. Out-of-range fields
(day 31 of a 30-day month, hour 24) are rejected rather than rolled over.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from . import config
from .errors import ValidationError

DATE_FORMAT = "%Y/%m/%d"
TIME_FORMAT = "%H:%M"
DISPLAY_FORMAT = f"{DATE_FORMAT} {TIME_FORMAT}"


def _offset() -> timedelta:
    return timedelta(hours=config.UTC_OFFSET_HOURS)


def to_utc(year: int, month: int, day: int, hour: int, minute: int) -> datetime:
    """Convert local wall-clock fields to an aware UTC datetime.

    Raises:
        ValidationError: If the fields do not form a valid datetime
    """
    try:
        local = datetime(year, month, day, hour, minute)
        return (local - _offset()).replace(tzinfo=timezone.utc)
    except (ValueError, OverflowError) as e:
        raise ValidationError(f"Invalid date/time: {e}") from e


def to_local(utc: datetime) -> datetime:
    """Naive local wall clock for a UTC instant."""
    if utc.tzinfo is None:
        utc = utc.replace(tzinfo=timezone.utc)
    return (utc.astimezone(timezone.utc) + _offset()).replace(tzinfo=None)


def to_local_display(utc: datetime) -> str:
    """Render a UTC instant as ``YYYY/MM/DD HH:MM`` local time."""
    return to_local(utc).strftime(DISPLAY_FORMAT)


def local_now(now: Optional[datetime] = None) -> datetime:
    """Current local wall clock (naive)."""
    return to_local(now or datetime.now(timezone.utc))


def _split_ints(value: str, sep: str, count: int, label: str) -> list[int]:
    parts = value.strip().split(sep)
    if len(parts) != count:
        raise ValidationError(f"{label} must have {count} fields separated by '{sep}': {value!r}")
    if not all(re.fullmatch(r"[0-9]+", p) for p in parts):
        raise ValidationError(f"{label} fields must be integers: {value!r}")
    return [int(p) for p in parts]


def parse_local(date_str: str, time_str: str) -> tuple[datetime, datetime]:
    """Parse ``YYYY/MM/DD`` and ``HH:mm`` strings as local time.

    Args:
        date_str: Date string, e.g. "2025/11/24"
        time_str: Time string, e.g. "15:00"

    Returns:
        Tuple of (naive local datetime, aware UTC datetime)

    Raises:
        ValidationError: If either string is malformed or the fields are out of range
    """
    year, month, day = _split_ints(date_str, "/", 3, "Date")
    hour, minute = _split_ints(time_str, ":", 2, "Time")

    utc = to_utc(year, month, day, hour, minute)
    return datetime(year, month, day, hour, minute), utc
