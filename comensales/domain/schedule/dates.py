"""Calendar helpers for week and interval arithmetic."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone as dt_timezone
from enum import Enum

from comensales.domain.shared.value_objects import DateRange, resolve_timezone


def week_of(day: date) -> DateRange:
    """Monday-Sunday ISO week containing ``day``."""
    monday = day - timedelta(days=day.weekday())
    return DateRange(start=monday, end=monday + timedelta(days=6))


def local_date(instant: datetime, timezone: str) -> date:
    """
    Calendar date of ``instant`` in an IANA timezone.

    Naive datetimes are taken as UTC.

    Raises:
        ValidationError: If the timezone identifier is unknown
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=dt_timezone.utc)
    return instant.astimezone(resolve_timezone(timezone)).date()


class IntervalPosition(str, Enum):
    """Where a date falls relative to an inclusive [start, end] interval."""

    BEFORE = "anterior"
    START = "igual inicio"
    INSIDE = "dentro"
    END = "igual final"
    AFTER = "posterior"
    # start == end == day
    SINGLE_DAY = "unico"

    @property
    def overlaps(self) -> bool:
        return self not in (IntervalPosition.BEFORE, IntervalPosition.AFTER)


def position_in_interval(day: date, start: date, end: date) -> IntervalPosition:
    if day < start:
        return IntervalPosition.BEFORE
    if day > end:
        return IntervalPosition.AFTER
    if start == end:
        return IntervalPosition.SINGLE_DAY
    if day == start:
        return IntervalPosition.START
    if day == end:
        return IntervalPosition.END
    return IntervalPosition.INSIDE
