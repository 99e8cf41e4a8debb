"""
Shared value objects.

Immutable, validated domain primitives: weekday keys, inclusive date
ranges and the HH:mm / YYYY-MM-DD / IANA timezone string contracts.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Iterator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, model_validator

from comensales.domain.shared.errors import ValidationError

TIME_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"
DATE_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$"

_TIME_RE = re.compile(TIME_PATTERN)
_DATE_RE = re.compile(DATE_PATTERN)


class DayOfWeek(str, Enum):
    """
    Day-of-week key as persisted by the residence configuration.

    Ordered Monday first (ISO 8601).

    Example:
        >>> DayOfWeek.from_date(date(2025, 1, 6))
        <DayOfWeek.LUNES: 'lunes'>
    """

    LUNES = "lunes"
    MARTES = "martes"
    MIERCOLES = "miercoles"
    JUEVES = "jueves"
    VIERNES = "viernes"
    SABADO = "sabado"
    DOMINGO = "domingo"

    @property
    def offset(self) -> int:
        """Days after Monday (0 = Monday, 6 = Sunday)."""
        return _DAY_ORDER.index(self)

    @classmethod
    def from_date(cls, value: date) -> DayOfWeek:
        """Weekday key of a calendar date."""
        return _DAY_ORDER[value.weekday()]

    def in_week(self, monday: date) -> date:
        """Date of this weekday within the week starting on ``monday``."""
        return monday + timedelta(days=self.offset)


_DAY_ORDER = list(DayOfWeek)


class DateRange(BaseModel):
    """
    Inclusive calendar date range [start, end].

    Example:
        >>> period = DateRange(start=date(2025, 1, 6), end=date(2025, 1, 12))
        >>> len(list(period.days()))
        7
    """

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def _ordered(self) -> DateRange:
        if self.start > self.end:
            raise ValueError(f"start {self.start} is after end {self.end}")
        return self

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end

    def overlaps(self, start: date, end: date) -> bool:
        """True when [start, end] shares at least one day with this range."""
        return start <= self.end and end >= self.start

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


# ═══════════════════════════════════════════════════════════
# STRING CONTRACTS
# ═══════════════════════════════════════════════════════════


def parse_time(value: str) -> time:
    """
    Parse an ``HH:mm`` string.

    Raises:
        ValidationError: If the string is not a 24h HH:mm time
    """
    if not isinstance(value, str) or not _TIME_RE.match(value):
        raise ValidationError(f"Invalid time string: {value!r} (expected HH:mm)")
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def parse_date(value: str) -> date:
    """
    Parse a ``YYYY-MM-DD`` string.

    Raises:
        ValidationError: If the string is not a valid ISO date
    """
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationError(f"Invalid date string: {value!r} (expected YYYY-MM-DD)")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid date string: {value!r}") from e


def resolve_timezone(name: str) -> tzinfo:
    """
    Resolve an IANA timezone identifier.

    Raises:
        ValidationError: If the identifier is unknown
    """
    if not name or not isinstance(name, str):
        raise ValidationError("Timezone identifier cannot be empty")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Invalid timezone identifier: {name!r}") from e


def combine(day: date, hhmm: str) -> datetime:
    """Naive local datetime for ``day`` at ``hhmm``."""
    return datetime.combine(day, parse_time(hhmm))


def iso_week_label(value: date) -> str:
    """ISO 8601 week label, e.g. ``2025-W02``."""
    year, week, _ = value.isocalendar()
    return f"{year}-W{week:02d}"
