"""Unit tests for shared value objects and string contracts."""

from datetime import date, datetime, time

import pytest

from comensales.domain.shared.errors import ValidationError
from comensales.domain.shared.value_objects import (
    DateRange,
    DayOfWeek,
    combine,
    iso_week_label,
    parse_date,
    parse_time,
    resolve_timezone,
)


class TestDayOfWeek:
    """Test weekday keys."""

    def test_from_date_monday(self):
        assert DayOfWeek.from_date(date(2025, 1, 6)) is DayOfWeek.LUNES

    def test_from_date_sunday(self):
        assert DayOfWeek.from_date(date(2025, 1, 12)) is DayOfWeek.DOMINGO

    def test_offsets_monday_first(self):
        assert [d.offset for d in DayOfWeek] == [0, 1, 2, 3, 4, 5, 6]

    def test_in_week(self):
        monday = date(2025, 1, 6)
        assert DayOfWeek.MIERCOLES.in_week(monday) == date(2025, 1, 8)
        assert DayOfWeek.DOMINGO.in_week(monday) == date(2025, 1, 12)

    def test_values_are_persisted_keys(self):
        assert DayOfWeek("sabado") is DayOfWeek.SABADO


class TestDateRange:
    """Test inclusive date ranges."""

    def test_rejects_reversed_range(self):
        with pytest.raises(ValueError):
            DateRange(start=date(2025, 1, 7), end=date(2025, 1, 6))

    def test_single_day_range_is_valid(self):
        period = DateRange(start=date(2025, 1, 6), end=date(2025, 1, 6))
        assert list(period.days()) == [date(2025, 1, 6)]

    def test_days_inclusive(self):
        period = DateRange(start=date(2025, 1, 6), end=date(2025, 1, 12))
        days = list(period.days())
        assert len(days) == 7
        assert days[0] == date(2025, 1, 6)
        assert days[-1] == date(2025, 1, 12)

    def test_contains_boundaries(self):
        period = DateRange(start=date(2025, 1, 6), end=date(2025, 1, 12))
        assert period.contains(date(2025, 1, 6))
        assert period.contains(date(2025, 1, 12))
        assert not period.contains(date(2025, 1, 13))

    def test_overlaps(self):
        period = DateRange(start=date(2025, 1, 6), end=date(2025, 1, 12))
        assert period.overlaps(date(2025, 1, 1), date(2025, 1, 6))
        assert period.overlaps(date(2025, 1, 12), date(2025, 1, 20))
        assert not period.overlaps(date(2025, 1, 13), date(2025, 1, 20))

    def test_str(self):
        period = DateRange(start=date(2025, 1, 6), end=date(2025, 1, 12))
        assert str(period) == "2025-01-06..2025-01-12"


class TestStringContracts:
    """Test HH:mm, YYYY-MM-DD and timezone parsing."""

    def test_parse_time(self):
        assert parse_time("09:30") == time(9, 30)
        assert parse_time("23:59") == time(23, 59)

    @pytest.mark.parametrize("value", ["24:00", "9:30", "09:60", "0930", ""])
    def test_parse_time_rejects_malformed(self, value):
        with pytest.raises(ValidationError):
            parse_time(value)

    def test_parse_date(self):
        assert parse_date("2025-01-06") == date(2025, 1, 6)

    @pytest.mark.parametrize("value", ["2025-1-6", "2025-02-30", "06/01/2025"])
    def test_parse_date_rejects_malformed(self, value):
        with pytest.raises(ValidationError):
            parse_date(value)

    def test_resolve_timezone(self):
        assert str(resolve_timezone("Europe/Madrid")) == "Europe/Madrid"

    def test_resolve_timezone_rejects_unknown(self):
        with pytest.raises(ValidationError, match="Invalid timezone"):
            resolve_timezone("Mars/Olympus_Mons")

    def test_resolve_timezone_rejects_empty(self):
        with pytest.raises(ValidationError):
            resolve_timezone("")

    def test_combine(self):
        assert combine(date(2025, 1, 6), "09:00") == datetime(2025, 1, 6, 9, 0)

    def test_iso_week_label(self):
        assert iso_week_label(date(2025, 1, 6)) == "2025-W02"
        # ISO week 1 of 2025 starts on 2024-12-30
        assert iso_week_label(date(2024, 12, 30)) == "2025-W01"
