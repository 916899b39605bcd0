"""Tests for date normalization and interval overlap."""

import itertools
from datetime import date, datetime, timedelta, timezone

import pytest

from consult_billing.engine.dates import (
    parse_date,
    preset_range,
    ranges_overlap,
    to_day_boundary,
)
from consult_billing.models import InvalidDateError


class TestParseDate:
    def test_plain_date(self):
        assert parse_date(date(2024, 2, 29)) == date(2024, 2, 29)

    def test_iso_string(self):
        assert parse_date("2025-01-31") == date(2025, 1, 31)

    def test_timestamp_string_with_z(self):
        assert parse_date("2025-01-31T10:15:00.000Z") == date(2025, 1, 31)

    def test_aware_datetime_converted_to_timezone(self):
        # 23:30 in New York is already the next day in UTC
        value = datetime(2024, 3, 1, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert parse_date(value, "UTC") == date(2024, 3, 2)
        assert parse_date(value) == date(2024, 3, 1)

    def test_naive_datetime_keeps_its_day(self):
        assert parse_date(datetime(2024, 3, 1, 23, 59), "UTC") == date(2024, 3, 1)

    @pytest.mark.parametrize("value", ["", "not a date", "2024-13-01", "2024-02-30", "31/01/2025"])
    def test_unparseable_string_raises(self, value):
        with pytest.raises(InvalidDateError):
            parse_date(value)

    @pytest.mark.parametrize("value", [None, 20240101, 3.5])
    def test_non_date_types_raise(self, value):
        with pytest.raises(InvalidDateError):
            parse_date(value)

    def test_unknown_timezone_raises(self):
        with pytest.raises(InvalidDateError, match="timezone"):
            parse_date(datetime(2024, 1, 1, tzinfo=timezone.utc), "Mars/Olympus")


class TestDayBoundary:
    def test_start_of_day(self):
        assert to_day_boundary("2025-01-31T15:42:00", "start") == datetime(2025, 1, 31, 0, 0, 0, 0)

    def test_end_of_day(self):
        assert to_day_boundary(date(2025, 1, 31), "end") == datetime(2025, 1, 31, 23, 59, 59, 999000)

    def test_bad_edge(self):
        with pytest.raises(ValueError, match="edge"):
            to_day_boundary(date(2025, 1, 31), "middle")


class TestRangesOverlap:
    def test_spans_entirely(self):
        assert ranges_overlap("2024-01-03", "2025-05-03", "2025-01-01", "2025-12-31")

    def test_disjoint(self):
        assert not ranges_overlap("2023-02-03", "2023-06-03", "2025-01-01", "2025-12-31")

    def test_starts_during(self):
        assert ranges_overlap("2025-06-01", "2026-06-01", "2025-01-01", "2025-12-31")

    def test_ends_during(self):
        assert ranges_overlap("2024-06-01", "2025-02-01", "2025-01-01", "2025-12-31")

    def test_touching_days_overlap(self):
        assert ranges_overlap("2024-01-01", "2024-12-31", "2024-12-31", "2025-06-30")

    def test_adjacent_days_do_not_overlap(self):
        assert not ranges_overlap("2024-01-01", "2024-12-30", "2024-12-31", "2025-06-30")

    def test_time_of_day_is_ignored(self):
        assert ranges_overlap(
            datetime(2025, 1, 1, 18, 0), datetime(2025, 1, 1, 19, 0),
            datetime(2025, 1, 1, 8, 0), datetime(2025, 1, 1, 9, 0),
        )

    def test_symmetry(self):
        days = [date(2025, 1, d) for d in (1, 5, 10, 15, 20)]
        intervals = [(a, b) for a, b in itertools.product(days, days) if a <= b]
        for (a, b), (c, d) in itertools.product(intervals, intervals):
            assert ranges_overlap(a, b, c, d) == ranges_overlap(c, d, a, b)


class TestPresetRange:
    AS_OF = date(2025, 5, 14)  # a Wednesday

    def test_week_starts_monday(self):
        assert preset_range("week", self.AS_OF) == (date(2025, 5, 12), date(2025, 5, 18))

    def test_month(self):
        assert preset_range("month", date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_quarter(self):
        assert preset_range("quarter", self.AS_OF) == (date(2025, 4, 1), date(2025, 6, 30))

    def test_year_and_last_year(self):
        assert preset_range("year", self.AS_OF) == (date(2025, 1, 1), date(2025, 12, 31))
        assert preset_range("last_year", self.AS_OF) == (date(2024, 1, 1), date(2024, 12, 31))

    def test_last_months_cross_year(self):
        assert preset_range("last6", date(2025, 2, 10)) == (date(2024, 8, 1), date(2025, 2, 28))
        assert preset_range("last12", date(2025, 2, 10)) == (date(2024, 2, 1), date(2025, 2, 28))

    def test_unknown_range(self):
        with pytest.raises(ValueError, match="Unknown date range"):
            preset_range("fortnight", self.AS_OF)
