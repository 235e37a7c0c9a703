"""Tests for shared validators."""

from datetime import date

import pytest

from caredesk.shared.validators import (
    minutes_to_time,
    python_weekday_to_day_of_week,
    time_to_minutes,
    validate_date_string,
    validate_day_of_week,
    validate_max_length,
    validate_time_string,
    validate_uuid,
    validate_year_month,
)


class TestTimes:
    """Test clock time helpers."""

    @pytest.mark.parametrize("value,expected", [("9:05", "09:05"), ("09:05", "09:05"), (" 23:59 ", "23:59")])
    def test_normalizes(self, value, expected):
        """Test that valid times are zero-padded."""
        assert validate_time_string(value) == expected

    @pytest.mark.parametrize("value", ["24:00", "12:60", "1200", "", None])
    def test_rejects(self, value):
        """Test that out-of-range and malformed times raise."""
        with pytest.raises(ValueError):
            validate_time_string(value)

    def test_minutes_round_trip(self):
        """Test conversion to and from minutes, clamped to the day."""
        assert time_to_minutes("09:30") == 570
        assert minutes_to_time(570) == "09:30"
        assert minutes_to_time(-5) == "00:00"
        assert minutes_to_time(2000) == "23:59"


class TestDates:
    """Test date and month helpers."""

    def test_date(self):
        """Test that only real calendar dates pass."""
        assert validate_date_string("2024-02-29") == date(2024, 2, 29)
        with pytest.raises(ValueError):
            validate_date_string("2023-02-29")
        with pytest.raises(ValueError):
            validate_date_string("2024/02/01")

    def test_year_month(self):
        """Test YYYY-MM parsing."""
        assert validate_year_month("2024-04") == (2024, 4)
        with pytest.raises(ValueError):
            validate_year_month("2024-13")

    def test_day_of_week(self):
        """Test the Sunday-based weekday convention."""
        assert python_weekday_to_day_of_week(date(2024, 4, 7)) == 0
        assert python_weekday_to_day_of_week(date(2024, 4, 1)) == 1
        assert validate_day_of_week(6) == 6
        with pytest.raises(ValueError):
            validate_day_of_week(7)


class TestMisc:
    """Test length and UUID checks."""

    def test_max_length(self):
        """Test the length limit and its label in the message."""
        assert validate_max_length("abc", 3, "name") == "abc"
        with pytest.raises(ValueError, match="name"):
            validate_max_length("abcd", 3, "name")

    def test_uuid(self):
        """Test UUID recognition."""
        assert validate_uuid("12345678-1234-5678-1234-567812345678") is True
        assert validate_uuid("nope") is False
