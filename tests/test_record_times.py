"""Tests for synthetic record and print timestamps."""

import random
from datetime import date, datetime, timedelta

from caredesk.shared.record_times import (
    combine,
    generate_print_time,
    generate_record_time,
    generate_record_timestamps,
)


class FixedRoll(random.Random):
    """Random source whose percentage roll is fixed."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


class TestRecordTime:
    """Test record creation time generation."""

    def test_hour_after_bucket(self):
        """Test that the top bucket is exactly one hour after the visit ends."""
        start = datetime(2024, 4, 1, 9, 0)
        end = datetime(2024, 4, 1, 9, 30)
        assert generate_record_time(start, end, FixedRoll(0.99)) == end + timedelta(hours=1)

    def test_before_end_bucket(self):
        """Test that the lowest bucket falls in the last ten minutes of the visit."""
        start = datetime(2024, 4, 1, 9, 0)
        end = datetime(2024, 4, 1, 9, 30)
        created = generate_record_time(start, end, FixedRoll(0.05))
        assert end - timedelta(minutes=10) <= created <= end - timedelta(minutes=1)

    def test_times_stay_in_window(self):
        """Test that every generated time is within the overall window."""
        start = datetime(2024, 4, 1, 14, 0)
        end = datetime(2024, 4, 1, 15, 0)
        for seed in range(200):
            created = generate_record_time(start, end, random.Random(seed))
            assert start - timedelta(minutes=3) <= created <= end + timedelta(hours=1)


class TestPrintTime:
    """Test print time generation."""

    def test_print_time_range(self):
        """Test that print times are 1-7 days later during business hours."""
        service_date = date(2024, 4, 1)
        for seed in range(200):
            printed = generate_print_time(service_date, random.Random(seed))
            assert 1 <= (printed.date() - service_date).days <= 7
            assert 9 <= printed.hour <= 17

    def test_timestamps_pair(self):
        """Test that the pair helper is deterministic for a seeded generator."""
        first = generate_record_timestamps(date(2024, 4, 1), "09:00", "09:30", random.Random(7))
        second = generate_record_timestamps(date(2024, 4, 1), "09:00", "09:30", random.Random(7))
        assert first == second
        assert first[0] < first[1]

    def test_combine(self):
        """Test that HH:MM strings combine with a date."""
        assert combine(date(2024, 4, 1), "9:05") == datetime(2024, 4, 1, 9, 5)
