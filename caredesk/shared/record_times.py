"""Synthetic record-creation and print timestamps for imported visits.

Caregivers write up a visit around the time it ends, and the office prints
records in a weekly batch during business hours. Imported CSV rows carry no
such timestamps, so plausible ones are generated.
"""

import random
from datetime import date, datetime, time, timedelta
from typing import Optional

from .validators import validate_time_string

# (upper bound of cumulative percentage, bucket)
RECORD_TIME_DISTRIBUTION = (
    (15, "before_end"),  # 1-10 minutes before the visit ends
    (65, "around_visit"),  # from 3 minutes before start to 3 minutes after end
    (95, "after_end"),  # 3-15 minutes after the visit ends
    (100, "hour_after"),  # exactly one hour after the end
)

PRINT_DAYS_MIN = 1
PRINT_DAYS_MAX = 7
PRINT_HOUR_START = 9
PRINT_HOUR_END = 18


def combine(service_date: date, hhmm: str) -> datetime:
    hours, minutes = validate_time_string(hhmm).split(":")
    return datetime.combine(service_date, time(int(hours), int(minutes)))


def _random_between(start: datetime, end: datetime, rng: random.Random) -> datetime:
    span = (end - start).total_seconds()
    return start + timedelta(seconds=rng.uniform(0, max(span, 0)))


def generate_record_time(
    service_start: datetime, service_end: datetime, rng: Optional[random.Random] = None
) -> datetime:
    rng = rng or random.Random()
    roll = rng.random() * 100

    bucket = "hour_after"
    for upper, name in RECORD_TIME_DISTRIBUTION:
        if roll <= upper:
            bucket = name
            break

    if bucket == "before_end":
        return _random_between(
            service_end - timedelta(minutes=10), service_end - timedelta(minutes=1), rng
        )
    if bucket == "around_visit":
        return _random_between(
            service_start - timedelta(minutes=3), service_end + timedelta(minutes=3), rng
        )
    if bucket == "after_end":
        return _random_between(
            service_end + timedelta(minutes=3), service_end + timedelta(minutes=15), rng
        )
    return service_end + timedelta(hours=1)


def generate_print_time(service_date: date, rng: Optional[random.Random] = None) -> datetime:
    rng = rng or random.Random()
    print_day = service_date + timedelta(days=rng.randint(PRINT_DAYS_MIN, PRINT_DAYS_MAX))
    return datetime.combine(
        print_day,
        time(
            rng.randint(PRINT_HOUR_START, PRINT_HOUR_END - 1),
            rng.randint(0, 59),
            rng.randint(0, 59),
        ),
    )


def generate_record_timestamps(
    service_date: date, start_time: str, end_time: str, rng: Optional[random.Random] = None
) -> tuple[datetime, datetime]:
    """Return (record_created_at, print_datetime) for one visit"""
    rng = rng or random.Random()
    start = combine(service_date, start_time)
    end = combine(service_date, end_time)
    return generate_record_time(start, end, rng), generate_print_time(service_date, rng)
