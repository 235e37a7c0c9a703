"""Shared validation utilities"""

import re
import uuid
from datetime import date
from typing import Optional

TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")
DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
YEAR_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})$")


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def validate_time_string(value: Optional[str]) -> str:
    """
    Validate a clock time and normalize it to zero-padded HH:MM.

    Raises:
        ValueError: If the value is not H:MM / HH:MM within 00:00-23:59
    """
    if value is None:
        raise ValueError("Time is required")

    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time format: {value} (expected HH:MM)")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Time out of range: {value}")

    return f"{hours:02d}:{minutes:02d}"


def is_valid_time(value: Optional[str]) -> bool:
    try:
        validate_time_string(value)
        return True
    except ValueError:
        return False


def validate_date_string(value: Optional[str]) -> date:
    """
    Parse a YYYY-MM-DD string into a date.

    Raises:
        ValueError: If the format is wrong or the date does not exist
    """
    if not value:
        raise ValueError("Date is required")

    match = DATE_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid date format: {value} (expected YYYY-MM-DD)")

    year, month, day = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError as e:
        raise ValueError(f"Invalid date: {value}") from e


def validate_year_month(value: Optional[str]) -> tuple[int, int]:
    """Parse YYYY-MM into (year, month)"""
    if not value:
        raise ValueError("Month is required")

    match = YEAR_MONTH_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid month format: {value} (expected YYYY-MM)")

    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {value}")
    return year, month


def validate_day_of_week(value: int) -> int:
    """0 = Sunday ... 6 = Saturday"""
    if not isinstance(value, int) or not 0 <= value <= 6:
        raise ValueError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    return value


def validate_max_length(value: Optional[str], limit: int, label: str) -> Optional[str]:
    if value is not None and len(value) > limit:
        raise ValueError(f"{label} must be at most {limit} characters")
    return value


def time_to_minutes(value: str) -> int:
    hours, minutes = validate_time_string(value).split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total: int) -> str:
    total = max(0, min(total, 23 * 60 + 59))
    return f"{total // 60:02d}:{total % 60:02d}"


def python_weekday_to_day_of_week(day: date) -> int:
    """Convert a date to the schedule convention (0 = Sunday)"""
    return (day.weekday() + 1) % 7
