"""Service record schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import time_to_minutes, validate_max_length, validate_time_string


class RecordCreate(BaseModel):
    """Manually entered visit"""

    user_name: str
    user_code: Optional[str] = None
    staff_name: Optional[str] = None
    service_date: date
    start_time: str
    end_time: str
    duration_minutes: Optional[int] = None
    service_content: Optional[str] = None
    special_notes: Optional[str] = None
    service_details: Optional[dict[str, Any]] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_string(v)

    @field_validator("user_name", "staff_name")
    @classmethod
    def validate_name(cls, v):
        return validate_max_length(v.strip() if v else v, 50, "name")

    @field_validator("service_content")
    @classmethod
    def validate_content(cls, v):
        return validate_max_length(v, 200, "service_content")

    @model_validator(mode="after")
    def check_times(self):
        span = time_to_minutes(self.end_time) - time_to_minutes(self.start_time)
        if span <= 0:
            raise ValueError("start_time must be before end_time")
        if self.duration_minutes is None:
            self.duration_minutes = span
        return self


class RecordUpdate(BaseModel):
    staff_name: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_minutes: Optional[int] = None
    service_content: Optional[str] = None
    special_notes: Optional[str] = None
    service_details: Optional[dict[str, Any]] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_string(v) if v is not None else v

    @field_validator("staff_name")
    @classmethod
    def validate_name(cls, v):
        return validate_max_length(v.strip() if v else v, 50, "name")

    @field_validator("service_content")
    @classmethod
    def validate_content(cls, v):
        return validate_max_length(v, 200, "service_content")


class RecordResponse(BaseModel):
    id: int
    public_id: str
    user_id: Optional[int] = None
    staff_id: Optional[int] = None
    user_name: str
    user_code: Optional[str] = None
    staff_name: Optional[str] = None
    service_date: date
    start_time: str
    end_time: str
    duration_minutes: int
    service_content: Optional[str] = None
    special_notes: Optional[str] = None
    pattern_id: Optional[int] = None
    pattern_name: Optional[str] = None
    is_pattern_assigned: bool
    is_manually_created: bool
    record_created_at: Optional[datetime] = None
    print_datetime: Optional[datetime] = None
    csv_import_batch_id: Optional[str] = None

    class Config:
        from_attributes = True


class BulkDeleteRequest(BaseModel):
    record_ids: list[int]


class CalendarDay(BaseModel):
    day: date
    day_of_week: int
    records: list[RecordResponse]
    total: int
    assigned: int
    unassigned: int
    status: str  # none, partial, complete


class MonthlyStats(BaseModel):
    total_records: int
    assigned: int
    unassigned: int
    complete_days: int
    partial_days: int
    empty_days: int


class MonthlyCalendarResponse(BaseModel):
    year: int
    month: int
    days: list[CalendarDay]
    stats: MonthlyStats


class TimeSlot(BaseModel):
    hour: int
    label: str
    records: list[RecordResponse]
    total: int
    assigned: int
    unassigned: int
    status: str


class PatternShare(BaseModel):
    pattern_id: int
    pattern_name: str
    count: int
    percentage: float


class DailySummary(BaseModel):
    total: int
    assigned: int
    unassigned: int
    completion_rate: float
    users: list[str]
    staff: list[str]
    patterns_used: list[str]


class DailyStats(BaseModel):
    peak_hour: Optional[int] = None
    pattern_distribution: list[PatternShare]


class DailyDetailResponse(BaseModel):
    day: date
    time_slots: list[TimeSlot]
    summary: DailySummary
    stats: DailyStats


class TimestampRegenerateRequest(BaseModel):
    year_month: str
    only_missing: bool = True
