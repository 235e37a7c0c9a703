"""Weekly schedule schemas - user time patterns and grouped time data"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import time_to_minutes, validate_day_of_week, validate_time_string
from ..records.schemas import RecordResponse


class TimePatternCreate(BaseModel):
    user_id: int
    pattern_id: int
    start_time: str
    end_time: str
    day_of_week: int
    is_active: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_string(v)

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, v):
        return validate_day_of_week(v)

    @model_validator(mode="after")
    def check_order(self):
        if time_to_minutes(self.start_time) >= time_to_minutes(self.end_time):
            raise ValueError("start_time must be before end_time")
        return self


class TimePatternUpdate(BaseModel):
    pattern_id: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    day_of_week: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_string(v) if v is not None else v

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, v):
        return validate_day_of_week(v) if v is not None else v


class TimePatternResponse(BaseModel):
    id: int
    user_id: int
    pattern_id: int
    pattern_name: str
    pattern_details: Optional[dict[str, Any]] = None
    start_time: str
    end_time: str
    day_of_week: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupedTimeData(BaseModel):
    id: str
    user_name: str
    start_time: str
    end_time: str
    count: int
    record_ids: list[int]
    sample_records: list[RecordResponse]
    service_contents: list[str]
    main_service_type: str
    suggested_pattern_name: str
    is_pattern_created: bool
    pattern_id: Optional[int] = None


class BulkCreatePatternsRequest(BaseModel):
    group_ids: list[str]


class RecordLinkRequest(BaseModel):
    pattern_id: int
    record_ids: list[int]


class RecordUnlinkRequest(BaseModel):
    record_ids: list[int]


class ApplyPatternRequest(BaseModel):
    """Fill the checklist of existing records from a pattern"""

    pattern_id: int
    record_ids: list[int]
    special_notes: Optional[str] = None


class ScheduleStatistics(BaseModel):
    total_groups: int
    groups_with_patterns: int
    groups_without_patterns: int
    total_records: int


class WeekDay(BaseModel):
    day: date
    day_of_week: int
    records: list[RecordResponse]
    schedules: list[RecordResponse]


class WeekViewResponse(BaseModel):
    week_start: date
    week_end: date
    days: list[WeekDay]
