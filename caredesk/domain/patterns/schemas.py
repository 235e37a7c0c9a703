"""Service pattern schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_max_length


class PatternCreate(BaseModel):
    pattern_name: str
    pattern_details: Optional[dict[str, Any]] = None
    description: Optional[str] = None

    @field_validator("pattern_name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("pattern_name must not be empty")
        return validate_max_length(v, 100, "pattern_name")


class PatternUpdate(BaseModel):
    pattern_name: Optional[str] = None
    pattern_details: Optional[dict[str, Any]] = None
    description: Optional[str] = None

    @field_validator("pattern_name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("pattern_name must not be empty")
        return validate_max_length(v, 100, "pattern_name")


class PatternResponse(BaseModel):
    id: int
    public_id: str
    pattern_name: str
    pattern_details: dict[str, Any]
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PatternUsageStats(BaseModel):
    pattern_id: int
    total_usage: int
    active_usage: int
    users: list[int]
    days: list[int]
    linked_records: int


class PatternDeleteResponse(BaseModel):
    message: str
    unlinked_records: int
