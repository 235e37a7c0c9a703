"""Master data schemas - care users, staff and health baselines"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import validate_max_length


def _clean_required_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("name must not be empty")
    return validate_max_length(v, 50, "name")


class CareUserCreate(BaseModel):
    name: str
    name_kana: Optional[str] = None
    user_code: Optional[str] = None
    care_level: Optional[str] = None
    insurance_number: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _clean_required_name(v)


class CareUserUpdate(BaseModel):
    name: Optional[str] = None
    name_kana: Optional[str] = None
    user_code: Optional[str] = None
    care_level: Optional[str] = None
    insurance_number: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        return _clean_required_name(v)


class CareUserResponse(BaseModel):
    id: int
    public_id: str
    name: str
    name_kana: Optional[str] = None
    user_code: Optional[str] = None
    care_level: Optional[str] = None
    insurance_number: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StaffCreate(BaseModel):
    name: str
    staff_code: Optional[str] = None
    email: Optional[str] = None
    is_service_manager: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _clean_required_name(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if v and "@" not in v:
            raise ValueError("Invalid email address")
        return v.lower() if v else v


class StaffUpdate(BaseModel):
    name: Optional[str] = None
    staff_code: Optional[str] = None
    email: Optional[str] = None
    is_service_manager: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        return _clean_required_name(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if v and "@" not in v:
            raise ValueError("Invalid email address")
        return v.lower() if v else v


class StaffResponse(BaseModel):
    id: int
    public_id: str
    name: str
    staff_code: Optional[str] = None
    email: Optional[str] = None
    is_service_manager: bool
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HealthBaselineUpdate(BaseModel):
    temperature_min: float = 36.0
    temperature_max: float = 37.5
    systolic_min: int = 100
    systolic_max: int = 140
    diastolic_min: int = 60
    diastolic_max: int = 90
    pulse_min: int = 60
    pulse_max: int = 100
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_ranges(self):
        for field in ("temperature", "systolic", "diastolic", "pulse"):
            low = getattr(self, f"{field}_min")
            high = getattr(self, f"{field}_max")
            if low >= high:
                raise ValueError(f"{field}_min must be lower than {field}_max")
        return self


class HealthBaselineResponse(BaseModel):
    user_id: int
    temperature_min: float
    temperature_max: float
    systolic_min: int
    systolic_max: int
    diastolic_min: int
    diastolic_max: int
    pulse_min: int
    pulse_max: int
    notes: Optional[str] = None
    is_default: bool = False

    class Config:
        from_attributes = True


class HealthCheckValues(BaseModel):
    user_id: int
    temperature: float
    systolic: int
    diastolic: int
    pulse: int
