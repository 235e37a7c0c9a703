"""Pattern linking schemas - config, candidates, bulk operations"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


class AutoLinkingSettings(BaseModel):
    enabled: bool = True
    confidence_threshold: float = Field(0.7, ge=0.0, le=1.0)
    require_confirmation: bool = False


class DisplaySettings(BaseModel):
    show_confidence_scores: bool = True
    highlight_unlinked: bool = True
    group_by_user: bool = False
    show_pattern_suggestions: bool = True


class NotificationSettings(BaseModel):
    unlinked_data_alert: bool = True
    low_confidence_warning: bool = True
    bulk_operation_confirmation: bool = True


class LinkingConfig(BaseModel):
    time_slot_duration: int = Field(60, gt=0)
    auto_linking: AutoLinkingSettings = AutoLinkingSettings()
    display: DisplaySettings = DisplaySettings()
    notifications: NotificationSettings = NotificationSettings()


class CandidateResponse(BaseModel):
    record_id: int
    pattern_id: int
    pattern_name: str
    confidence: float
    scores: dict[str, float]
    matching_factors: dict[str, bool]
    auto_apply_eligible: bool
    reason: str


class LinkRequest(BaseModel):
    pattern_id: int
    method: Literal["manual", "auto", "bulk"] = "manual"
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class LinkResult(BaseModel):
    record_id: int
    pattern_id: Optional[int] = None
    previous_pattern_id: Optional[int] = None
    action: str
    method: str
    confidence: Optional[float] = None
    success: bool = True


class RecordFilter(BaseModel):
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    user_name: Optional[str] = None
    only_unassigned: bool = False


class BulkLinkRequest(BaseModel):
    operation: Literal["assign", "unassign", "reassign"]
    pattern_id: Optional[int] = None
    record_ids: Optional[list[int]] = None
    filter: Optional[RecordFilter] = None

    @model_validator(mode="after")
    def require_target(self):
        if self.record_ids is None and self.filter is None:
            raise ValueError("Either record_ids or filter is required")
        return self


class BulkLinkSummary(BaseModel):
    patterns_assigned: list[int]
    completion_rate_change: float


class BulkLinkResponse(BaseModel):
    total_processed: int
    successful: int
    failed: int
    results: list[LinkResult]
    errors: list[str]
    summary: BulkLinkSummary


class AutoLinkRequest(BaseModel):
    record_ids: Optional[list[int]] = None
    filter: Optional[RecordFilter] = None


class AutoLinkResponse(BaseModel):
    processed: int
    linked: int
    skipped: int
    results: list[LinkResult]


class HistoryEntry(BaseModel):
    id: int
    record_id: int
    pattern_id: Optional[int] = None
    previous_pattern_id: Optional[int] = None
    action: str
    method: str
    confidence: Optional[float] = None
    created_at: datetime

    class Config:
        from_attributes = True
