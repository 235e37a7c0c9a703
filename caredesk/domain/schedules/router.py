"""Weekly schedule router - time patterns, grouped data and bulk pattern creation"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import (
    ApplyPatternRequest,
    BulkCreatePatternsRequest,
    GroupedTimeData,
    RecordLinkRequest,
    RecordUnlinkRequest,
    ScheduleStatistics,
    TimePatternCreate,
    TimePatternResponse,
    TimePatternUpdate,
    WeekViewResponse,
)
from .service import ScheduleService

router = APIRouter(prefix="/schedules", tags=["Schedules"])


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    """Dependency injection for ScheduleService"""
    return ScheduleService(db)


# ============================================================================
# USER TIME PATTERNS
# ============================================================================


@router.get("/time-patterns", response_model=list[TimePatternResponse])
async def list_time_patterns(
    user_id: Optional[int] = Query(None),
    day_of_week: Optional[int] = Query(None, ge=0, le=6),
    is_active: Optional[bool] = Query(None),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.list_time_patterns(user_id, day_of_week, is_active)


@router.get("/time-patterns/day", response_model=list[TimePatternResponse])
async def get_user_patterns_for_day(
    user_id: int = Query(...),
    day_of_week: int = Query(..., ge=0, le=6),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Active slots of one user on one weekday (0 = Sunday)"""
    return service.get_user_patterns_for_day(user_id, day_of_week)


@router.post("/time-patterns", response_model=TimePatternResponse, status_code=201)
async def create_time_pattern(
    data: TimePatternCreate, service: ScheduleService = Depends(get_schedule_service)
):
    return service.create_time_pattern(data)


@router.get("/time-patterns/{time_pattern_id}", response_model=TimePatternResponse)
async def get_time_pattern(
    time_pattern_id: int, service: ScheduleService = Depends(get_schedule_service)
):
    return service.get_time_pattern(time_pattern_id)


@router.put("/time-patterns/{time_pattern_id}", response_model=TimePatternResponse)
async def update_time_pattern(
    time_pattern_id: int,
    data: TimePatternUpdate,
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.update_time_pattern(time_pattern_id, data)


@router.delete("/time-patterns/{time_pattern_id}")
async def delete_time_pattern(
    time_pattern_id: int, service: ScheduleService = Depends(get_schedule_service)
):
    return service.delete_time_pattern(time_pattern_id)


@router.get("/weekly", response_model=dict[str, list[TimePatternResponse]])
async def get_weekly_schedule(
    user_ids: Optional[list[int]] = Query(None),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Active slots keyed by "{user_id}_{day_of_week}" """
    return service.get_weekly_schedule_data(user_ids)


@router.get("/week-view", response_model=WeekViewResponse)
async def get_week_view(
    day: date = Query(..., alias="date"),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.get_week_view(day)


# ============================================================================
# PATTERN CREATION FROM VISIT HISTORY
# ============================================================================


@router.get("/grouped-time-data", response_model=list[GroupedTimeData])
async def get_grouped_time_data(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.get_grouped_time_data(date_from, date_to)


@router.get("/statistics", response_model=ScheduleStatistics)
async def get_statistics(service: ScheduleService = Depends(get_schedule_service)):
    return service.get_statistics()


@router.post("/bulk-create-patterns")
async def bulk_create_patterns(
    data: BulkCreatePatternsRequest, service: ScheduleService = Depends(get_schedule_service)
):
    return service.bulk_create_patterns(data.group_ids)


@router.post("/link-records")
async def link_records(
    data: RecordLinkRequest, service: ScheduleService = Depends(get_schedule_service)
):
    return service.link_pattern_to_records(data.pattern_id, data.record_ids)


@router.post("/unlink-records")
async def unlink_records(
    data: RecordUnlinkRequest, service: ScheduleService = Depends(get_schedule_service)
):
    return service.unlink_pattern_from_records(data.record_ids)


@router.post("/apply-pattern")
async def apply_pattern(
    data: ApplyPatternRequest, service: ScheduleService = Depends(get_schedule_service)
):
    return service.apply_pattern_to_records(data.pattern_id, data.record_ids, data.special_notes)
