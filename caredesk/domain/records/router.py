"""Service record router - calendar views, CRUD, export and maintenance"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import (
    BulkDeleteRequest,
    DailyDetailResponse,
    MonthlyCalendarResponse,
    RecordCreate,
    RecordResponse,
    RecordUpdate,
    TimestampRegenerateRequest,
)
from .service import RecordService

router = APIRouter(prefix="/records", tags=["Service Records"])


def get_record_service(db: Session = Depends(get_db)) -> RecordService:
    """Dependency injection for RecordService"""
    return RecordService(db)


# ============================================================================
# CALENDAR
# ============================================================================


@router.get("/calendar/monthly", response_model=MonthlyCalendarResponse)
async def get_monthly_calendar(
    year_month: str = Query(..., description="YYYY-MM"),
    service: RecordService = Depends(get_record_service),
):
    """Every day of the month with its records and linking status"""
    return service.get_monthly_calendar(year_month)


@router.get("/calendar/daily", response_model=DailyDetailResponse)
async def get_daily_detail(
    day: date = Query(..., alias="date"),
    service: RecordService = Depends(get_record_service),
):
    """Hourly time slots for one day plus completion summary"""
    return service.get_daily_detail(day)


# ============================================================================
# EXPORT / BULK
# ============================================================================


@router.get("/export")
async def export_records_csv(
    year_month: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    service: RecordService = Depends(get_record_service),
):
    """Export records as CSV (by month or date range)"""
    return service.export_csv(year_month, date_from, date_to)


@router.post("/bulk-delete")
async def bulk_delete_records(
    data: BulkDeleteRequest, service: RecordService = Depends(get_record_service)
):
    return service.bulk_delete(data.record_ids)


@router.delete("/month")
async def delete_month(
    year_month: str = Query(..., description="YYYY-MM"),
    service: RecordService = Depends(get_record_service),
):
    """Delete every record of a month"""
    return service.delete_month(year_month)


@router.post("/timestamps/regenerate")
async def regenerate_timestamps(
    data: TimestampRegenerateRequest, service: RecordService = Depends(get_record_service)
):
    return service.regenerate_timestamps(data.year_month, data.only_missing)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=list[RecordResponse])
async def list_records(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    user_name: Optional[str] = Query(None),
    staff_name: Optional[str] = Query(None),
    is_assigned: Optional[bool] = Query(None),
    service: RecordService = Depends(get_record_service),
):
    return service.list_records(date_from, date_to, user_name, staff_name, is_assigned)


@router.post("", response_model=RecordResponse, status_code=201)
async def create_record(data: RecordCreate, service: RecordService = Depends(get_record_service)):
    """Manually add a visit record"""
    return service.create_record(data)


@router.get("/{record_id}", response_model=RecordResponse)
async def get_record(record_id: int, service: RecordService = Depends(get_record_service)):
    return service.get_record(record_id)


@router.put("/{record_id}", response_model=RecordResponse)
async def update_record(
    record_id: int, data: RecordUpdate, service: RecordService = Depends(get_record_service)
):
    return service.update_record(record_id, data)


@router.delete("/{record_id}")
async def delete_record(record_id: int, service: RecordService = Depends(get_record_service)):
    return service.delete_record(record_id)
