"""Master data router - care users, staff and health baselines"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import (
    CareUserCreate,
    CareUserResponse,
    CareUserUpdate,
    HealthBaselineResponse,
    HealthBaselineUpdate,
    HealthCheckValues,
    StaffCreate,
    StaffResponse,
    StaffUpdate,
)
from .service import MasterService

router = APIRouter(prefix="/masters", tags=["Masters"])


def get_master_service(db: Session = Depends(get_db)) -> MasterService:
    """Dependency injection for MasterService"""
    return MasterService(db)


# ============================================================================
# CARE USERS
# ============================================================================


@router.get("/users", response_model=list[CareUserResponse])
async def list_users(
    active_only: bool = Query(False),
    search: Optional[str] = Query(None),
    service: MasterService = Depends(get_master_service),
):
    return service.list_users(active_only, search)


@router.post("/users", response_model=CareUserResponse, status_code=201)
async def create_user(data: CareUserCreate, service: MasterService = Depends(get_master_service)):
    return service.create_user(data)


@router.get("/users/{user_id}", response_model=CareUserResponse)
async def get_user(user_id: int, service: MasterService = Depends(get_master_service)):
    return service.get_user(user_id)


@router.put("/users/{user_id}", response_model=CareUserResponse)
async def update_user(
    user_id: int, data: CareUserUpdate, service: MasterService = Depends(get_master_service)
):
    return service.update_user(user_id, data)


@router.delete("/users/{user_id}")
async def delete_user(user_id: int, service: MasterService = Depends(get_master_service)):
    return service.delete_user(user_id)


@router.get("/users/{user_id}/health-baseline", response_model=HealthBaselineResponse)
async def get_health_baseline(user_id: int, service: MasterService = Depends(get_master_service)):
    return service.get_health_baseline(user_id)


@router.put("/users/{user_id}/health-baseline", response_model=HealthBaselineResponse)
async def save_health_baseline(
    user_id: int, data: HealthBaselineUpdate, service: MasterService = Depends(get_master_service)
):
    return service.upsert_health_baseline(user_id, data)


@router.get("/users/{user_id}/health-check", response_model=HealthCheckValues)
async def generate_health_check(user_id: int, service: MasterService = Depends(get_master_service)):
    """Sample vital signs within the user's baseline (used to pre-fill a record)"""
    return service.generate_health_check_values(user_id)


# ============================================================================
# STAFF
# ============================================================================


@router.get("/staff", response_model=list[StaffResponse])
async def list_staff(
    active_only: bool = Query(False),
    search: Optional[str] = Query(None),
    service: MasterService = Depends(get_master_service),
):
    return service.list_staff(active_only, search)


@router.post("/staff", response_model=StaffResponse, status_code=201)
async def create_staff(data: StaffCreate, service: MasterService = Depends(get_master_service)):
    return service.create_staff(data)


@router.get("/staff/{staff_id}", response_model=StaffResponse)
async def get_staff(staff_id: int, service: MasterService = Depends(get_master_service)):
    return service.get_staff(staff_id)


@router.put("/staff/{staff_id}", response_model=StaffResponse)
async def update_staff(
    staff_id: int, data: StaffUpdate, service: MasterService = Depends(get_master_service)
):
    return service.update_staff(staff_id, data)


@router.delete("/staff/{staff_id}")
async def delete_staff(staff_id: int, service: MasterService = Depends(get_master_service)):
    return service.delete_staff(staff_id)
