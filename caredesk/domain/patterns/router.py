"""Service pattern router - FastAPI endpoints for pattern operations"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from .details import default_pattern_details
from .schemas import (
    PatternCreate,
    PatternDeleteResponse,
    PatternResponse,
    PatternUpdate,
    PatternUsageStats,
)
from .service import PatternService

router = APIRouter(prefix="/patterns", tags=["Patterns"])


def get_pattern_service(db: Session = Depends(get_db)) -> PatternService:
    """Dependency injection for PatternService"""
    return PatternService(db)


@router.get("", response_model=list[PatternResponse])
async def list_patterns(service: PatternService = Depends(get_pattern_service)):
    """List all service patterns ordered by name"""
    return service.list_patterns()


@router.get("/default-details")
async def get_default_details():
    """Empty checklist used as the starting point for a new pattern"""
    return default_pattern_details()


@router.get("/{pattern_id}", response_model=PatternResponse)
async def get_pattern(pattern_id: int, service: PatternService = Depends(get_pattern_service)):
    return service.get_pattern(pattern_id)


@router.post("", response_model=PatternResponse, status_code=201)
async def create_pattern(data: PatternCreate, service: PatternService = Depends(get_pattern_service)):
    return service.create_pattern(data)


@router.put("/{pattern_id}", response_model=PatternResponse)
async def update_pattern(
    pattern_id: int, data: PatternUpdate, service: PatternService = Depends(get_pattern_service)
):
    return service.update_pattern(pattern_id, data)


@router.delete("/{pattern_id}", response_model=PatternDeleteResponse)
async def delete_pattern(pattern_id: int, service: PatternService = Depends(get_pattern_service)):
    """Delete a pattern. Linked records are unlinked and weekly slots removed."""
    return service.delete_pattern(pattern_id)


@router.get("/{pattern_id}/usage", response_model=PatternUsageStats)
async def get_pattern_usage(pattern_id: int, service: PatternService = Depends(get_pattern_service)):
    return service.get_usage_stats(pattern_id)
