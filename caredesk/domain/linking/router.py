"""Pattern linking router - candidates, link/unlink, bulk and auto linking"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import (
    AutoLinkRequest,
    AutoLinkResponse,
    BulkLinkRequest,
    BulkLinkResponse,
    CandidateResponse,
    HistoryEntry,
    LinkingConfig,
    LinkRequest,
    LinkResult,
)
from .service import PatternLinkingService, get_linking_config, update_linking_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/linking", tags=["Pattern Linking"])


def get_linking_service(db: Session = Depends(get_db)) -> PatternLinkingService:
    """Dependency injection for PatternLinkingService"""
    return PatternLinkingService(db)


# ============================================================================
# CONFIGURATION
# ============================================================================


@router.get("/config", response_model=LinkingConfig)
async def read_config():
    return get_linking_config()


@router.put("/config", response_model=LinkingConfig)
async def write_config(config: LinkingConfig):
    return update_linking_config(config)


# ============================================================================
# SINGLE RECORD
# ============================================================================


@router.get("/records/{record_id}/candidates", response_model=list[CandidateResponse])
async def get_candidates(
    record_id: int, service: PatternLinkingService = Depends(get_linking_service)
):
    """Up to five scored pattern candidates for a record"""
    return service.get_pattern_candidates(record_id)


@router.post("/records/{record_id}/link", response_model=LinkResult)
async def link_record(
    record_id: int,
    data: LinkRequest,
    service: PatternLinkingService = Depends(get_linking_service),
):
    return service.link_pattern(record_id, data.pattern_id, data.method, data.confidence)


@router.post("/records/{record_id}/unlink", response_model=LinkResult)
async def unlink_record(
    record_id: int, service: PatternLinkingService = Depends(get_linking_service)
):
    return service.unlink_pattern(record_id)


# ============================================================================
# BULK OPERATIONS
# ============================================================================


@router.post("/bulk", response_model=BulkLinkResponse)
async def bulk_link(
    data: BulkLinkRequest, service: PatternLinkingService = Depends(get_linking_service)
):
    """Assign, unassign or reassign a pattern across many records"""
    return service.bulk_link(data)


@router.post("/auto", response_model=AutoLinkResponse)
async def auto_link(
    data: AutoLinkRequest, service: PatternLinkingService = Depends(get_linking_service)
):
    """Link unassigned records to their best candidate above the threshold"""
    return service.auto_link(data.record_ids, data.filter)


@router.get("/analysis")
async def analyze_unlinked(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    service: PatternLinkingService = Depends(get_linking_service),
):
    return service.analyze_unlinked(date_from, date_to)


@router.get("/history", response_model=list[HistoryEntry])
async def get_history(
    day: Optional[date] = Query(None, alias="date"),
    record_id: Optional[int] = Query(None),
    service: PatternLinkingService = Depends(get_linking_service),
):
    return service.get_history(day, record_id)
