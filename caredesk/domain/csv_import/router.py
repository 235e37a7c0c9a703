"""CSV import router - visit-log upload, preview and import logs"""

import asyncio

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import ImportLogResponse, ImportResult, PreviewResponse
from .service import CsvImportService

router = APIRouter(prefix="/csv-import", tags=["CSV Import"])


def get_csv_import_service(db: Session = Depends(get_db)) -> CsvImportService:
    """Dependency injection for CsvImportService"""
    return CsvImportService(db)


async def _read_upload(file: UploadFile) -> bytes:
    if not file or not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")
    contents = await file.read()
    if len(contents) == 0:
        raise HTTPException(status_code=400, detail="Empty file")
    return contents


@router.post("", response_model=ImportResult)
async def import_csv(
    file: UploadFile = File(...),
    auto_link: bool = Form(False),
    service: CsvImportService = Depends(get_csv_import_service),
):
    """Import a visit-log CSV (UTF-8 or Shift_JIS)"""
    contents = await _read_upload(file)
    # Off the event loop, so a cancel request can land between batches
    return await asyncio.to_thread(service.import_csv, file.filename, contents, auto_link=auto_link)


@router.post("/preview", response_model=PreviewResponse)
async def preview_csv(
    file: UploadFile = File(...),
    service: CsvImportService = Depends(get_csv_import_service),
):
    """Parse and validate a CSV without importing it"""
    contents = await _read_upload(file)
    return await asyncio.to_thread(service.preview_csv, file.filename, contents)


@router.get("/logs", response_model=list[ImportLogResponse])
async def list_import_logs(
    limit: int = Query(50, ge=1, le=500),
    service: CsvImportService = Depends(get_csv_import_service),
):
    return service.list_import_logs(limit)


@router.get("/logs/{batch_id}", response_model=ImportLogResponse)
async def get_import_log(
    batch_id: str, service: CsvImportService = Depends(get_csv_import_service)
):
    return service.get_import_log(batch_id)


@router.post("/logs/{batch_id}/cancel", response_model=ImportLogResponse)
async def cancel_import(
    batch_id: str, service: CsvImportService = Depends(get_csv_import_service)
):
    return service.cancel_import(batch_id)
