"""CSV import schemas - import logs, previews and name resolution"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel


class ImportLogResponse(BaseModel):
    id: int
    batch_id: str
    filename: str
    file_size: Optional[int] = None
    status: str
    import_count: int
    success_count: int
    error_count: int
    errors: Optional[list[str]] = None
    warnings: Optional[list[str]] = None
    summary: Optional[dict[str, Any]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NameResolution(BaseModel):
    original: str
    resolved: Optional[str] = None
    entity_id: Optional[int] = None
    source: Literal["learned", "existing", "registered", "unresolved"]
    confidence: float
    alternatives: list[str] = []


class ImportResult(BaseModel):
    batch_id: str
    status: str
    total_rows: int
    imported: int
    skipped_rows: int
    errors: list[str]
    warnings: list[str]
    auto_linked: int = 0
    name_resolutions: list[NameResolution] = []
    quality: dict[str, Any]


class PreviewResponse(BaseModel):
    filename: Optional[str] = None
    encoding: str
    headers: list[str]
    total_rows: int
    skipped_rows: int
    rows: list[dict[str, Any]]
    errors: list[str]
    warnings: list[str]
    is_valid: bool
