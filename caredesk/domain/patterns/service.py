"""Service pattern service - Business logic for pattern operations"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import PATTERN_LIST_KEY, cache, invalidate_pattern_cache
from ...models import ServicePattern
from .details import merge_pattern_details
from .repository import PatternRepository
from .schemas import PatternCreate, PatternResponse, PatternUpdate

logger = logging.getLogger(__name__)


class PatternService:
    """Service layer for service pattern business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PatternRepository()

    def list_patterns(self) -> list[dict]:
        cached = cache.get(PATTERN_LIST_KEY)
        if cached is not None:
            return cached

        patterns = [
            PatternResponse.model_validate(p).model_dump(mode="json")
            for p in self.repo.list_patterns(self.db)
        ]
        cache.set(PATTERN_LIST_KEY, patterns)
        return patterns

    def get_pattern(self, pattern_id: int) -> ServicePattern:
        pattern = self.repo.get_by_id(self.db, pattern_id)
        if not pattern:
            raise HTTPException(status_code=404, detail="Pattern not found")
        return pattern

    def create_pattern(self, data: PatternCreate) -> ServicePattern:
        logger.info(f"📥 Creating service pattern: {data.pattern_name}")

        if self.repo.get_by_name(self.db, data.pattern_name):
            raise HTTPException(status_code=409, detail=f"Pattern '{data.pattern_name}' already exists")

        pattern = self.repo.create(
            self.db,
            pattern_name=data.pattern_name,
            pattern_details=merge_pattern_details(data.pattern_details),
            description=data.description,
        )
        invalidate_pattern_cache()
        logger.info(f"✅ Created pattern {pattern.id}: {pattern.pattern_name}")
        return pattern

    def update_pattern(self, pattern_id: int, data: PatternUpdate) -> ServicePattern:
        pattern = self.get_pattern(pattern_id)

        if data.pattern_name and data.pattern_name != pattern.pattern_name:
            if self.repo.get_by_name(self.db, data.pattern_name):
                raise HTTPException(
                    status_code=409, detail=f"Pattern '{data.pattern_name}' already exists"
                )

        updates = {
            "pattern_name": data.pattern_name,
            "description": data.description,
        }
        if data.pattern_details is not None:
            updates["pattern_details"] = merge_pattern_details(data.pattern_details)

        pattern = self.repo.update(self.db, pattern, **updates)
        invalidate_pattern_cache()
        return pattern

    def delete_pattern(self, pattern_id: int) -> dict:
        pattern = self.get_pattern(pattern_id)
        name = pattern.pattern_name
        unlinked = self.repo.delete(self.db, pattern)
        invalidate_pattern_cache()
        logger.info(f"🗑️ Deleted pattern {pattern_id} ({name}), unlinked {unlinked} record(s)")
        return {"message": f"Pattern '{name}' deleted", "unlinked_records": unlinked}

    def get_usage_stats(self, pattern_id: int) -> dict:
        self.get_pattern(pattern_id)
        time_patterns = self.repo.get_time_patterns(self.db, pattern_id)

        return {
            "pattern_id": pattern_id,
            "total_usage": len(time_patterns),
            "active_usage": sum(1 for tp in time_patterns if tp.is_active),
            "users": sorted({tp.user_id for tp in time_patterns}),
            "days": sorted({tp.day_of_week for tp in time_patterns}),
            "linked_records": self.repo.count_linked_records(self.db, pattern_id),
        }
