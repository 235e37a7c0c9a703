"""CSV import repository - import logs and learned name patterns"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import CsvImportLog, NameResolutionPattern


class ImportRepository:
    """Repository for import log and name pattern database operations"""

    @staticmethod
    def create_log(db: Session, **data) -> CsvImportLog:
        log = CsvImportLog(**data)
        db.add(log)
        db.commit()
        db.refresh(log)
        return log

    @staticmethod
    def get_log(db: Session, batch_id: str) -> Optional[CsvImportLog]:
        return db.query(CsvImportLog).filter(CsvImportLog.batch_id == batch_id).first()

    @staticmethod
    def list_logs(db: Session, limit: int = 50) -> list[CsvImportLog]:
        return db.query(CsvImportLog).order_by(CsvImportLog.id.desc()).limit(limit).all()

    @staticmethod
    def update_log(db: Session, log: CsvImportLog, **updates) -> CsvImportLog:
        for key, value in updates.items():
            setattr(log, key, value)
        db.commit()
        db.refresh(log)
        return log

    @staticmethod
    def list_name_patterns(db: Session, entity_type: str) -> list[NameResolutionPattern]:
        return (
            db.query(NameResolutionPattern)
            .filter(NameResolutionPattern.entity_type == entity_type)
            .order_by(NameResolutionPattern.usage_count.desc(), NameResolutionPattern.id)
            .all()
        )

    @staticmethod
    def learn_name_pattern(
        db: Session, entity_type: str, original_name: str, resolved_name: str, confidence: float
    ) -> NameResolutionPattern:
        """Insert the mapping, or bump usage when it is already known"""
        pattern = (
            db.query(NameResolutionPattern)
            .filter(
                NameResolutionPattern.entity_type == entity_type,
                NameResolutionPattern.original_name == original_name,
            )
            .first()
        )
        now = datetime.now()
        if pattern:
            pattern.resolved_name = resolved_name
            pattern.confidence = confidence
            pattern.usage_count += 1
            pattern.last_used_at = now
        else:
            pattern = NameResolutionPattern(
                entity_type=entity_type,
                original_name=original_name,
                resolved_name=resolved_name,
                confidence=confidence,
                usage_count=1,
                last_used_at=now,
            )
            db.add(pattern)
        db.commit()
        return pattern

    @staticmethod
    def touch_name_pattern(db: Session, pattern: NameResolutionPattern) -> None:
        pattern.usage_count += 1
        pattern.last_used_at = datetime.now()
        db.commit()
