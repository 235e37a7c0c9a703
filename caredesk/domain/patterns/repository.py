"""Service pattern repository - Database operations for patterns"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import ServicePattern, ServiceRecord, UserTimePattern


class PatternRepository:
    """Repository for service pattern database operations"""

    @staticmethod
    def list_patterns(db: Session) -> list[ServicePattern]:
        return db.query(ServicePattern).order_by(ServicePattern.pattern_name).all()

    @staticmethod
    def get_by_id(db: Session, pattern_id: int) -> Optional[ServicePattern]:
        return db.query(ServicePattern).filter(ServicePattern.id == pattern_id).first()

    @staticmethod
    def get_by_name(db: Session, pattern_name: str) -> Optional[ServicePattern]:
        return db.query(ServicePattern).filter(ServicePattern.pattern_name == pattern_name).first()

    @staticmethod
    def create(db: Session, **pattern_data) -> ServicePattern:
        pattern = ServicePattern(**pattern_data)
        db.add(pattern)
        db.commit()
        db.refresh(pattern)
        return pattern

    @staticmethod
    def update(db: Session, pattern: ServicePattern, **updates) -> ServicePattern:
        for key, value in updates.items():
            if value is not None and hasattr(pattern, key):
                setattr(pattern, key, value)
        db.commit()
        db.refresh(pattern)
        return pattern

    @staticmethod
    def delete(db: Session, pattern: ServicePattern) -> int:
        """Unlink records using the pattern, then delete it (time patterns cascade).

        Returns the number of records unlinked.
        """
        unlinked = (
            db.query(ServiceRecord)
            .filter(ServiceRecord.pattern_id == pattern.id)
            .update(
                {ServiceRecord.pattern_id: None, ServiceRecord.is_pattern_assigned: False},
                synchronize_session=False,
            )
        )
        db.delete(pattern)
        db.commit()
        return unlinked

    @staticmethod
    def get_time_patterns(db: Session, pattern_id: int) -> list[UserTimePattern]:
        return db.query(UserTimePattern).filter(UserTimePattern.pattern_id == pattern_id).all()

    @staticmethod
    def count_linked_records(db: Session, pattern_id: int) -> int:
        return (
            db.query(func.count(ServiceRecord.id))
            .filter(ServiceRecord.pattern_id == pattern_id)
            .scalar()
        )
