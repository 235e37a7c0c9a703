"""Service record repository - Database operations for time-slot records"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import ServiceRecord


class RecordRepository:
    """Repository for service record database operations"""

    @staticmethod
    def search(
        db: Session,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        user_name: Optional[str] = None,
        staff_name: Optional[str] = None,
        is_assigned: Optional[bool] = None,
        pattern_id: Optional[int] = None,
        record_ids: Optional[list[int]] = None,
    ) -> list[ServiceRecord]:
        query = db.query(ServiceRecord).options(joinedload(ServiceRecord.pattern))

        if date_from:
            query = query.filter(ServiceRecord.service_date >= date_from)
        if date_to:
            query = query.filter(ServiceRecord.service_date <= date_to)
        if user_name:
            query = query.filter(ServiceRecord.user_name == user_name)
        if staff_name:
            query = query.filter(ServiceRecord.staff_name == staff_name)
        if is_assigned is not None:
            query = query.filter(ServiceRecord.is_pattern_assigned.is_(is_assigned))
        if pattern_id is not None:
            query = query.filter(ServiceRecord.pattern_id == pattern_id)
        if record_ids is not None:
            query = query.filter(ServiceRecord.id.in_(record_ids))

        return query.order_by(
            ServiceRecord.service_date, ServiceRecord.start_time, ServiceRecord.user_name
        ).all()

    @staticmethod
    def get_by_id(db: Session, record_id: int) -> Optional[ServiceRecord]:
        return db.query(ServiceRecord).filter(ServiceRecord.id == record_id).first()

    @staticmethod
    def create(db: Session, **record_data) -> ServiceRecord:
        record = ServiceRecord(**record_data)
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    @staticmethod
    def add_batch(db: Session, rows: list[dict]) -> list[ServiceRecord]:
        """Insert a batch of records in one transaction"""
        records = [ServiceRecord(**row) for row in rows]
        db.add_all(records)
        db.commit()
        return records

    @staticmethod
    def update(db: Session, record: ServiceRecord, **updates) -> ServiceRecord:
        for key, value in updates.items():
            if value is not None and hasattr(record, key):
                setattr(record, key, value)
        db.commit()
        db.refresh(record)
        return record

    @staticmethod
    def delete(db: Session, record: ServiceRecord) -> None:
        db.delete(record)
        db.commit()

    @staticmethod
    def delete_by_ids(db: Session, record_ids: list[int]) -> int:
        deleted = (
            db.query(ServiceRecord)
            .filter(ServiceRecord.id.in_(record_ids))
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    @staticmethod
    def delete_range(db: Session, date_from: date, date_to: date) -> int:
        deleted = (
            db.query(ServiceRecord)
            .filter(ServiceRecord.service_date >= date_from, ServiceRecord.service_date <= date_to)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    @staticmethod
    def set_pattern(db: Session, record_ids: list[int], pattern_id: Optional[int]) -> int:
        """Bulk-assign (or clear, with None) the pattern of the given records"""
        if not record_ids:
            return 0
        updated = (
            db.query(ServiceRecord)
            .filter(ServiceRecord.id.in_(record_ids))
            .update(
                {
                    ServiceRecord.pattern_id: pattern_id,
                    ServiceRecord.is_pattern_assigned: pattern_id is not None,
                },
                synchronize_session=False,
            )
        )
        db.commit()
        return updated
