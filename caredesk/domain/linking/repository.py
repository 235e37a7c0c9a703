"""Pattern linking repository - history and scoring lookups"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...models import CareUser, PatternLinkHistory, ServiceRecord, UserTimePattern


class LinkingRepository:
    """Repository for pattern linking database operations"""

    @staticmethod
    def resolve_user_id(db: Session, record: ServiceRecord) -> Optional[int]:
        if record.user_id:
            return record.user_id
        user = db.query(CareUser.id).filter(CareUser.name == record.user_name).first()
        return user[0] if user else None

    @staticmethod
    def active_slots_by_pattern(db: Session, user_id: Optional[int]) -> dict[int, list[UserTimePattern]]:
        """The user's active weekly slots grouped by pattern id"""
        if user_id is None:
            return {}
        slots = (
            db.query(UserTimePattern)
            .filter(UserTimePattern.user_id == user_id, UserTimePattern.is_active.is_(True))
            .all()
        )
        grouped: dict[int, list[UserTimePattern]] = {}
        for slot in slots:
            grouped.setdefault(slot.pattern_id, []).append(slot)
        return grouped

    @staticmethod
    def used_pattern_ids(db: Session, user_name: str, exclude_record_id: Optional[int] = None) -> set[int]:
        """Patterns already linked to this user's other records"""
        query = db.query(ServiceRecord.pattern_id).filter(
            ServiceRecord.user_name == user_name, ServiceRecord.pattern_id.isnot(None)
        )
        if exclude_record_id is not None:
            query = query.filter(ServiceRecord.id != exclude_record_id)
        return {row[0] for row in query.distinct().all()}

    @staticmethod
    def add_history(
        db: Session,
        record_id: int,
        action: str,
        method: str,
        pattern_id: Optional[int] = None,
        previous_pattern_id: Optional[int] = None,
        confidence: Optional[float] = None,
    ) -> PatternLinkHistory:
        entry = PatternLinkHistory(
            record_id=record_id,
            pattern_id=pattern_id,
            previous_pattern_id=previous_pattern_id,
            action=action,
            method=method,
            confidence=confidence,
            created_at=datetime.now(),
        )
        db.add(entry)
        return entry

    @staticmethod
    def get_history(
        db: Session, day: Optional[date] = None, record_id: Optional[int] = None, limit: int = 500
    ) -> list[PatternLinkHistory]:
        query = db.query(PatternLinkHistory)
        if day:
            start = datetime.combine(day, time.min)
            query = query.filter(
                PatternLinkHistory.created_at >= start,
                PatternLinkHistory.created_at < start + timedelta(days=1),
            )
        if record_id is not None:
            query = query.filter(PatternLinkHistory.record_id == record_id)
        return (
            query.order_by(PatternLinkHistory.created_at.desc(), PatternLinkHistory.id.desc())
            .limit(limit)
            .all()
        )
