"""Weekly schedule repository - Database operations for user time patterns"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import UserTimePattern


class ScheduleRepository:
    """Repository for user time pattern database operations"""

    @staticmethod
    def list_time_patterns(
        db: Session,
        user_id: Optional[int] = None,
        day_of_week: Optional[int] = None,
        is_active: Optional[bool] = None,
        user_ids: Optional[list[int]] = None,
    ) -> list[UserTimePattern]:
        query = db.query(UserTimePattern)
        if user_id is not None:
            query = query.filter(UserTimePattern.user_id == user_id)
        if user_ids:
            query = query.filter(UserTimePattern.user_id.in_(user_ids))
        if day_of_week is not None:
            query = query.filter(UserTimePattern.day_of_week == day_of_week)
        if is_active is not None:
            query = query.filter(UserTimePattern.is_active.is_(is_active))
        return query.order_by(
            UserTimePattern.day_of_week, UserTimePattern.start_time, UserTimePattern.id
        ).all()

    @staticmethod
    def get_time_pattern(db: Session, time_pattern_id: int) -> Optional[UserTimePattern]:
        return db.query(UserTimePattern).filter(UserTimePattern.id == time_pattern_id).first()

    @staticmethod
    def create_time_pattern(db: Session, **data) -> UserTimePattern:
        time_pattern = UserTimePattern(**data)
        db.add(time_pattern)
        db.commit()
        db.refresh(time_pattern)
        return time_pattern

    @staticmethod
    def update_time_pattern(db: Session, time_pattern: UserTimePattern, **updates) -> UserTimePattern:
        for key, value in updates.items():
            if value is not None and hasattr(time_pattern, key):
                setattr(time_pattern, key, value)
        db.commit()
        db.refresh(time_pattern)
        return time_pattern

    @staticmethod
    def delete_time_pattern(db: Session, time_pattern: UserTimePattern) -> None:
        db.delete(time_pattern)
        db.commit()
