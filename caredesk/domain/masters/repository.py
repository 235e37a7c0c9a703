"""Master data repository - Database operations for users, staff and baselines"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import CareUser, Staff, UserHealthBaseline


class MasterRepository:
    """Repository for care user / staff master operations"""

    # Care users
    @staticmethod
    def list_users(db: Session, active_only: bool = False, search: Optional[str] = None) -> list[CareUser]:
        query = db.query(CareUser)
        if active_only:
            query = query.filter(CareUser.is_active.is_(True))
        if search:
            like = f"%{search}%"
            query = query.filter((CareUser.name.like(like)) | (CareUser.name_kana.like(like)))
        return query.order_by(CareUser.name).all()

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[CareUser]:
        return db.query(CareUser).filter(CareUser.id == user_id).first()

    @staticmethod
    def get_user_by_name(db: Session, name: str) -> Optional[CareUser]:
        return db.query(CareUser).filter(CareUser.name == name).first()

    @staticmethod
    def list_user_names(db: Session) -> list[str]:
        return [row[0] for row in db.query(CareUser.name).order_by(CareUser.id).all()]

    # Staff
    @staticmethod
    def list_staff(db: Session, active_only: bool = False, search: Optional[str] = None) -> list[Staff]:
        query = db.query(Staff)
        if active_only:
            query = query.filter(Staff.is_active.is_(True))
        if search:
            query = query.filter(Staff.name.like(f"%{search}%"))
        return query.order_by(Staff.name).all()

    @staticmethod
    def get_staff(db: Session, staff_id: int) -> Optional[Staff]:
        return db.query(Staff).filter(Staff.id == staff_id).first()

    @staticmethod
    def get_staff_by_name(db: Session, name: str) -> Optional[Staff]:
        return db.query(Staff).filter(Staff.name == name).first()

    @staticmethod
    def list_staff_names(db: Session) -> list[str]:
        return [row[0] for row in db.query(Staff.name).order_by(Staff.id).all()]

    # Shared write helpers
    @staticmethod
    def add(db: Session, entity, commit: bool = True):
        db.add(entity)
        if commit:
            db.commit()
            db.refresh(entity)
        else:
            db.flush()
        return entity

    @staticmethod
    def update(db: Session, entity, **updates):
        for key, value in updates.items():
            if value is not None and hasattr(entity, key):
                setattr(entity, key, value)
        db.commit()
        db.refresh(entity)
        return entity

    @staticmethod
    def delete(db: Session, entity) -> None:
        db.delete(entity)
        db.commit()

    # Health baselines
    @staticmethod
    def get_baseline(db: Session, user_id: int) -> Optional[UserHealthBaseline]:
        return db.query(UserHealthBaseline).filter(UserHealthBaseline.user_id == user_id).first()
