"""Master data service - care users, staff and health baselines"""

import logging
import random
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import CareUser, ServiceRecord, Staff, UserHealthBaseline
from .repository import MasterRepository
from .schemas import (
    CareUserCreate,
    CareUserUpdate,
    HealthBaselineUpdate,
    StaffCreate,
    StaffUpdate,
)

logger = logging.getLogger(__name__)

DEFAULT_BASELINE = {
    "temperature_min": 36.0,
    "temperature_max": 37.5,
    "systolic_min": 100,
    "systolic_max": 140,
    "diastolic_min": 60,
    "diastolic_max": 90,
    "pulse_min": 60,
    "pulse_max": 100,
}


class MasterService:
    """Service layer for master data"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MasterRepository()

    # ========================================================================
    # CARE USERS
    # ========================================================================

    def list_users(self, active_only: bool = False, search: Optional[str] = None) -> list[CareUser]:
        return self.repo.list_users(self.db, active_only, search)

    def get_user(self, user_id: int) -> CareUser:
        user = self.repo.get_user(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def create_user(self, data: CareUserCreate) -> CareUser:
        if self.repo.get_user_by_name(self.db, data.name):
            raise HTTPException(status_code=409, detail=f"User '{data.name}' already exists")
        user = self.repo.add(self.db, CareUser(**data.model_dump()))
        logger.info(f"✅ Registered care user {user.id}: {user.name}")
        return user

    def update_user(self, user_id: int, data: CareUserUpdate) -> CareUser:
        user = self.get_user(user_id)
        if data.name and data.name != user.name and self.repo.get_user_by_name(self.db, data.name):
            raise HTTPException(status_code=409, detail=f"User '{data.name}' already exists")
        return self.repo.update(self.db, user, **data.model_dump(exclude_unset=True))

    def delete_user(self, user_id: int) -> dict:
        user = self.get_user(user_id)
        self.db.query(ServiceRecord).filter(ServiceRecord.user_id == user_id).update(
            {ServiceRecord.user_id: None}, synchronize_session=False
        )
        self.repo.delete(self.db, user)
        return {"message": "User deleted"}

    # ========================================================================
    # STAFF
    # ========================================================================

    def list_staff(self, active_only: bool = False, search: Optional[str] = None) -> list[Staff]:
        return self.repo.list_staff(self.db, active_only, search)

    def get_staff(self, staff_id: int) -> Staff:
        staff = self.repo.get_staff(self.db, staff_id)
        if not staff:
            raise HTTPException(status_code=404, detail="Staff not found")
        return staff

    def create_staff(self, data: StaffCreate) -> Staff:
        if self.repo.get_staff_by_name(self.db, data.name):
            raise HTTPException(status_code=409, detail=f"Staff '{data.name}' already exists")
        staff = self.repo.add(self.db, Staff(**data.model_dump()))
        logger.info(f"✅ Registered staff {staff.id}: {staff.name}")
        return staff

    def update_staff(self, staff_id: int, data: StaffUpdate) -> Staff:
        staff = self.get_staff(staff_id)
        if data.name and data.name != staff.name and self.repo.get_staff_by_name(self.db, data.name):
            raise HTTPException(status_code=409, detail=f"Staff '{data.name}' already exists")
        return self.repo.update(self.db, staff, **data.model_dump(exclude_unset=True))

    def delete_staff(self, staff_id: int) -> dict:
        staff = self.get_staff(staff_id)
        self.db.query(ServiceRecord).filter(ServiceRecord.staff_id == staff_id).update(
            {ServiceRecord.staff_id: None}, synchronize_session=False
        )
        self.repo.delete(self.db, staff)
        return {"message": "Staff deleted"}

    # ========================================================================
    # HEALTH BASELINES
    # ========================================================================

    def get_health_baseline(self, user_id: int) -> dict:
        """Stored baseline, or the office defaults when none was set"""
        self.get_user(user_id)
        baseline = self.repo.get_baseline(self.db, user_id)
        if not baseline:
            return {"user_id": user_id, **DEFAULT_BASELINE, "notes": None, "is_default": True}

        values = {key: getattr(baseline, key) for key in DEFAULT_BASELINE}
        return {"user_id": user_id, **values, "notes": baseline.notes, "is_default": False}

    def upsert_health_baseline(self, user_id: int, data: HealthBaselineUpdate) -> dict:
        self.get_user(user_id)
        baseline = self.repo.get_baseline(self.db, user_id)
        if baseline:
            for key, value in data.model_dump().items():
                setattr(baseline, key, value)
            self.db.commit()
        else:
            self.repo.add(self.db, UserHealthBaseline(user_id=user_id, **data.model_dump()))
        logger.info(f"✅ Saved health baseline for user {user_id}")
        return self.get_health_baseline(user_id)

    def generate_health_check_values(self, user_id: int, rng: Optional[random.Random] = None) -> dict:
        """Plausible vital signs inside the user's baseline ranges"""
        return {"user_id": user_id, **sample_health_values(self.get_health_baseline(user_id), rng)}

    def health_values_for_name(self, user_name: str, rng: Optional[random.Random] = None) -> dict:
        """Same as generate_health_check_values, falling back to defaults for unknown names"""
        user = self.repo.get_user_by_name(self.db, user_name)
        baseline = self.get_health_baseline(user.id) if user else DEFAULT_BASELINE
        return sample_health_values(baseline, rng)


def sample_health_values(baseline: dict, rng: Optional[random.Random] = None) -> dict:
    rng = rng or random.Random()
    return {
        "temperature": round(rng.uniform(baseline["temperature_min"], baseline["temperature_max"]), 1),
        "systolic": rng.randint(baseline["systolic_min"], baseline["systolic_max"]),
        "diastolic": rng.randint(baseline["diastolic_min"], baseline["diastolic_max"]),
        "pulse": rng.randint(baseline["pulse_min"], baseline["pulse_max"]),
    }
