"""Weekly schedule service - recurring slots and pattern creation from visit history"""

import copy
import logging
import random
from collections import Counter
from datetime import date, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import invalidate_pattern_cache
from ...models import CareUser, ServicePattern, ServiceRecord, UserTimePattern
from ...shared.record_times import generate_record_timestamps
from ...shared.validators import python_weekday_to_day_of_week, time_to_minutes
from ..masters.service import MasterService
from ..patterns.details import extract_main_service_type, generate_pattern_details_from_content
from ..patterns.repository import PatternRepository
from ..records.repository import RecordRepository
from ..records.schemas import RecordResponse
from .repository import ScheduleRepository
from .schemas import TimePatternCreate, TimePatternUpdate

logger = logging.getLogger(__name__)

SAMPLE_RECORDS_PER_GROUP = 5


def group_key(user_name: str, start_time: str) -> str:
    return f"{user_name}_{start_time}"


def main_service_type_for(records: list[ServiceRecord]) -> str:
    """Most frequent service type among the records; earliest seen wins ties"""
    counts = Counter(extract_main_service_type(r.service_content) for r in records)
    if not counts:
        return extract_main_service_type(None)
    return counts.most_common(1)[0][0]


class ScheduleService:
    """Service layer for weekly schedules"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ScheduleRepository()
        self.patterns = PatternRepository()
        self.records = RecordRepository()

    # ========================================================================
    # USER TIME PATTERNS
    # ========================================================================

    def _get_pattern(self, pattern_id: int) -> ServicePattern:
        pattern = self.patterns.get_by_id(self.db, pattern_id)
        if not pattern:
            raise HTTPException(status_code=404, detail="Pattern not found")
        return pattern

    def get_time_pattern(self, time_pattern_id: int) -> UserTimePattern:
        time_pattern = self.repo.get_time_pattern(self.db, time_pattern_id)
        if not time_pattern:
            raise HTTPException(status_code=404, detail="Time pattern not found")
        return time_pattern

    def create_time_pattern(self, data: TimePatternCreate) -> UserTimePattern:
        pattern = self._get_pattern(data.pattern_id)
        if not self.db.query(CareUser).filter(CareUser.id == data.user_id).first():
            raise HTTPException(status_code=404, detail="User not found")

        time_pattern = self.repo.create_time_pattern(
            self.db,
            **data.model_dump(),
            pattern_name=pattern.pattern_name,
            pattern_details=copy.deepcopy(pattern.pattern_details),
        )
        logger.info(
            f"📅 Scheduled pattern {pattern.id} for user {data.user_id} "
            f"on day {data.day_of_week} {data.start_time}-{data.end_time}"
        )
        return time_pattern

    def update_time_pattern(self, time_pattern_id: int, data: TimePatternUpdate) -> UserTimePattern:
        time_pattern = self.get_time_pattern(time_pattern_id)
        updates = data.model_dump(exclude_unset=True)

        start = updates.get("start_time") or time_pattern.start_time
        end = updates.get("end_time") or time_pattern.end_time
        if time_to_minutes(start) >= time_to_minutes(end):
            raise HTTPException(status_code=400, detail="start_time must be before end_time")

        if updates.get("pattern_id") and updates["pattern_id"] != time_pattern.pattern_id:
            pattern = self._get_pattern(updates["pattern_id"])
            updates["pattern_name"] = pattern.pattern_name
            updates["pattern_details"] = copy.deepcopy(pattern.pattern_details)

        if "is_active" in updates:
            # False must be written even though the repository skips None
            time_pattern.is_active = updates.pop("is_active")

        return self.repo.update_time_pattern(self.db, time_pattern, **updates)

    def delete_time_pattern(self, time_pattern_id: int) -> dict:
        time_pattern = self.get_time_pattern(time_pattern_id)
        self.repo.delete_time_pattern(self.db, time_pattern)
        return {"message": "Time pattern deleted"}

    def list_time_patterns(
        self,
        user_id: Optional[int] = None,
        day_of_week: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> list[UserTimePattern]:
        return self.repo.list_time_patterns(self.db, user_id, day_of_week, is_active)

    def get_user_patterns_for_day(self, user_id: int, day_of_week: int) -> list[UserTimePattern]:
        return self.repo.list_time_patterns(self.db, user_id=user_id, day_of_week=day_of_week, is_active=True)

    def get_weekly_schedule_data(self, user_ids: Optional[list[int]] = None) -> dict[str, list]:
        """Active slots keyed by "{user_id}_{day_of_week}" """
        schedule: dict[str, list] = {}
        for slot in self.repo.list_time_patterns(self.db, is_active=True, user_ids=user_ids):
            schedule.setdefault(f"{slot.user_id}_{slot.day_of_week}", []).append(slot)
        return schedule

    # ========================================================================
    # GROUPED TIME DATA
    # ========================================================================

    def get_grouped_time_data(
        self, date_from: Optional[date] = None, date_to: Optional[date] = None
    ) -> list[dict]:
        """Records grouped by user and start time, most frequent first"""
        records = self.records.search(self.db, date_from=date_from, date_to=date_to)
        records.sort(key=lambda r: r.service_date, reverse=True)

        grouped: dict[tuple[str, str], list[ServiceRecord]] = {}
        for record in records:
            grouped.setdefault((record.user_name, record.start_time), []).append(record)

        result = []
        for (user_name, start_time), group in grouped.items():
            main_type = main_service_type_for(group)
            linked = next((r for r in group if r.pattern_id), None)
            contents = list(dict.fromkeys(r.service_content for r in group if r.service_content))
            result.append(
                {
                    "id": group_key(user_name, start_time),
                    "user_name": user_name,
                    "start_time": start_time,
                    "end_time": Counter(r.end_time for r in group).most_common(1)[0][0],
                    "count": len(group),
                    "record_ids": [r.id for r in group],
                    "sample_records": [
                        RecordResponse.model_validate(r).model_dump()
                        for r in group[:SAMPLE_RECORDS_PER_GROUP]
                    ],
                    "service_contents": contents,
                    "main_service_type": main_type,
                    "suggested_pattern_name": f"{user_name}_{start_time}_{main_type}",
                    "is_pattern_created": linked is not None,
                    "pattern_id": linked.pattern_id if linked else None,
                }
            )

        result.sort(key=lambda g: (-g["count"], g["user_name"], g["start_time"]))
        return result

    def bulk_create_patterns(self, group_ids: list[str]) -> dict:
        """Create one pattern per selected group and link the group's records"""
        if not group_ids:
            raise HTTPException(status_code=400, detail="No groups selected")

        groups = {g["id"]: g for g in self.get_grouped_time_data()}
        created, reused, linked = [], [], 0
        errors: list[str] = []

        for group_id in group_ids:
            group = groups.get(group_id)
            if not group:
                errors.append(f"{group_id}: group not found")
                continue

            name = group["suggested_pattern_name"]
            pattern = self.patterns.get_by_name(self.db, name)
            if pattern:
                reused.append(pattern.id)
            else:
                content = " ".join(group["service_contents"])
                pattern = self.patterns.create(
                    self.db,
                    pattern_name=name,
                    pattern_details=generate_pattern_details_from_content(content),
                    description=(
                        f"{group['user_name']}さんの{group['start_time']}からの"
                        f"{group['main_service_type']}（{group['count']}件の記録から作成）"
                    ),
                )
                created.append(pattern.id)

            linked += self.records.set_pattern(self.db, group["record_ids"], pattern.id)

        if created:
            invalidate_pattern_cache()
        logger.info(f"✅ Bulk pattern creation: {len(created)} created, {linked} record(s) linked")
        return {
            "created_pattern_ids": created,
            "existing_pattern_ids": reused,
            "linked_records": linked,
            "errors": errors,
        }

    def link_pattern_to_records(self, pattern_id: int, record_ids: list[int]) -> dict:
        self._get_pattern(pattern_id)
        updated = self.records.set_pattern(self.db, record_ids, pattern_id)
        logger.info(f"🔗 Linked {updated} record(s) to pattern {pattern_id}")
        return {"updated": updated}

    def unlink_pattern_from_records(self, record_ids: list[int]) -> dict:
        updated = self.records.set_pattern(self.db, record_ids, None)
        logger.info(f"✂️ Unlinked {updated} record(s)")
        return {"updated": updated}

    def apply_pattern_to_records(
        self,
        pattern_id: int,
        record_ids: list[int],
        special_notes: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> dict:
        """Write the pattern checklist, with sampled vital signs, into each record"""
        pattern = self._get_pattern(pattern_id)
        records = self.records.search(self.db, record_ids=record_ids)
        if not records:
            raise HTTPException(status_code=404, detail="No matching records")

        rng = rng or random.Random()
        masters = MasterService(self.db)
        for record in records:
            vitals = masters.health_values_for_name(record.user_name, rng)
            details = copy.deepcopy(pattern.pattern_details) or {}
            pre_check = details.setdefault("pre_check", {})
            pre_check["temperature"] = vitals["temperature"]
            pre_check["blood_pressure"] = f"{vitals['systolic']}/{vitals['diastolic']}"
            pre_check["pulse"] = vitals["pulse"]

            record.service_details = details
            record.pattern_id = pattern.id
            record.is_pattern_assigned = True
            if special_notes is not None:
                record.special_notes = special_notes
            if record.record_created_at is None:
                record.record_created_at, record.print_datetime = generate_record_timestamps(
                    record.service_date, record.start_time, record.end_time, rng
                )

        self.db.commit()
        logger.info(f"📝 Applied pattern {pattern.id} to {len(records)} record(s)")
        return {"updated": len(records)}

    def get_statistics(self) -> dict:
        groups = self.get_grouped_time_data()
        with_patterns = sum(1 for g in groups if g["is_pattern_created"])
        return {
            "total_groups": len(groups),
            "groups_with_patterns": with_patterns,
            "groups_without_patterns": len(groups) - with_patterns,
            "total_records": sum(g["count"] for g in groups),
        }

    # ========================================================================
    # WEEK VIEW
    # ========================================================================

    def get_week_view(self, any_day: date) -> dict:
        """Monday-to-Sunday view; unlinked records are shown as schedule entries"""
        week_start = any_day - timedelta(days=any_day.weekday())
        week_end = week_start + timedelta(days=6)
        records = self.records.search(self.db, date_from=week_start, date_to=week_end)

        days = []
        for offset in range(7):
            day = week_start + timedelta(days=offset)
            day_records = [r for r in records if r.service_date == day]
            days.append(
                {
                    "day": day,
                    "day_of_week": python_weekday_to_day_of_week(day),
                    "records": [RecordResponse.model_validate(r).model_dump() for r in day_records],
                    "schedules": [
                        RecordResponse.model_validate(r).model_dump()
                        for r in day_records
                        if not r.is_pattern_assigned or r.pattern_id is None
                    ],
                }
            )
        return {"week_start": week_start, "week_end": week_end, "days": days}
