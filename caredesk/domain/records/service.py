"""Service record service - calendar views, manual entry, export and cleanup"""

import calendar
import csv
import logging
import random
from collections import Counter
from datetime import date, datetime, timedelta
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...models import CareUser, ServiceRecord, Staff
from ...shared.record_times import generate_record_timestamps
from ...shared.validators import (
    python_weekday_to_day_of_week,
    time_to_minutes,
    validate_year_month,
)
from .repository import RecordRepository
from .schemas import RecordCreate, RecordResponse, RecordUpdate

logger = logging.getLogger(__name__)

EXPORT_HEADERS = [
    "利用者名",
    "利用者コード",
    "担当職員",
    "サービス日",
    "開始時間",
    "終了時間",
    "時間(分)",
    "サービス内容",
    "パターン名",
    "紐付け状況",
    "作成日時",
]
LINKED_LABEL = "紐付け済み"
UNLINKED_LABEL = "未紐付け"

# Nullable text columns a PUT may clear with an explicit null
CLEARABLE_FIELDS = ("staff_name", "service_content", "special_notes")


def month_range(year_month: str) -> tuple[date, date]:
    """First and last day of a YYYY-MM month"""
    year, month = validate_year_month(year_month)
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def completion_status(total: int, assigned: int) -> str:
    if total == 0:
        return "none"
    if assigned == total:
        return "complete"
    return "partial"


def _counts(records: list[ServiceRecord]) -> dict:
    assigned = sum(1 for r in records if r.is_pattern_assigned)
    return {
        "total": len(records),
        "assigned": assigned,
        "unassigned": len(records) - assigned,
        "status": completion_status(len(records), assigned),
    }


def _serialize(records: list[ServiceRecord]) -> list[dict]:
    return [RecordResponse.model_validate(r).model_dump() for r in records]


class RecordService:
    """Service layer for time-slot records"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RecordRepository()

    # ========================================================================
    # CALENDAR VIEWS
    # ========================================================================

    def get_monthly_calendar(self, year_month: str) -> dict:
        try:
            first, last = month_range(year_month)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        records = self.repo.search(self.db, date_from=first, date_to=last)
        by_day: dict[date, list[ServiceRecord]] = {}
        for record in records:
            by_day.setdefault(record.service_date, []).append(record)

        days = []
        day = first
        while day <= last:
            day_records = by_day.get(day, [])
            days.append(
                {
                    "day": day,
                    "day_of_week": python_weekday_to_day_of_week(day),
                    "records": _serialize(day_records),
                    **_counts(day_records),
                }
            )
            day += timedelta(days=1)

        totals = _counts(records)
        stats = {
            "total_records": totals["total"],
            "assigned": totals["assigned"],
            "unassigned": totals["unassigned"],
            "complete_days": sum(1 for d in days if d["status"] == "complete"),
            "partial_days": sum(1 for d in days if d["status"] == "partial"),
            "empty_days": sum(1 for d in days if d["status"] == "none"),
        }
        logger.info(
            f"📊 Monthly calendar {year_month}: {stats['total_records']} records, "
            f"{stats['complete_days']} complete day(s)"
        )
        return {"year": first.year, "month": first.month, "days": days, "stats": stats}

    def get_daily_detail(self, day: date) -> dict:
        records = self.repo.search(self.db, date_from=day, date_to=day)

        slots = []
        for hour in range(24):
            slot_records = [r for r in records if time_to_minutes(r.start_time) // 60 == hour]
            slots.append(
                {
                    "hour": hour,
                    "label": f"{hour:02d}:00-{hour + 1:02d}:00",
                    "records": _serialize(slot_records),
                    **_counts(slot_records),
                }
            )

        totals = _counts(records)
        completion_rate = (
            round(totals["assigned"] / totals["total"] * 100, 1) if totals["total"] else 0.0
        )

        peak_hour = None
        peak_total = 0
        for slot in slots:
            if slot["total"] > peak_total:
                peak_hour, peak_total = slot["hour"], slot["total"]

        pattern_counts = Counter(
            (r.pattern_id, r.pattern_name) for r in records if r.is_pattern_assigned and r.pattern
        )
        distribution = [
            {
                "pattern_id": pattern_id,
                "pattern_name": pattern_name,
                "count": count,
                "percentage": round(count / totals["total"] * 100, 1),
            }
            for (pattern_id, pattern_name), count in sorted(
                pattern_counts.items(), key=lambda item: (-item[1], item[0][1])
            )
        ]

        return {
            "day": day,
            "time_slots": slots,
            "summary": {
                "total": totals["total"],
                "assigned": totals["assigned"],
                "unassigned": totals["unassigned"],
                "completion_rate": completion_rate,
                "users": sorted({r.user_name for r in records}),
                "staff": sorted({r.staff_name for r in records if r.staff_name}),
                "patterns_used": sorted({r.pattern_name for r in records if r.pattern}),
            },
            "stats": {"peak_hour": peak_hour, "pattern_distribution": distribution},
        }

    # ========================================================================
    # CRUD
    # ========================================================================

    def list_records(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        user_name: Optional[str] = None,
        staff_name: Optional[str] = None,
        is_assigned: Optional[bool] = None,
    ) -> list[ServiceRecord]:
        return self.repo.search(
            self.db,
            date_from=date_from,
            date_to=date_to,
            user_name=user_name,
            staff_name=staff_name,
            is_assigned=is_assigned,
        )

    def get_record(self, record_id: int) -> ServiceRecord:
        record = self.repo.get_by_id(self.db, record_id)
        if not record:
            raise HTTPException(status_code=404, detail="Record not found")
        return record

    def create_record(self, data: RecordCreate, rng: Optional[random.Random] = None) -> ServiceRecord:
        logger.info(f"📥 Manual record for {data.user_name} on {data.service_date}")
        created_at, printed_at = generate_record_timestamps(
            data.service_date, data.start_time, data.end_time, rng
        )
        user = self.db.query(CareUser).filter(CareUser.name == data.user_name).first()
        staff = (
            self.db.query(Staff).filter(Staff.name == data.staff_name).first()
            if data.staff_name
            else None
        )
        return self.repo.create(
            self.db,
            **data.model_dump(),
            user_id=user.id if user else None,
            staff_id=staff.id if staff else None,
            is_manually_created=True,
            is_pattern_assigned=False,
            record_created_at=created_at,
            print_datetime=printed_at,
        )

    def update_record(self, record_id: int, data: RecordUpdate) -> ServiceRecord:
        record = self.get_record(record_id)
        updates = data.model_dump(exclude_unset=True)

        start = updates.get("start_time") or record.start_time
        end = updates.get("end_time") or record.end_time
        span = time_to_minutes(end) - time_to_minutes(start)
        if span <= 0:
            raise HTTPException(status_code=400, detail="start_time must be before end_time")
        if ("start_time" in updates or "end_time" in updates) and "duration_minutes" not in updates:
            updates["duration_minutes"] = span

        # repo.update ignores None, so explicit clears are applied here
        for key in CLEARABLE_FIELDS:
            if key in updates and updates[key] is None:
                del updates[key]
                setattr(record, key, None)
                if key == "staff_name":
                    record.staff_id = None

        return self.repo.update(self.db, record, **updates)

    def delete_record(self, record_id: int) -> dict:
        record = self.get_record(record_id)
        self.repo.delete(self.db, record)
        return {"message": "Record deleted"}

    def bulk_delete(self, record_ids: list[int]) -> dict:
        if not record_ids:
            raise HTTPException(status_code=400, detail="No record IDs provided")
        deleted = self.repo.delete_by_ids(self.db, record_ids)
        logger.info(f"🗑️ Bulk deleted {deleted} record(s)")
        return {"message": f"Successfully deleted {deleted} record(s)", "deleted_count": deleted}

    def delete_month(self, year_month: str) -> dict:
        try:
            first, last = month_range(year_month)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        deleted = self.repo.delete_range(self.db, first, last)
        logger.warning(f"🗑️ Deleted all {deleted} record(s) for {year_month}")
        return {"message": f"Deleted {deleted} record(s) for {year_month}", "deleted_count": deleted}

    # ========================================================================
    # EXPORT / MAINTENANCE
    # ========================================================================

    def export_csv(
        self,
        year_month: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> StreamingResponse:
        if year_month:
            try:
                date_from, date_to = month_range(year_month)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e)) from e

        records = self.repo.search(self.db, date_from=date_from, date_to=date_to)

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(EXPORT_HEADERS)
        for record in records:
            writer.writerow(
                [
                    record.user_name,
                    record.user_code or "",
                    record.staff_name or "",
                    record.service_date.isoformat(),
                    record.start_time,
                    record.end_time,
                    record.duration_minutes,
                    record.service_content or "",
                    record.pattern_name or "",
                    LINKED_LABEL if record.is_pattern_assigned else UNLINKED_LABEL,
                    (
                        record.record_created_at.strftime("%Y-%m-%d %H:%M:%S")
                        if record.record_created_at
                        else ""
                    ),
                ]
            )

        suffix = year_month or datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"service_records_{suffix}.csv"
        logger.info(f"✅ CSV export: {filename} ({len(records)} records)")

        # UTF-8 BOM for spreadsheet tools
        return StreamingResponse(
            iter(["\ufeff" + output.getvalue()]),
            media_type="text/csv; charset=utf-8",
            headers={
                "Content-Disposition": f"attachment; filename={filename}",
                "Cache-Control": "no-cache",
            },
        )

    def regenerate_timestamps(
        self, year_month: str, only_missing: bool = True, rng: Optional[random.Random] = None
    ) -> dict:
        """Fill record_created_at / print_datetime for a month of records"""
        try:
            first, last = month_range(year_month)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        rng = rng or random.Random()
        records = self.repo.search(self.db, date_from=first, date_to=last)
        updated = 0
        for record in records:
            if only_missing and record.record_created_at and record.print_datetime:
                continue
            created_at, printed_at = generate_record_timestamps(
                record.service_date, record.start_time, record.end_time, rng
            )
            record.record_created_at = created_at
            record.print_datetime = printed_at
            updated += 1

        self.db.commit()
        logger.info(f"🕒 Regenerated timestamps for {updated}/{len(records)} record(s) in {year_month}")
        return {"updated": updated, "total": len(records)}
