"""CSV import service - visit-log upload, name resolution and import logs"""

import logging
import random
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import AUTO_REGISTER_NAMES, CSV_IMPORT_BATCH_SIZE, CSV_MAX_FILE_SIZE, CSV_MAX_FILE_SIZE_MB
from ...models import CareUser, CsvImportLog, Staff
from ...shared.name_normalizer import clean_name, find_best_match, rank_name_candidates
from ...shared.record_times import generate_record_timestamps
from ...shared.validators import validate_date_string, validate_uuid
from ..linking.service import PatternLinkingService, get_linking_config
from ..masters.repository import MasterRepository
from ..records.repository import RecordRepository
from .parser import CsvDecodeError, CsvParseError, parse_csv, validate_rows
from .quality import build_quality_report, classify_validation_error
from .repository import ImportRepository

logger = logging.getLogger(__name__)

LEARNED_THRESHOLD = 0.9
EXISTING_THRESHOLD = 0.8
ALTERNATIVE_MIN_SIMILARITY = 0.5
MAX_ALTERNATIVES = 5
PREVIEW_ROWS = 20
MAX_STORED_MESSAGES = 200

CANCELLABLE_STATUSES = ("pending", "processing")


def check_upload(filename: Optional[str], size: int) -> None:
    """415 for non-CSV names, 413 above the configured size"""
    if not filename or not filename.lower().endswith(".csv"):
        raise HTTPException(status_code=415, detail="Only .csv files are accepted")
    if size > CSV_MAX_FILE_SIZE:
        raise HTTPException(
            status_code=413, detail=f"File too large. Maximum size: {CSV_MAX_FILE_SIZE_MB}MB"
        )


class CsvImportService:
    """Service layer for CSV imports"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ImportRepository()
        self.masters = MasterRepository()
        self.records = RecordRepository()
        self._resolved: dict[tuple[str, str], dict] = {}

    # ========================================================================
    # NAME RESOLUTION
    # ========================================================================

    def _master_names(self, entity_type: str) -> list[str]:
        if entity_type == "user":
            return self.masters.list_user_names(self.db)
        return self.masters.list_staff_names(self.db)

    def _master_by_name(self, entity_type: str, name: str):
        if entity_type == "user":
            return self.masters.get_user_by_name(self.db, name)
        return self.masters.get_staff_by_name(self.db, name)

    def _register(self, entity_type: str, name: str, row: dict):
        if entity_type == "user":
            entity = CareUser(name=name, name_kana=row.get("user_name_kana"))
        else:
            entity = Staff(name=name)
        entity = self.masters.add(self.db, entity)
        logger.info(f"🆕 Registered {entity_type} master from CSV: {name}")
        return entity

    def resolve_name(self, entity_type: str, raw_name: str, row: Optional[dict] = None) -> dict:
        """
        Map a raw CSV name to a master row.

        Order: learned mappings, then existing master names, then
        auto-registration. Results are cached for the life of the service.
        """
        key = (entity_type, raw_name)
        if key in self._resolved:
            return self._resolved[key]

        result = self._resolve_uncached(entity_type, raw_name, row or {})
        self._resolved[key] = result
        return result

    def _resolve_uncached(self, entity_type: str, raw_name: str, row: dict) -> dict:
        learned = self.repo.list_name_patterns(self.db, entity_type)
        best = find_best_match(raw_name, [p.original_name for p in learned], LEARNED_THRESHOLD)
        if best:
            pattern = next(p for p in learned if p.original_name == best[0])
            entity = self._master_by_name(entity_type, pattern.resolved_name)
            if entity:
                self.repo.touch_name_pattern(self.db, pattern)
                return {
                    "original": raw_name,
                    "resolved": entity.name,
                    "entity_id": entity.id,
                    "source": "learned",
                    "confidence": best[1].score,
                    "alternatives": [],
                }

        names = self._master_names(entity_type)
        best = find_best_match(raw_name, names, EXISTING_THRESHOLD)
        if best:
            entity = self._master_by_name(entity_type, best[0])
            if entity.name != raw_name:
                self.repo.learn_name_pattern(self.db, entity_type, raw_name, entity.name, best[1].score)
            return {
                "original": raw_name,
                "resolved": entity.name,
                "entity_id": entity.id,
                "source": "existing",
                "confidence": best[1].score,
                "alternatives": [],
            }

        if AUTO_REGISTER_NAMES:
            entity = self._register(entity_type, clean_name(raw_name) or raw_name, row)
            return {
                "original": raw_name,
                "resolved": entity.name,
                "entity_id": entity.id,
                "source": "registered",
                "confidence": 1.0,
                "alternatives": [],
            }

        ranked = rank_name_candidates(raw_name, names, ALTERNATIVE_MIN_SIMILARITY)
        alternatives = [name for name, match in ranked if match.score > ALTERNATIVE_MIN_SIMILARITY]
        return {
            "original": raw_name,
            "resolved": None,
            "entity_id": None,
            "source": "unresolved",
            "confidence": 0.0,
            "alternatives": alternatives[:MAX_ALTERNATIVES],
        }

    # ========================================================================
    # IMPORT
    # ========================================================================

    def _fail(self, log: CsvImportLog, errors: list[str], status_code: int, message: str):
        self.repo.update_log(
            self.db,
            log,
            status="failed",
            errors=errors[:MAX_STORED_MESSAGES],
            error_count=len(errors),
            completed_at=datetime.now(),
        )
        logger.error(f"❌ CSV import {log.batch_id} failed: {message}")
        raise HTTPException(
            status_code=status_code,
            detail={"message": message, "batch_id": log.batch_id, "errors": errors[:50]},
        )

    def _is_cancelled(self, log: CsvImportLog) -> bool:
        self.db.refresh(log)
        return log.status == "cancelled"

    def _build_record(self, row: dict, batch_id: str, rng: random.Random) -> tuple[dict, list[str]]:
        warnings = []
        user = self.resolve_name("user", row["user_name"], row)
        if user["source"] == "unresolved":
            hint = f"（候補: {', '.join(user['alternatives'])}）" if user["alternatives"] else ""
            warnings.append(f"行 {row['line']}: 利用者「{row['user_name']}」をマスタで特定できません{hint}")

        staff = None
        if row.get("staff_name"):
            staff = self.resolve_name("staff", row["staff_name"], row)
            if staff["source"] == "unresolved":
                warnings.append(f"行 {row['line']}: 職員「{row['staff_name']}」をマスタで特定できません")

        service_date = validate_date_string(row["service_date"])
        created_at, printed_at = generate_record_timestamps(
            service_date, row["start_time"], row["end_time"], rng
        )
        record = {
            "user_id": user["entity_id"],
            "user_name": user["resolved"] or row["user_name"],
            "user_code": row.get("user_code"),
            "staff_id": staff["entity_id"] if staff else None,
            "staff_name": (staff["resolved"] or row["staff_name"]) if staff else None,
            "service_date": service_date,
            "start_time": row["start_time"],
            "end_time": row["end_time"],
            "duration_minutes": row["duration_minutes"],
            "service_content": row.get("service_content"),
            "is_pattern_assigned": False,
            "is_manually_created": False,
            "record_created_at": created_at,
            "print_datetime": printed_at,
            "csv_import_batch_id": batch_id,
        }
        return record, warnings

    def import_csv(
        self,
        filename: Optional[str],
        content: bytes,
        auto_link: bool = False,
        rng: Optional[random.Random] = None,
    ) -> dict:
        check_upload(filename, len(content))
        rng = rng or random.Random()

        log = self.repo.create_log(
            self.db,
            filename=filename,
            file_size=len(content),
            status="processing",
            started_at=datetime.now(),
        )
        logger.info(f"📥 CSV import {log.batch_id} started: {filename} ({len(content)} bytes)")

        try:
            return self._run_import(log, content, auto_link, rng)
        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            self.repo.update_log(
                self.db,
                log,
                status="failed",
                errors=[f"unknown: {e}"],
                error_count=1,
                completed_at=datetime.now(),
            )
            logger.error(f"❌ CSV import {log.batch_id} aborted: {e}")
            raise

    def _run_import(
        self, log: CsvImportLog, content: bytes, auto_link: bool, rng: random.Random
    ) -> dict:
        try:
            parsed = parse_csv(content)
        except CsvParseError as e:
            error_type = "file_read" if isinstance(e, CsvDecodeError) else "parse"
            self._fail(log, [f"{error_type}: {e}"], 400, str(e))

        validation = validate_rows(parsed.rows)
        typed_errors = [(classify_validation_error(msg), msg) for msg in validation.errors]
        if not validation.valid_rows:
            self._fail(log, validation.errors or ["取り込み可能な行がありません"], 400, "No valid rows")

        warnings = list(validation.warnings)
        if parsed.skipped_rows:
            warnings.append(f"利用者名または日付のない {parsed.skipped_rows} 行をスキップしました")

        imported_ids: list[int] = []
        cancelled = False
        rows = validation.valid_rows
        for offset in range(0, len(rows), CSV_IMPORT_BATCH_SIZE):
            if self._is_cancelled(log):
                cancelled = True
                logger.warning(f"⚠️ CSV import {log.batch_id} cancelled after {len(imported_ids)} row(s)")
                break

            batch = rows[offset:offset + CSV_IMPORT_BATCH_SIZE]
            payload = []
            for row in batch:
                record, row_warnings = self._build_record(row, log.batch_id, rng)
                payload.append(record)
                warnings.extend(row_warnings)
                typed_errors.extend(("name_resolution", w) for w in row_warnings)

            try:
                imported_ids.extend(r.id for r in self.records.add_batch(self.db, payload))
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"❌ CSV import {log.batch_id}: batch at row {offset} failed: {e}")
                typed_errors.extend(
                    ("database", f"行 {row['line']}: 保存に失敗しました") for row in batch
                )

        auto_linked = 0
        if auto_link and imported_ids and not cancelled and get_linking_config().auto_linking.enabled:
            auto_linked = PatternLinkingService(self.db).auto_link(record_ids=imported_ids)["linked"]

        failed_rows = parsed.total_rows - len(imported_ids)
        quality = build_quality_report(parsed.total_rows, failed_rows, typed_errors)
        errors = [msg for error_type, msg in typed_errors if error_type != "name_resolution"]
        summary = {
            "encoding": parsed.encoding,
            "total_rows": parsed.total_rows,
            "skipped_rows": parsed.skipped_rows,
            "auto_linked": auto_linked,
            "quality": quality,
        }
        self.repo.update_log(
            self.db,
            log,
            status="cancelled" if cancelled else "completed",
            import_count=parsed.total_rows,
            success_count=len(imported_ids),
            error_count=len(errors),
            errors=errors[:MAX_STORED_MESSAGES],
            warnings=warnings[:MAX_STORED_MESSAGES],
            summary=summary,
            completed_at=datetime.now(),
        )
        logger.info(
            f"✅ CSV import {log.batch_id} finished: {len(imported_ids)}/{parsed.total_rows} row(s), "
            f"{len(errors)} error(s), {auto_linked} auto-linked"
        )

        return {
            "batch_id": log.batch_id,
            "status": log.status,
            "total_rows": parsed.total_rows,
            "imported": len(imported_ids),
            "skipped_rows": parsed.skipped_rows,
            "errors": errors,
            "warnings": warnings,
            "auto_linked": auto_linked,
            "name_resolutions": list(self._resolved.values()),
            "quality": quality,
        }

    def preview_csv(self, filename: Optional[str], content: bytes) -> dict:
        """Parse and validate without writing anything"""
        check_upload(filename, len(content))
        try:
            parsed = parse_csv(content)
        except CsvParseError as e:
            raise HTTPException(status_code=400, detail=str(e))

        validation = validate_rows(parsed.rows)
        return {
            "filename": filename,
            "encoding": parsed.encoding,
            "headers": parsed.headers,
            "total_rows": parsed.total_rows,
            "skipped_rows": parsed.skipped_rows,
            "rows": parsed.rows[:PREVIEW_ROWS],
            "errors": validation.errors,
            "warnings": validation.warnings,
            "is_valid": validation.is_valid,
        }

    # ========================================================================
    # IMPORT LOGS
    # ========================================================================

    def list_import_logs(self, limit: int = 50) -> list[CsvImportLog]:
        return self.repo.list_logs(self.db, limit)

    def get_import_log(self, batch_id: str) -> CsvImportLog:
        log = self.repo.get_log(self.db, batch_id) if validate_uuid(batch_id) else None
        if not log:
            raise HTTPException(status_code=404, detail="Import log not found")
        return log

    def cancel_import(self, batch_id: str) -> CsvImportLog:
        log = self.get_import_log(batch_id)
        if log.status not in CANCELLABLE_STATUSES:
            raise HTTPException(status_code=400, detail=f"Import is already {log.status}")
        logger.info(f"🛑 Cancelling CSV import {batch_id}")
        return self.repo.update_log(self.db, log, status="cancelled", completed_at=datetime.now())
