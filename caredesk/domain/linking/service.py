"""Pattern linking service - candidates, link/unlink, bulk and automatic linking"""

import logging
from collections import Counter
from datetime import date
from typing import Any, Callable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import LINKING_CONFIG_KEY, cache
from ...config import LINKING_AUTO_ENABLED, LINKING_CONFIDENCE_THRESHOLD
from ...models import ServicePattern, ServiceRecord
from ..patterns.details import extract_content_keywords, extract_service_keywords
from ..patterns.repository import PatternRepository
from ..records.repository import RecordRepository
from .repository import LinkingRepository
from .schemas import AutoLinkingSettings, BulkLinkRequest, LinkingConfig, RecordFilter
from .scoring import MatchScore, evaluate_pattern_match, rank_candidates

logger = logging.getLogger(__name__)

MANUAL_CONFIDENCE = 1.0
AUTO_CONFIDENCE = 0.8
ANALYSIS_CANDIDATE_SAMPLE = 10
NEW_PATTERN_SUGGESTION_MIN = 5

# ============================================================================
# CONFIGURATION
# ============================================================================

_DEFAULT_CONFIG = LinkingConfig(
    auto_linking=AutoLinkingSettings(
        enabled=LINKING_AUTO_ENABLED, confidence_threshold=LINKING_CONFIDENCE_THRESHOLD
    )
)
_current_config = _DEFAULT_CONFIG.model_copy(deep=True)


def get_linking_config() -> LinkingConfig:
    cached = cache.get(LINKING_CONFIG_KEY)
    if cached is not None:
        return LinkingConfig.model_validate(cached)
    return _current_config.model_copy(deep=True)


def update_linking_config(config: LinkingConfig) -> LinkingConfig:
    global _current_config
    _current_config = config.model_copy(deep=True)
    cache.set(LINKING_CONFIG_KEY, config.model_dump())
    logger.info(
        f"⚙️ Linking config updated: auto={config.auto_linking.enabled}, "
        f"threshold={config.auto_linking.confidence_threshold}"
    )
    return get_linking_config()


def reset_linking_config() -> LinkingConfig:
    cache.delete(LINKING_CONFIG_KEY)
    return update_linking_config(_DEFAULT_CONFIG)


# ============================================================================
# EVENTS
# ============================================================================

EVENT_TYPES = (
    "pattern_linked",
    "pattern_unlinked",
    "bulk_operation_completed",
    "unlinked_data_detected",
)

_event_handlers: dict[str, list[Callable[[dict], Any]]] = {name: [] for name in EVENT_TYPES}


def add_event_handler(event_type: str, handler: Callable[[dict], Any]) -> None:
    if event_type not in _event_handlers:
        raise ValueError(f"Unknown event type: {event_type}")
    _event_handlers[event_type].append(handler)


def remove_event_handler(event_type: str, handler: Callable[[dict], Any]) -> None:
    handlers = _event_handlers.get(event_type, [])
    if handler in handlers:
        handlers.remove(handler)


def emit_event(event_type: str, payload: dict) -> None:
    for handler in list(_event_handlers.get(event_type, [])):
        try:
            handler(payload)
        except Exception as e:
            logger.error(f"❌ Event handler for {event_type} failed: {e}")


def _completion_rate(records: list[ServiceRecord]) -> float:
    if not records:
        return 0.0
    return sum(1 for r in records if r.is_pattern_assigned) / len(records) * 100


class PatternLinkingService:
    """Service layer for linking time-slot records to service patterns"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = LinkingRepository()
        self.records = RecordRepository()
        self.patterns = PatternRepository()

    @property
    def config(self) -> LinkingConfig:
        return get_linking_config()

    def _get_record(self, record_id: int) -> ServiceRecord:
        record = self.records.get_by_id(self.db, record_id)
        if not record:
            raise HTTPException(status_code=404, detail=f"Record {record_id} not found")
        return record

    def _get_pattern(self, pattern_id: int) -> ServicePattern:
        pattern = self.patterns.get_by_id(self.db, pattern_id)
        if not pattern:
            raise HTTPException(status_code=404, detail=f"Pattern {pattern_id} not found")
        return pattern

    def _select_records(
        self, record_ids: Optional[list[int]], record_filter: Optional[RecordFilter]
    ) -> list[ServiceRecord]:
        if record_ids is not None:
            return self.records.search(self.db, record_ids=record_ids)
        record_filter = record_filter or RecordFilter()
        return self.records.search(
            self.db,
            date_from=record_filter.date_from,
            date_to=record_filter.date_to,
            user_name=record_filter.user_name,
            is_assigned=False if record_filter.only_unassigned else None,
        )

    # ========================================================================
    # CANDIDATES
    # ========================================================================

    def score_record(
        self, record: ServiceRecord, patterns: Optional[list[ServicePattern]] = None
    ) -> list[MatchScore]:
        patterns = patterns if patterns is not None else self.patterns.list_patterns(self.db)
        threshold = self.config.auto_linking.confidence_threshold

        user_id = self.repo.resolve_user_id(self.db, record)
        slots_by_pattern = self.repo.active_slots_by_pattern(self.db, user_id)
        used = self.repo.used_pattern_ids(self.db, record.user_name, exclude_record_id=record.id)

        matches = [
            evaluate_pattern_match(
                record,
                pattern,
                slots=slots_by_pattern.get(pattern.id, []),
                has_used_pattern=pattern.id in used or pattern.id in slots_by_pattern,
                threshold=threshold,
            )
            for pattern in patterns
        ]
        return rank_candidates(matches)

    def get_pattern_candidates(self, record_id: int) -> list[dict]:
        record = self._get_record(record_id)
        return [self._candidate_dict(record.id, m) for m in self.score_record(record)]

    @staticmethod
    def _candidate_dict(record_id: int, match: MatchScore) -> dict:
        return {
            "record_id": record_id,
            "pattern_id": match.pattern_id,
            "pattern_name": match.pattern_name,
            "confidence": match.confidence,
            "scores": match.scores,
            "matching_factors": match.matching_factors,
            "auto_apply_eligible": match.auto_apply_eligible,
            "reason": match.reason,
        }

    # ========================================================================
    # LINK / UNLINK
    # ========================================================================

    def link_pattern(
        self,
        record_id: int,
        pattern_id: int,
        method: str = "manual",
        confidence: Optional[float] = None,
    ) -> dict:
        record = self._get_record(record_id)
        pattern = self._get_pattern(pattern_id)

        if confidence is None:
            confidence = MANUAL_CONFIDENCE if method == "manual" else AUTO_CONFIDENCE

        previous = record.pattern_id
        record.pattern_id = pattern.id
        record.is_pattern_assigned = True
        self.repo.add_history(
            self.db,
            record_id=record.id,
            action="link",
            method=method,
            pattern_id=pattern.id,
            previous_pattern_id=previous,
            confidence=confidence,
        )
        self.db.commit()

        logger.info(f"🔗 Linked record {record.id} → pattern {pattern.id} ({method}, {confidence})")
        result = {
            "record_id": record.id,
            "pattern_id": pattern.id,
            "previous_pattern_id": previous,
            "action": "link",
            "method": method,
            "confidence": confidence,
            "success": True,
        }
        emit_event("pattern_linked", result)
        return result

    def unlink_pattern(self, record_id: int, method: str = "manual") -> dict:
        record = self._get_record(record_id)
        if record.pattern_id is None:
            raise HTTPException(status_code=400, detail=f"Record {record_id} is not linked to a pattern")

        previous = record.pattern_id
        record.pattern_id = None
        record.is_pattern_assigned = False
        self.repo.add_history(
            self.db,
            record_id=record.id,
            action="unlink",
            method=method,
            previous_pattern_id=previous,
        )
        self.db.commit()

        logger.info(f"✂️ Unlinked record {record.id} from pattern {previous}")
        result = {
            "record_id": record.id,
            "pattern_id": None,
            "previous_pattern_id": previous,
            "action": "unlink",
            "method": method,
            "confidence": None,
            "success": True,
        }
        emit_event("pattern_unlinked", result)
        return result

    # ========================================================================
    # BULK / AUTOMATIC
    # ========================================================================

    def bulk_link(self, request: BulkLinkRequest) -> dict:
        if request.operation in ("assign", "reassign") and request.pattern_id is None:
            raise HTTPException(
                status_code=400, detail=f"pattern_id is required for {request.operation}"
            )
        if request.pattern_id is not None and request.operation != "unassign":
            self._get_pattern(request.pattern_id)

        record_ids = list(dict.fromkeys(request.record_ids)) if request.record_ids is not None else None
        records = self._select_records(record_ids, request.filter)
        rate_before = _completion_rate(records)
        logger.info(f"📥 Bulk {request.operation} on {len(records)} record(s)")

        results: list[dict] = []
        errors: list[str] = []
        assigned_patterns: set[int] = set()

        if record_ids is not None:
            found = {r.id for r in records}
            for missing in record_ids:
                if missing not in found:
                    errors.append(f"Record {missing}: not found")

        for record in records:
            try:
                if request.operation == "unassign":
                    if record.pattern_id is None:
                        errors.append(f"Record {record.id}: not linked")
                        continue
                    results.append(self.unlink_pattern(record.id, method="bulk"))
                else:
                    # reassign clears the old link first; assign overwrites it in one step
                    if request.operation == "reassign" and record.pattern_id is not None:
                        self.unlink_pattern(record.id, method="bulk")
                    results.append(
                        self.link_pattern(
                            record.id, request.pattern_id, method="bulk", confidence=MANUAL_CONFIDENCE
                        )
                    )
                    assigned_patterns.add(request.pattern_id)
            except HTTPException as e:
                self.db.rollback()
                errors.append(f"Record {record.id}: {e.detail}")

        for record in records:
            self.db.refresh(record)
        rate_after = _completion_rate(records)

        total = len(record_ids) if record_ids is not None else len(records)
        response = {
            "total_processed": total,
            "successful": len(results),
            "failed": len(errors),
            "results": results,
            "errors": errors,
            "summary": {
                "patterns_assigned": sorted(assigned_patterns),
                "completion_rate_change": round(rate_after - rate_before, 1),
            },
        }
        logger.info(
            f"✅ Bulk {request.operation}: {len(results)} succeeded, {len(errors)} failed"
        )
        emit_event("bulk_operation_completed", {"operation": request.operation, **response["summary"]})
        return response

    def auto_link(
        self, record_ids: Optional[list[int]] = None, record_filter: Optional[RecordFilter] = None
    ) -> dict:
        config = self.config
        if not config.auto_linking.enabled:
            raise HTTPException(status_code=400, detail="Automatic linking is disabled")

        records = self._select_records(record_ids, record_filter)
        patterns = self.patterns.list_patterns(self.db)
        results: list[dict] = []
        skipped = 0

        for record in records:
            if record.is_pattern_assigned:
                skipped += 1
                continue
            candidates = self.score_record(record, patterns)
            best = candidates[0] if candidates else None
            if not best or not best.auto_apply_eligible:
                skipped += 1
                continue
            results.append(
                self.link_pattern(record.id, best.pattern_id, method="auto", confidence=best.confidence)
            )

        logger.info(f"🤖 Auto-linked {len(results)} of {len(records)} record(s)")
        return {
            "processed": len(records),
            "linked": len(results),
            "skipped": skipped,
            "results": results,
        }

    # ========================================================================
    # ANALYSIS / HISTORY
    # ========================================================================

    def analyze_unlinked(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> dict:
        unlinked = self.records.search(self.db, date_from=date_from, date_to=date_to, is_assigned=False)

        by_hour = Counter(int(r.start_time.split(":")[0]) for r in unlinked)
        by_user = Counter(r.user_name for r in unlinked)
        by_service = Counter(
            keyword for r in unlinked for keyword in extract_content_keywords(r.service_content)
        )

        patterns = self.patterns.list_patterns(self.db)
        bulk_candidates = []
        for record in unlinked[:ANALYSIS_CANDIDATE_SAMPLE]:
            candidates = self.score_record(record, patterns)
            if candidates:
                bulk_candidates.append(self._candidate_dict(record.id, candidates[0]))

        # Patterns covering the most frequent unlinked service keywords
        frequent = set(by_service)
        similar_patterns = [
            {"pattern_id": p.id, "pattern_name": p.pattern_name}
            for p in patterns
            if frequent & set(extract_service_keywords(p.pattern_details))
        ]

        analysis = {
            "date_from": date_from,
            "date_to": date_to,
            "unlinked_record_ids": [r.id for r in unlinked],
            "analysis": {
                "total_unlinked": len(unlinked),
                "by_time_slot": [{"hour": h, "count": c} for h, c in sorted(by_hour.items())],
                "by_user": [{"user_name": u, "count": c} for u, c in by_user.most_common()],
                "by_service_type": [
                    {"service_type": s, "count": c} for s, c in by_service.most_common()
                ],
            },
            "suggestions": {
                "create_new_patterns": len(unlinked) > NEW_PATTERN_SUGGESTION_MIN and bool(by_service),
                "similar_patterns": similar_patterns,
                "bulk_assignment_candidates": bulk_candidates,
            },
        }
        if unlinked:
            emit_event("unlinked_data_detected", {"total_unlinked": len(unlinked)})
        return analysis

    def get_history(self, day: Optional[date] = None, record_id: Optional[int] = None):
        return self.repo.get_history(self.db, day=day, record_id=record_id)
