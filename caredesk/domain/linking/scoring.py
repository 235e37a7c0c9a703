"""
Confidence scoring for record-to-pattern matching.

A record is compared with every service pattern on four factors:

    service  0.4  keyword overlap between record content and pattern checklist
    time     0.3  start hour vs. the user's weekly slots for the pattern
    user     0.2  whether the user already uses the pattern
    day      0.1  record weekday vs. the weekdays of those slots

The confidence is the weighted mean of the factor scores. Candidates at or
below CANDIDATE_MIN_CONFIDENCE are dropped; the rest are ordered by
confidence (descending) and then pattern name, and the top MAX_CANDIDATES
are returned.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Optional

from ...shared.validators import python_weekday_to_day_of_week, time_to_minutes
from ..patterns.details import extract_content_keywords, extract_service_keywords

WEIGHTS = {"service": 0.4, "time": 0.3, "user": 0.2, "day": 0.1}

CANDIDATE_MIN_CONFIDENCE = 0.3
MAX_CANDIDATES = 5
HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.6

NO_SCHEDULE_TIME_SCORE = 0.5
NO_SCHEDULE_DAY_SCORE = 0.8
OTHER_DAY_SCORE = 0.5
USED_PATTERN_SCORE = 1.0
UNUSED_PATTERN_SCORE = 0.3


@dataclass
class MatchScore:
    pattern_id: int
    pattern_name: str
    confidence: float
    scores: dict[str, float]
    matching_factors: dict[str, bool]
    reason: str
    auto_apply_eligible: bool = False
    pattern: Any = field(default=None, repr=False)


def service_similarity(content_keywords: list[str], pattern_keywords: list[str]) -> float:
    if not content_keywords or not pattern_keywords:
        return 0.0

    matches = sum(
        1
        for keyword in content_keywords
        if any(pk in keyword or keyword in pk for pk in pattern_keywords)
    )
    return matches / max(len(content_keywords), len(pattern_keywords))


def time_match_score(start_time: str, slots: Iterable) -> float:
    """Score by the closest weekly slot start; slots expose .start_time"""
    slots = list(slots)
    if not slots:
        return NO_SCHEDULE_TIME_SCORE

    record_hour = time_to_minutes(start_time) // 60
    diff = min(abs(record_hour - time_to_minutes(s.start_time) // 60) for s in slots)
    if diff <= 1:
        return 1.0
    if diff <= 2:
        return 0.7
    if diff <= 3:
        return 0.4
    return 0.2


def user_history_score(has_used_pattern: bool) -> float:
    return USED_PATTERN_SCORE if has_used_pattern else UNUSED_PATTERN_SCORE


def day_match_score(service_date: date, slots: Iterable) -> float:
    """Slots expose .day_of_week (0 = Sunday)"""
    slots = list(slots)
    if not slots:
        return NO_SCHEDULE_DAY_SCORE
    weekday = python_weekday_to_day_of_week(service_date)
    if any(s.day_of_week == weekday for s in slots):
        return 1.0
    return OTHER_DAY_SCORE


def weighted_confidence(scores: dict[str, float]) -> float:
    total_weight = sum(WEIGHTS[name] for name in scores)
    if total_weight == 0:
        return 0.0
    return round(sum(WEIGHTS[name] * value for name, value in scores.items()) / total_weight, 3)


def build_reason(factors: dict[str, bool], confidence: float) -> str:
    reasons = []
    if factors.get("service_match"):
        reasons.append("サービス内容が一致")
    if factors.get("time_match"):
        reasons.append("時間帯が一致")
    if factors.get("user_match"):
        reasons.append("利用者履歴が一致")
    if factors.get("day_match"):
        reasons.append("曜日が一致")

    if confidence >= HIGH_CONFIDENCE:
        reasons.insert(0, "高い信頼度")
    elif confidence >= MEDIUM_CONFIDENCE:
        reasons.insert(0, "中程度の信頼度")

    return "、".join(reasons) if reasons else "部分的な一致"


def evaluate_pattern_match(
    record,
    pattern,
    slots: Optional[list] = None,
    has_used_pattern: bool = False,
    threshold: float = 0.7,
) -> MatchScore:
    """Score one pattern for one record.

    ``slots`` are the user's active weekly slots for this pattern.
    """
    slots = slots or []
    scores = {
        "service": service_similarity(
            extract_content_keywords(record.service_content),
            extract_service_keywords(pattern.pattern_details),
        ),
        "time": time_match_score(record.start_time, slots),
        "user": user_history_score(has_used_pattern),
        "day": day_match_score(record.service_date, slots),
    }
    confidence = weighted_confidence(scores)
    factors = {
        "service_match": scores["service"] > 0.5,
        "time_match": bool(slots) and scores["time"] >= 0.7,
        "user_match": scores["user"] == USED_PATTERN_SCORE,
        "day_match": bool(slots) and scores["day"] == 1.0,
    }
    return MatchScore(
        pattern_id=pattern.id,
        pattern_name=pattern.pattern_name,
        confidence=confidence,
        scores=scores,
        matching_factors=factors,
        reason=build_reason(factors, confidence),
        auto_apply_eligible=confidence >= threshold,
        pattern=pattern,
    )


def rank_candidates(matches: Iterable[MatchScore]) -> list[MatchScore]:
    kept = [m for m in matches if m.confidence > CANDIDATE_MIN_CONFIDENCE]
    kept.sort(key=lambda m: (-m.confidence, m.pattern_name))
    return kept[:MAX_CANDIDATES]
