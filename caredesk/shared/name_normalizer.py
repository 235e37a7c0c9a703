"""
Japanese personal-name normalization and fuzzy matching.

CSV exports spell the same person in several ways: full-width vs half-width
letters, hiragana vs katakana readings, a leading marker such as ※ or ●,
or a bracketed note like 田中太郎（仮）. Names are cleaned and compared with
a weighted blend of edit distance, character overlap and reading similarity.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

FULLWIDTH_OFFSET = 0xFEE0
KANA_OFFSET = 0x60

LEADING_MARKERS = "〇●※◯○▲△▼▽■□◆◇★☆"

_LEADING_MARKER_RE = re.compile(f"^[{LEADING_MARKERS}]")
_BRACKETS_RE = re.compile(r"[（(][^）)]*[）)]|【[^】]*】|\[[^\]]*\]")
_WHITESPACE_RE = re.compile(r"\s+")

SIMILARITY_WEIGHTS = {"levenshtein": 0.4, "jaccard": 0.3, "phonetic": 0.3}


@dataclass
class NormalizedName:
    original: str
    cleaned: str
    normalized: str
    hiragana: str
    katakana: str


@dataclass
class NameMatch:
    score: float
    is_match: bool
    confidence: str  # high, medium, low
    match_type: str  # exact, normalized, phonetic, partial
    details: dict = field(default_factory=dict)


def to_half_width(text: str) -> str:
    """Convert full-width ASCII (！ to ～) to half-width"""
    return "".join(
        chr(ord(ch) - FULLWIDTH_OFFSET) if "！" <= ch <= "～" else ch for ch in text
    )


def to_full_width(text: str) -> str:
    return "".join(
        chr(ord(ch) + FULLWIDTH_OFFSET) if "!" <= ch <= "~" else ch for ch in text
    )


def hiragana_to_katakana(text: str) -> str:
    return "".join(chr(ord(ch) + KANA_OFFSET) if "ぁ" <= ch <= "ゖ" else ch for ch in text)


def katakana_to_hiragana(text: str) -> str:
    return "".join(chr(ord(ch) - KANA_OFFSET) if "ァ" <= ch <= "ヶ" else ch for ch in text)


def clean_name(name: Optional[str]) -> str:
    if not name:
        return ""

    cleaned = _LEADING_MARKER_RE.sub("", name)
    cleaned = _BRACKETS_RE.sub("", cleaned)
    cleaned = cleaned.replace("　", " ")
    cleaned = _WHITESPACE_RE.sub(" ", cleaned)
    return cleaned.strip()


def _alnum_to_half_width(text: str) -> str:
    return "".join(
        chr(ord(ch) - FULLWIDTH_OFFSET)
        if ("Ａ" <= ch <= "Ｚ") or ("ａ" <= ch <= "ｚ") or ("０" <= ch <= "９")
        else ch
        for ch in text
    )


def normalize_name(name: Optional[str]) -> NormalizedName:
    if not name:
        return NormalizedName(original=name or "", cleaned="", normalized="", hiragana="", katakana="")

    cleaned = clean_name(name)
    return NormalizedName(
        original=name,
        cleaned=cleaned,
        # Alphanumerics go half-width, kana stays as written
        normalized=_alnum_to_half_width(cleaned),
        hiragana=katakana_to_hiragana(cleaned),
        katakana=hiragana_to_katakana(cleaned),
    )


def levenshtein_distance(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(current[j - 1] + 1, previous[j] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def levenshtein_similarity(a: str, b: str) -> float:
    max_length = max(len(a), len(b))
    if max_length == 0:
        return 0.0
    return 1 - levenshtein_distance(a, b) / max_length


def jaccard_similarity(a: str, b: str) -> float:
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def phonetic_similarity(name1: str, name2: str) -> float:
    """Edit-distance similarity of the hiragana readings"""
    return levenshtein_similarity(normalize_name(name1).hiragana, normalize_name(name2).hiragana)


def calculate_name_similarity(name1: Optional[str], name2: Optional[str]) -> float:
    if not name1 or not name2:
        return 0.0

    norm1 = normalize_name(name1)
    norm2 = normalize_name(name2)
    if norm1.normalized == norm2.normalized:
        return 1.0

    score = (
        levenshtein_similarity(norm1.normalized, norm2.normalized) * SIMILARITY_WEIGHTS["levenshtein"]
        + jaccard_similarity(norm1.normalized, norm2.normalized) * SIMILARITY_WEIGHTS["jaccard"]
        + phonetic_similarity(name1, name2) * SIMILARITY_WEIGHTS["phonetic"]
    )
    return round(score, 4)


def match_names(name1: Optional[str], name2: Optional[str], threshold: float = 0.8) -> NameMatch:
    if not name1 or not name2:
        return NameMatch(score=0.0, is_match=False, confidence="low", match_type="partial")

    norm1 = normalize_name(name1)
    norm2 = normalize_name(name2)

    exact = name1 == name2
    normalized = norm1.normalized == norm2.normalized
    phonetic = norm1.hiragana == norm2.hiragana or norm1.katakana == norm2.katakana
    partial = norm1.normalized in norm2.normalized or norm2.normalized in norm1.normalized

    score = calculate_name_similarity(name1, name2)

    if exact:
        match_type = "exact"
    elif normalized:
        match_type = "normalized"
    elif phonetic:
        match_type = "phonetic"
    else:
        match_type = "partial"

    if score >= 0.9:
        confidence = "high"
    elif score >= 0.7:
        confidence = "medium"
    else:
        confidence = "low"

    return NameMatch(
        score=score,
        is_match=score >= threshold,
        confidence=confidence,
        match_type=match_type,
        details={
            "exact_match": exact,
            "normalized_match": normalized,
            "phonetic_match": phonetic,
            "partial_match": partial,
            "levenshtein_distance": levenshtein_distance(norm1.normalized, norm2.normalized),
            "jaccard_similarity": jaccard_similarity(norm1.normalized, norm2.normalized),
        },
    )


def find_best_match(
    target: Optional[str], candidates: list[str], threshold: float = 0.8
) -> Optional[tuple[str, NameMatch]]:
    """Best candidate at or above threshold; the earliest one wins a tie"""
    if not target or not candidates:
        return None

    best: Optional[tuple[str, NameMatch]] = None
    for candidate in candidates:
        result = match_names(target, candidate, threshold)
        if result.is_match and (best is None or result.score > best[1].score):
            best = (candidate, result)
    return best


def rank_name_candidates(
    target: Optional[str], candidates: list[str], min_similarity: float = 0.5
) -> list[tuple[str, NameMatch]]:
    if not target or not candidates:
        return []

    ranked = [(candidate, match_names(target, candidate, min_similarity)) for candidate in candidates]
    ranked = [item for item in ranked if item[1].score >= min_similarity]
    ranked.sort(key=lambda item: item[1].score, reverse=True)
    return ranked
