"""
Visit-log CSV parsing and row validation.

Exported visit logs come from the care software either as UTF-8 (often with
a BOM) or as Shift_JIS, with Japanese headers and Japanese-era dates.
Everything here is pure: no database access.
"""

import csv
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from io import StringIO
from typing import Optional

from ...shared.validators import is_valid_time, time_to_minutes, validate_date_string

logger = logging.getLogger(__name__)

DEFAULT_START_TIME = "00:00"
DEFAULT_END_TIME = "00:30"
DEFAULT_DURATION = 30
MAX_DURATION_MINUTES = 1440
DURATION_TOLERANCE_MINUTES = 5
MAX_NAME_LENGTH = 50
MAX_CONTENT_LENGTH = 200

# Header text -> canonical field. 西暦日付 wins over 日付 when both exist.
HEADER_MAP = {
    "日付": "date",
    "西暦日付": "gregorian_date",
    "利用者名": "user_name",
    "担当所員": "staff_name",
    "担当職員": "staff_name",
    "開始時間": "start_time",
    "終了時間": "end_time",
    "実施時間": "duration",
    "サービス内容": "content",
    "利用者コード": "user_code",
    "職員コード": "staff_code",
    "利用者名カナ": "user_name_kana",
}
ENGLISH_FIELDS = {
    "date",
    "user_name",
    "staff_name",
    "start_time",
    "end_time",
    "duration",
    "content",
    "service_content",
    "user_code",
    "staff_code",
    "user_name_kana",
}

ERA_OFFSETS = {"令和": 2018, "平成": 1988, "R": 2018, "H": 1988}

_ERA_DATE_RE = re.compile(r"^(令和|平成)\s*(\d{1,2}|元)年\s*(\d{1,2})月\s*(\d{1,2})日")
_ERA_SHORT_RE = re.compile(r"^([RH])(\d{1,2})[./-](\d{1,2})[./-](\d{1,2})$", re.IGNORECASE)
_KANJI_DATE_RE = re.compile(r"^(\d{4})年\s*(\d{1,2})月\s*(\d{1,2})日")
_NUMERIC_DATE_RE = re.compile(r"^(\d{4})[/-](\d{1,2})[/-](\d{1,2})")
_HOURS_MINUTES_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_MINUTES_RE = re.compile(r"^(\d+)\s*分?$")


@dataclass
class ParsedCsv:
    rows: list[dict]
    total_rows: int
    skipped_rows: int
    headers: list[str]
    encoding: str


@dataclass
class ValidationResult:
    valid_rows: list[dict] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class CsvParseError(ValueError):
    """Raised when the file has no usable header or is not well-formed CSV"""


class CsvDecodeError(CsvParseError):
    """Raised when the bytes are neither UTF-8 nor Shift_JIS"""


def decode_csv_bytes(content: bytes) -> tuple[str, str]:
    """Decode as UTF-8 first, then Shift_JIS (cp932). Returns (text, encoding)."""
    for encoding in ("utf-8-sig", "cp932"):
        try:
            return content.decode(encoding), encoding
        except UnicodeDecodeError:
            continue
    raise CsvDecodeError("ファイルの文字コードを判別できません（UTF-8 または Shift_JIS）")


def _to_ymd(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def convert_japanese_date(value: Optional[str]) -> Optional[str]:
    """Convert era, kanji and slash dates to YYYY-MM-DD; unknown text is returned as is"""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return text

    match = _ERA_DATE_RE.match(text)
    if match:
        era, year, month, day = match.groups()
        era_year = 1 if year == "元" else int(year)
        return _to_ymd(ERA_OFFSETS[era] + era_year, int(month), int(day)) or text

    match = _ERA_SHORT_RE.match(text)
    if match:
        era, year, month, day = match.groups()
        return _to_ymd(ERA_OFFSETS[era.upper()] + int(year), int(month), int(day)) or text

    for pattern in (_KANJI_DATE_RE, _NUMERIC_DATE_RE):
        match = pattern.match(text)
        if match:
            year, month, day = (int(part) for part in match.groups())
            return _to_ymd(year, month, day) or text

    return text


def parse_duration(value: Optional[str]) -> Optional[int]:
    """Minutes from "30", "30分" or "1:30"; None when blank or unreadable"""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    match = _HOURS_MINUTES_RE.match(text)
    if match:
        return int(match.group(1)) * 60 + int(match.group(2))
    match = _MINUTES_RE.match(text)
    if match:
        return int(match.group(1))
    return None


def normalize_time(value: Optional[str], default: str) -> str:
    """Zero-pad H:MM; blank cells fall back to the default"""
    text = (value or "").strip()
    if not text:
        return default
    match = _HOURS_MINUTES_RE.match(text)
    if match:
        return f"{int(match.group(1)):02d}:{match.group(2)}"
    return text


def map_header(header: str) -> Optional[str]:
    name = header.strip().lstrip("\ufeff")
    if name in HEADER_MAP:
        return HEADER_MAP[name]
    key = name.lower()
    if key in ENGLISH_FIELDS:
        return "content" if key == "service_content" else key
    return None


def _build_row(raw: dict[str, str], columns: dict[str, str]) -> dict:
    values: dict[str, str] = {}
    for header, canonical in columns.items():
        cell = (raw.get(header) or "").strip()
        if cell and not values.get(canonical):
            values[canonical] = cell

    start = normalize_time(values.get("start_time"), DEFAULT_START_TIME)
    end = normalize_time(values.get("end_time"), DEFAULT_END_TIME)
    duration = parse_duration(values.get("duration"))
    if duration is None:
        if is_valid_time(start) and is_valid_time(end) and time_to_minutes(end) > time_to_minutes(start):
            duration = time_to_minutes(end) - time_to_minutes(start)
        else:
            duration = DEFAULT_DURATION

    return {
        "user_name": values.get("user_name", ""),
        "user_name_kana": values.get("user_name_kana"),
        "user_code": values.get("user_code"),
        "staff_name": values.get("staff_name"),
        "staff_code": values.get("staff_code"),
        "service_date": convert_japanese_date(values.get("gregorian_date") or values.get("date")),
        "start_time": start,
        "end_time": end,
        "duration_minutes": duration,
        "service_content": values.get("content"),
    }


def parse_csv(content: bytes) -> ParsedCsv:
    """Decode and map a visit-log file; rows without a user or a date are dropped"""
    text, encoding = decode_csv_bytes(content)
    try:
        return _parse_text(text, encoding)
    except csv.Error as e:
        raise CsvParseError(f"CSVの構造が不正です: {e}") from e


def _parse_text(text: str, encoding: str) -> ParsedCsv:
    reader = csv.DictReader(StringIO(text))
    if not reader.fieldnames:
        raise CsvParseError("ヘッダー行がありません")

    columns = {header: map_header(header) for header in reader.fieldnames if header}
    columns = {header: canonical for header, canonical in columns.items() if canonical}
    if "user_name" not in columns.values():
        raise CsvParseError("利用者名の列が見つかりません")

    rows, total, skipped = [], 0, 0
    for raw in reader:
        total += 1
        row = _build_row(raw, columns)
        if not row["user_name"] or not row["service_date"]:
            skipped += 1
            continue
        rows.append(row)

    if skipped:
        logger.warning(f"⚠️ Dropped {skipped} CSV row(s) without user name or date")
    return ParsedCsv(
        rows=rows,
        total_rows=total,
        skipped_rows=skipped,
        headers=list(reader.fieldnames),
        encoding=encoding,
    )


def _check_row(row: dict) -> list[str]:
    errors = []
    if not row.get("user_name"):
        errors.append("利用者名は必須です")

    try:
        validate_date_string(row.get("service_date"))
    except ValueError:
        errors.append(f"日付が不正です: {row.get('service_date')}")

    start, end = row.get("start_time"), row.get("end_time")
    times_ok = True
    if not is_valid_time(start):
        errors.append(f"開始時間が不正です: {start}")
        times_ok = False
    if not is_valid_time(end):
        errors.append(f"終了時間が不正です: {end}")
        times_ok = False
    if times_ok and time_to_minutes(start) >= time_to_minutes(end):
        errors.append("開始時間は終了時間より前である必要があります")

    duration = row.get("duration_minutes")
    if duration is None or not 0 < duration <= MAX_DURATION_MINUTES:
        errors.append(f"実施時間が不正です: {duration}")

    for key, label in (("user_name", "利用者名"), ("staff_name", "担当職員名")):
        if row.get(key) and len(row[key]) > MAX_NAME_LENGTH:
            errors.append(f"{label}は{MAX_NAME_LENGTH}文字以内で入力してください")
    if row.get("service_content") and len(row["service_content"]) > MAX_CONTENT_LENGTH:
        errors.append(f"サービス内容は{MAX_CONTENT_LENGTH}文字以内で入力してください")
    return errors


def validate_rows(rows: list[dict]) -> ValidationResult:
    """Validate parsed rows; line numbers count the header as line 1"""
    result = ValidationResult()
    seen: set[tuple] = set()

    for index, row in enumerate(rows):
        line = index + 2
        row_errors = _check_row(row)

        key = (row.get("user_name"), row.get("service_date"), row.get("start_time"), row.get("end_time"))
        if key in seen:
            row_errors.append("重複データです")
        seen.add(key)

        if row_errors:
            result.errors.extend(f"行 {line}: {message}" for message in row_errors)
            continue

        expected = time_to_minutes(row["end_time"]) - time_to_minutes(row["start_time"])
        if abs(row["duration_minutes"] - expected) > DURATION_TOLERANCE_MINUTES:
            result.warnings.append(
                f"行 {line}: 実施時間（{row['duration_minutes']}分）が開始・終了時間（{expected}分）と一致しません"
            )
        result.valid_rows.append({**row, "line": line})

    return result
