"""Tests for visit-log CSV parsing and validation."""

import pytest

from caredesk.domain.csv_import.parser import (
    CsvDecodeError,
    CsvParseError,
    convert_japanese_date,
    decode_csv_bytes,
    parse_csv,
    parse_duration,
    validate_rows,
)

HEADER = "日付,利用者名,担当職員,開始時間,終了時間,実施時間,サービス内容"


def _row(**overrides) -> dict:
    row = {
        "user_name": "田中太郎",
        "staff_name": "山田花子",
        "service_date": "2024-04-01",
        "start_time": "09:00",
        "end_time": "09:30",
        "duration_minutes": 30,
        "service_content": "食事介助",
    }
    row.update(overrides)
    return row


class TestDateConversion:
    """Test Japanese date conversion."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("令和5年4月1日", "2023-04-01"),
            ("令和元年5月1日", "2019-05-01"),
            ("平成31年4月30日", "2019-04-30"),
            ("R5.4.1", "2023-04-01"),
            ("2023年4月1日", "2023-04-01"),
            ("2023/4/1", "2023-04-01"),
            ("2023-04-01", "2023-04-01"),
        ],
    )
    def test_supported_formats(self, raw, expected):
        """Test that each supported format becomes YYYY-MM-DD."""
        assert convert_japanese_date(raw) == expected

    def test_unknown_text_kept(self):
        """Test that unparseable text is returned for the validator to reject."""
        assert convert_japanese_date("不明") == "不明"
        assert convert_japanese_date("2023/2/30") == "2023/2/30"


class TestDuration:
    """Test duration parsing."""

    @pytest.mark.parametrize("raw,expected", [("30", 30), ("30分", 30), ("1:30", 90), ("", None), ("abc", None)])
    def test_parse_duration(self, raw, expected):
        """Test minute, 分 and H:MM forms."""
        assert parse_duration(raw) == expected


class TestDecoding:
    """Test encoding detection."""

    def test_utf8_with_bom(self):
        """Test that a UTF-8 BOM is stripped."""
        text, encoding = decode_csv_bytes("\ufeff利用者名".encode("utf-8"))
        assert text == "利用者名"
        assert encoding == "utf-8-sig"

    def test_shift_jis_fallback(self):
        """Test that Shift_JIS input falls back to cp932."""
        text, encoding = decode_csv_bytes("利用者名,日付".encode("cp932"))
        assert text == "利用者名,日付"
        assert encoding == "cp932"

    def test_undecodable(self):
        """Test that bytes valid in neither encoding raise."""
        with pytest.raises(CsvDecodeError):
            decode_csv_bytes(b"\x82\xff\xfe\x81")


class TestParseCsv:
    """Test header mapping and row building."""

    def test_japanese_headers(self):
        """Test a typical export with one row missing its date."""
        content = "\n".join(
            [
                HEADER,
                "令和6年4月1日,田中太郎,山田花子,9:00,9:30,30分,食事介助",
                ",田中太郎,山田花子,10:00,10:30,30,排泄介助",
            ]
        ).encode("utf-8-sig")

        parsed = parse_csv(content)

        assert parsed.total_rows == 2
        assert parsed.skipped_rows == 1
        row = parsed.rows[0]
        assert row["service_date"] == "2024-04-01"
        assert row["start_time"] == "09:00"
        assert row["end_time"] == "09:30"
        assert row["duration_minutes"] == 30
        assert row["staff_name"] == "山田花子"
        assert row["service_content"] == "食事介助"

    def test_gregorian_date_preferred(self):
        """Test that 西暦日付 wins over 日付."""
        content = "日付,西暦日付,利用者名\n令和6年4月1日,2024/04/02,田中太郎\n".encode("utf-8")
        parsed = parse_csv(content)
        assert parsed.rows[0]["service_date"] == "2024-04-02"

    def test_english_headers_and_computed_duration(self):
        """Test English aliases and duration derived from start and end."""
        content = "user_name,date,start_time,end_time\n田中太郎,2024-04-01,10:00,11:00\n".encode("utf-8")
        parsed = parse_csv(content)
        assert parsed.rows[0]["duration_minutes"] == 60

    def test_default_times(self):
        """Test that blank times and duration fall back to defaults."""
        content = f"{HEADER}\n2024/4/1,田中太郎,,,,,\n".encode("utf-8")
        row = parse_csv(content).rows[0]
        assert row["start_time"] == "00:00"
        assert row["end_time"] == "00:30"
        assert row["duration_minutes"] == 30

    def test_shift_jis_file(self):
        """Test that a Shift_JIS file parses the same way."""
        content = f"{HEADER}\n2024/4/1,田中太郎,山田花子,9:00,9:30,30,入浴介助\n".encode("cp932")
        parsed = parse_csv(content)
        assert parsed.encoding == "cp932"
        assert parsed.rows[0]["user_name"] == "田中太郎"

    def test_missing_user_column(self):
        """Test that a file without a user column is rejected."""
        with pytest.raises(CsvParseError):
            parse_csv("日付,開始時間\n2024/4/1,9:00\n".encode("utf-8"))

    def test_oversized_field(self):
        """Test that a field over the csv module limit is a parse error."""
        content = (HEADER + "\n2024-04-01,田中太郎,,09:00,09:30,30," + "食" * 200_000).encode("utf-8")
        with pytest.raises(CsvParseError, match="CSVの構造が不正です"):
            parse_csv(content)


class TestValidateRows:
    """Test row validation."""

    def test_valid_row(self):
        """Test that a clean row passes with its line number."""
        result = validate_rows([_row()])
        assert result.is_valid
        assert result.valid_rows[0]["line"] == 2

    def test_start_after_end(self):
        """Test that start must be before end."""
        result = validate_rows([_row(start_time="10:00", end_time="09:00")])
        assert not result.is_valid
        assert result.errors[0].startswith("行 2: ")

    def test_invalid_date_and_time(self):
        """Test invalid dates and times produce errors."""
        result = validate_rows([_row(service_date="不明", start_time="25:00")])
        assert len(result.errors) == 2
        assert result.valid_rows == []

    def test_duplicate_is_error_on_later_row(self):
        """Test that the second identical row is flagged."""
        result = validate_rows([_row(), _row()])
        assert len(result.valid_rows) == 1
        assert result.errors == ["行 3: 重複データです"]

    def test_duration_mismatch_is_warning(self):
        """Test that a duration far from the time span only warns."""
        result = validate_rows([_row(end_time="10:00", duration_minutes=30)])
        assert result.is_valid
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("行 2: ")

    def test_length_limits(self):
        """Test name and content length limits."""
        result = validate_rows([_row(user_name="あ" * 51, service_content="い" * 201)])
        assert len(result.errors) == 2

    def test_duration_out_of_range(self):
        """Test that durations outside (0, 1440] are rejected."""
        result = validate_rows([_row(duration_minutes=0)])
        assert not result.is_valid
