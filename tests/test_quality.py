"""Tests for the import data quality report."""

import pytest

from caredesk.domain.csv_import.quality import build_quality_report, classify_validation_error

NAME_HINT = "名前の正規化パターンを追加して、自動解決率を向上させることをお勧めします"
SERIOUS = "重要なエラーが検出されました。データの整合性を確認してください"
MANY = "エラーが多数発生しています。CSVファイルの品質を向上させることをお勧めします"


def _issue(report: dict, error_type: str) -> dict:
    return next(issue for issue in report["issues"] if issue["type"] == error_type)


class TestSeverity:
    """Test severity per error type."""

    @pytest.mark.parametrize(
        "error_type, severity",
        [
            ("file_read", "critical"),
            ("parse", "high"),
            ("database", "high"),
            ("unknown", "high"),
            ("validation", "medium"),
            ("duplicate", "medium"),
            ("name_resolution", "medium"),
        ],
    )
    def test_severity(self, error_type, severity):
        report = build_quality_report(1, 1, [(error_type, "行 2: x")])
        assert _issue(report, error_type)["severity"] == severity

    def test_unrecognised_type_is_unknown(self):
        """Test that a type outside the known set is grouped under unknown."""
        report = build_quality_report(1, 1, [("bogus", "something broke")])

        assert [issue["type"] for issue in report["issues"]] == ["unknown"]
        assert report["issues"][0]["severity"] == "high"
        assert report["issues"][0]["examples"] == ["something broke"]

    def test_classify_validation_error(self):
        """Test that duplicate messages are split from plain validation errors."""
        assert classify_validation_error("行 3: 重複データです") == "duplicate"
        assert classify_validation_error("行 2: 日付の形式が不正です") == "validation"


class TestIssues:
    """Test issue grouping."""

    def test_examples_capped_at_three(self):
        """Test that an issue keeps the full count but only three examples."""
        errors = [("validation", f"行 {n}: 不正") for n in range(2, 7)]

        issue = _issue(build_quality_report(5, 5, errors), "validation")

        assert issue["count"] == 5
        assert issue["examples"] == ["行 2: 不正", "行 3: 不正", "行 4: 不正"]
        assert issue["suggested_fix"]

    def test_one_issue_per_type(self):
        """Test that errors of different types become separate issues."""
        errors = [("validation", "a"), ("duplicate", "b"), ("validation", "c")]

        report = build_quality_report(3, 3, errors)

        assert {issue["type"]: issue["count"] for issue in report["issues"]} == {
            "validation": 2,
            "duplicate": 1,
        }

    def test_no_errors(self):
        report = build_quality_report(2, 0, [])
        assert report["issues"] == []
        assert report["recommendations"] == []


class TestRecommendations:
    """Test recommendation triggers."""

    def test_name_resolution(self):
        """Test that name resolution warnings suggest adding patterns."""
        report = build_quality_report(1, 0, [("name_resolution", "利用者名を解決できません")])
        assert report["recommendations"] == [NAME_HINT]

    def test_serious_errors(self):
        """Test that a critical or high issue asks for an integrity check."""
        report = build_quality_report(1, 1, [("database", "行 2: 保存に失敗しました")])
        assert report["recommendations"] == [SERIOUS]

    def test_medium_errors_only(self):
        """Test that medium issues alone do not trigger the integrity check."""
        report = build_quality_report(1, 1, [("validation", "行 2: 不正")])
        assert report["recommendations"] == []

    def test_many_errors(self):
        """Test that more than ten errors suggest improving the file."""
        errors = [("validation", f"行 {n}: 不正") for n in range(2, 13)]

        report = build_quality_report(11, 11, errors)

        assert report["recommendations"] == [MANY]

    def test_ten_errors_is_not_many(self):
        errors = [("validation", f"行 {n}: 不正") for n in range(2, 12)]
        assert MANY not in build_quality_report(10, 10, errors)["recommendations"]

    def test_all_triggers(self):
        errors = [("name_resolution", "x"), ("file_read", "y")] + [("validation", "z")] * 9
        assert build_quality_report(11, 10, errors)["recommendations"] == [NAME_HINT, SERIOUS, MANY]


class TestMetrics:
    """Test completeness and accuracy scores."""

    def test_failed_rows_lower_scores(self):
        """Test that one failed row out of four gives 75 percent."""
        report = build_quality_report(4, 1, [("validation", "行 3: 不正")])

        assert report["metrics"] == {"completeness": 75.0, "accuracy": 75.0}
        assert report["overall_score"] == 75

    def test_scores_are_rounded(self):
        report = build_quality_report(3, 1, [])
        assert report["metrics"] == {"completeness": 66.7, "accuracy": 66.7}
        assert report["overall_score"] == 67

    def test_all_rows_imported(self):
        report = build_quality_report(5, 0, [])
        assert report["metrics"] == {"completeness": 100.0, "accuracy": 100.0}
        assert report["overall_score"] == 100

    def test_empty_file(self):
        """Test that zero rows scores zero instead of dividing by zero."""
        report = build_quality_report(0, 0, [])
        assert report["metrics"] == {"completeness": 0.0, "accuracy": 0.0}
        assert report["overall_score"] == 0
