"""Data quality report for a finished import"""

from collections import defaultdict

ERROR_TYPES = (
    "file_read",
    "parse",
    "validation",
    "duplicate",
    "name_resolution",
    "database",
    "unknown",
)

SEVERITY = {
    "file_read": "critical",
    "parse": "high",
    "validation": "medium",
    "duplicate": "medium",
    "name_resolution": "medium",
    "database": "high",
    "unknown": "high",
}

SUGGESTED_FIX = {
    "file_read": "ファイル形式を確認し、UTF-8 または Shift_JIS で保存してください",
    "parse": "CSVの構造を確認し、不正な文字や改行を修正してください",
    "validation": "必須項目と日付・時間の形式を確認してください",
    "duplicate": "同じ利用者・日時の記録が重複していないか確認してください",
    "name_resolution": "名前の表記を統一するか、マスタに登録してください",
    "database": "データベースの状態を確認し、再度取り込んでください",
    "unknown": "ログを確認してください",
}

EXAMPLES_PER_ISSUE = 3
MANY_ERRORS = 10


def classify_validation_error(message: str) -> str:
    return "duplicate" if "重複" in message else "validation"


def build_quality_report(total_rows: int, failed_rows: int, errors: list[tuple[str, str]]) -> dict:
    """
    Scores are percentages. completeness counts rows that made it in,
    accuracy counts rows without errors; overall is their rounded mean.
    """
    successful = max(total_rows - failed_rows, 0)
    completeness = successful / total_rows * 100 if total_rows else 0.0
    accuracy = (1 - failed_rows / total_rows) * 100 if total_rows else 0.0

    grouped: dict[str, list[str]] = defaultdict(list)
    for error_type, message in errors:
        grouped[error_type if error_type in SEVERITY else "unknown"].append(message)

    issues = [
        {
            "type": error_type,
            "severity": SEVERITY[error_type],
            "count": len(messages),
            "examples": messages[:EXAMPLES_PER_ISSUE],
            "suggested_fix": SUGGESTED_FIX[error_type],
        }
        for error_type, messages in grouped.items()
    ]

    recommendations = []
    if "name_resolution" in grouped:
        recommendations.append("名前の正規化パターンを追加して、自動解決率を向上させることをお勧めします")
    if any(issue["severity"] in ("critical", "high") for issue in issues):
        recommendations.append("重要なエラーが検出されました。データの整合性を確認してください")
    if len(errors) > MANY_ERRORS:
        recommendations.append("エラーが多数発生しています。CSVファイルの品質を向上させることをお勧めします")

    return {
        "overall_score": round((completeness + accuracy) / 2),
        "metrics": {"completeness": round(completeness, 1), "accuracy": round(accuracy, 1)},
        "issues": issues,
        "recommendations": recommendations,
    }
