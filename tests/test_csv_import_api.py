"""Tests for the visit-log CSV import endpoints."""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from caredesk.domain.csv_import.repository import ImportRepository
from caredesk.domain.csv_import.service import CsvImportService
from caredesk.domain.records.repository import RecordRepository
from caredesk.models import CareUser, CsvImportLog, NameResolutionPattern, ServiceRecord

HEADER = "日付,利用者名,担当職員,開始時間,終了時間,実施時間,サービス内容"


def csv_bytes(*rows: str, encoding: str = "utf-8") -> bytes:
    return "\n".join([HEADER, *rows]).encode(encoding)


def upload(client, content: bytes, filename: str = "visits.csv", path: str = "/csv-import", **form):
    return client.post(path, files={"file": (filename, content, "text/csv")}, data=form)


class TestImport:
    """Test importing visit logs."""

    def test_imports_and_registers_names(self, client, db_session):
        """Test that rows are stored and unknown names become masters."""
        content = csv_bytes(
            "令和6年4月1日,田中太郎,山田花子,9:00,9:30,30,食事介助",
            "2024/04/02,佐藤花子,,14:00,15:00,60分,入浴介助",
            encoding="cp932",
        )

        response = upload(client, content)

        assert response.status_code == 200
        result = response.json()
        assert result["status"] == "completed"
        assert result["total_rows"] == 2
        assert result["imported"] == 2
        assert result["errors"] == []
        assert {r["source"] for r in result["name_resolutions"]} == {"registered"}
        assert result["quality"]["overall_score"] == 100.0

        records = db_session.query(ServiceRecord).order_by(ServiceRecord.service_date).all()
        assert [str(r.service_date) for r in records] == ["2024-04-01", "2024-04-02"]
        assert records[0].start_time == "09:00"
        assert records[0].staff_name == "山田花子"
        assert records[0].user_id is not None
        assert records[0].csv_import_batch_id == result["batch_id"]
        assert records[0].record_created_at is not None
        assert {u.name for u in db_session.query(CareUser).all()} == {"田中太郎", "佐藤花子"}

        log = client.get(f"/csv-import/logs/{result['batch_id']}").json()
        assert log["status"] == "completed"
        assert log["success_count"] == 2
        assert log["summary"]["encoding"] == "cp932"

    def test_invalid_rows_are_reported(self, client):
        """Test that bad rows are skipped with line numbers and the rest imported."""
        content = csv_bytes(
            "2024-04-01,田中太郎,,09:00,09:30,30,食事介助",
            "2024-04-01,田中太郎,,10:00,09:00,30,食事介助",
            ",田中太郎,,11:00,11:30,30,",
        )

        result = upload(client, content).json()

        assert result["imported"] == 1
        assert result["skipped_rows"] == 1
        assert result["errors"] == ["行 3: 開始時間は終了時間より前である必要があります"]
        assert result["quality"]["overall_score"] < 100

    def test_known_name_is_learned(self, client, db_session, make_user):
        """Test that a marked name resolves to the master and is remembered for the next import."""
        user = make_user()
        content = csv_bytes("2024-04-01,※田中太郎,,09:00,09:30,30,食事介助")

        first = upload(client, content).json()
        assert first["name_resolutions"][0]["source"] == "existing"
        assert first["name_resolutions"][0]["entity_id"] == user.id

        learned = db_session.query(NameResolutionPattern).one()
        assert (learned.original_name, learned.resolved_name) == ("※田中太郎", "田中太郎")

        second = upload(client, csv_bytes("2024-04-02,※田中太郎,,09:00,09:30,30,食事介助")).json()
        assert second["name_resolutions"][0]["source"] == "learned"
        db_session.refresh(learned)
        assert learned.usage_count == 2
        assert db_session.query(CareUser).count() == 1

    def test_unresolved_names_without_registration(self, client, db_session, make_user, monkeypatch):
        """Test that unknown names are kept as written with a warning when registration is off."""
        monkeypatch.setattr("caredesk.domain.csv_import.service.AUTO_REGISTER_NAMES", False)
        make_user()

        result = upload(client, csv_bytes("2024-04-01,田中次郎,,09:00,09:30,30,食事介助")).json()

        assert result["imported"] == 1
        resolution = result["name_resolutions"][0]
        assert resolution["source"] == "unresolved"
        assert resolution["alternatives"] == ["田中太郎"]
        assert "田中次郎" in result["warnings"][0]
        assert result["quality"]["issues"][0]["type"] == "name_resolution"
        record = db_session.query(ServiceRecord).one()
        assert (record.user_name, record.user_id) == ("田中次郎", None)

    def test_auto_link(self, client, db_session, make_user, make_pattern, make_slot):
        """Test that imported records can be linked to scheduled patterns straight away."""
        make_slot(make_user(), make_pattern())

        result = upload(
            client, csv_bytes("2024-04-01,田中太郎,,09:00,09:30,30,食事介助"), auto_link="true"
        ).json()

        assert result["auto_linked"] == 1
        assert db_session.query(ServiceRecord).one().is_pattern_assigned is True

    def test_no_valid_rows(self, client):
        """Test that a file without importable rows fails and leaves a failed log."""
        response = upload(client, csv_bytes("2024-04-01,田中太郎,,10:00,09:00,30,食事介助"))

        assert response.status_code == 400
        detail = response.json()["detail"]
        log = client.get(f"/csv-import/logs/{detail['batch_id']}").json()
        assert log["status"] == "failed"
        assert log["errors"] == detail["errors"]

    def test_missing_user_column(self, client):
        """Test that a header without a user column is rejected."""
        response = upload(client, "日付,開始時間\n2024-04-01,09:00".encode("utf-8"))
        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "利用者名の列が見つかりません"

    def test_malformed_csv_fails_log(self, client, db_session):
        """Test that a field over the csv module limit is a 400 and the log ends failed."""
        content = csv_bytes("2024-04-01,田中太郎,,09:00,09:30,30," + "食" * 200_000)

        response = upload(client, content)

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["message"].startswith("CSVの構造が不正です")
        log = client.get(f"/csv-import/logs/{detail['batch_id']}").json()
        assert log["status"] == "failed"
        assert db_session.query(ServiceRecord).count() == 0

    def test_unexpected_error_fails_log(self, db_session, monkeypatch):
        """Test that an unexpected exception marks the log failed and propagates."""

        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr("caredesk.domain.csv_import.service.validate_rows", explode)

        with pytest.raises(RuntimeError):
            CsvImportService(db_session).import_csv(
                "visits.csv", csv_bytes("2024-04-01,田中太郎,,09:00,09:30,30,")
            )

        log = db_session.query(CsvImportLog).one()
        assert log.status == "failed"
        assert log.errors == ["unknown: boom"]
        assert log.completed_at is not None

    def test_database_failure_is_reported(self, client, db_session, monkeypatch):
        """Test that a failed batch insert is counted per row as a database issue."""

        def failing_add_batch(db, rows):
            raise SQLAlchemyError("boom")

        monkeypatch.setattr(RecordRepository, "add_batch", staticmethod(failing_add_batch))

        response = upload(client, csv_bytes("2024-04-01,田中太郎,,09:00,09:30,30,"))

        assert response.status_code == 200
        result = response.json()
        assert result["status"] == "completed"
        assert result["imported"] == 0
        assert result["errors"] == ["行 2: 保存に失敗しました"]
        issues = {issue["type"]: issue for issue in result["quality"]["issues"]}
        assert issues["database"]["severity"] == "high"
        assert issues["database"]["count"] == 1
        assert db_session.query(ServiceRecord).count() == 0

    def test_cancel_between_batches(self, client, db_session, monkeypatch):
        """Test that a cancel landing mid-import stops after the current batch."""
        monkeypatch.setattr("caredesk.domain.csv_import.service.CSV_IMPORT_BATCH_SIZE", 1)
        original_add_batch = RecordRepository.add_batch

        def add_then_cancel(db, rows):
            records = original_add_batch(db, rows)
            db.query(CsvImportLog).update({CsvImportLog.status: "cancelled"}, synchronize_session=False)
            db.commit()
            return records

        monkeypatch.setattr(RecordRepository, "add_batch", staticmethod(add_then_cancel))
        content = csv_bytes(
            "2024-04-01,田中太郎,,09:00,09:30,30,",
            "2024-04-02,田中太郎,,09:00,09:30,30,",
            "2024-04-03,田中太郎,,09:00,09:30,30,",
        )

        result = upload(client, content).json()

        assert result["status"] == "cancelled"
        assert result["imported"] == 1
        assert db_session.query(ServiceRecord).count() == 1
        log = client.get(f"/csv-import/logs/{result['batch_id']}").json()
        assert log["status"] == "cancelled"
        assert log["success_count"] == 1


class TestUploadChecks:
    """Test upload guards."""

    def test_rejects_other_extensions(self, client):
        """Test 415 for non-CSV file names."""
        assert upload(client, csv_bytes(), filename="visits.xlsx").status_code == 415

    def test_rejects_large_files(self, client, monkeypatch):
        """Test 413 above the size limit."""
        monkeypatch.setattr("caredesk.domain.csv_import.service.CSV_MAX_FILE_SIZE", 10)
        assert upload(client, csv_bytes()).status_code == 413

    def test_rejects_empty_file(self, client):
        """Test 400 for an empty upload."""
        assert upload(client, b"").status_code == 400


class TestPreview:
    """Test preview without import."""

    def test_preview_writes_nothing(self, client, db_session):
        """Test that preview returns parsed rows and stores no records or logs."""
        content = csv_bytes(
            "R6.4.1,田中太郎,,9:00,9:30,30,食事介助",
            "2024-04-01,田中太郎,,09:00,09:30,30,食事介助",
        )

        body = upload(client, content, path="/csv-import/preview").json()

        assert body["encoding"] == "utf-8-sig"
        assert body["total_rows"] == 2
        assert body["rows"][0]["service_date"] == "2024-04-01"
        assert body["errors"] == ["行 3: 重複データです"]
        assert body["is_valid"] is False
        assert db_session.query(ServiceRecord).count() == 0
        assert client.get("/csv-import/logs").json() == []

    def test_preview_malformed_csv(self, client):
        """Test that preview rejects a malformed file with 400."""
        content = csv_bytes("2024-04-01,田中太郎,,09:00,09:30,30," + "食" * 200_000)

        response = upload(client, content, path="/csv-import/preview")

        assert response.status_code == 400
        assert client.get("/csv-import/logs").json() == []


class TestImportLogs:
    """Test import log listing and cancellation."""

    def test_cancel_pending(self, client, db_session):
        """Test that a pending import can be cancelled."""
        log = ImportRepository.create_log(db_session, filename="visits.csv", status="pending")

        response = client.post(f"/csv-import/logs/{log.batch_id}/cancel")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_cancel_finished(self, client):
        """Test that a completed import cannot be cancelled."""
        batch_id = upload(client, csv_bytes("2024-04-01,田中太郎,,09:00,09:30,30,")).json()["batch_id"]
        assert client.post(f"/csv-import/logs/{batch_id}/cancel").status_code == 400

    def test_unknown_batch(self, client):
        """Test 404 for an unknown batch id."""
        assert client.get("/csv-import/logs/nope").status_code == 404

    def test_newest_first(self, client):
        """Test log ordering."""
        first = upload(client, csv_bytes("2024-04-01,田中太郎,,09:00,09:30,30,")).json()["batch_id"]
        second = upload(client, csv_bytes("2024-04-02,田中太郎,,09:00,09:30,30,")).json()["batch_id"]

        logs = client.get("/csv-import/logs").json()
        assert [log["batch_id"] for log in logs] == [second, first]
