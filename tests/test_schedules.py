"""Tests for weekly schedules and pattern creation from visit history."""

import random
import re
from datetime import date

import pytest
from fastapi import HTTPException

from caredesk.domain.schedules.service import ScheduleService
from caredesk.models import ServicePattern, ServiceRecord


def slot_payload(user, pattern, **overrides):
    payload = {
        "user_id": user.id,
        "pattern_id": pattern.id,
        "start_time": "09:00",
        "end_time": "10:00",
        "day_of_week": 1,
    }
    payload.update(overrides)
    return payload


class TestTimePatterns:
    """Test the recurring weekly slots."""

    def test_create_snapshots_pattern(self, client, make_user, make_pattern):
        """Test that a new slot copies the pattern's name and checklist."""
        user, pattern = make_user(), make_pattern()

        response = client.post("/schedules/time-patterns", json=slot_payload(user, pattern))

        assert response.status_code == 201
        body = response.json()
        assert body["pattern_name"] == "食事介助パターン"
        assert body["pattern_details"]["meal"]["full_assistance"] is True
        assert body["is_active"] is True

    def test_unknown_user(self, client, make_user, make_pattern):
        """Test 404 when the user does not exist."""
        pattern = make_pattern()
        payload = {**slot_payload(make_user(), pattern), "user_id": 999}
        response = client.post("/schedules/time-patterns", json=payload)
        assert response.status_code == 404

    @pytest.mark.parametrize(
        "overrides",
        [
            {"start_time": "10:00", "end_time": "09:00"},
            {"start_time": "09:00", "end_time": "09:00"},
            {"day_of_week": 7},
            {"start_time": "9時"},
        ],
    )
    def test_invalid_payload(self, client, make_user, make_pattern, overrides):
        """Test that bad times and weekdays are rejected."""
        response = client.post(
            "/schedules/time-patterns", json=slot_payload(make_user(), make_pattern(), **overrides)
        )
        assert response.status_code == 422

    def test_update_and_deactivate(self, client, make_user, make_pattern):
        """Test changing the pattern refreshes the snapshot and inactive slots drop out of the day view."""
        user = make_user()
        meal, bath = make_pattern(), make_pattern(name="入浴パターン", content="入浴介助")
        slot_id = client.post("/schedules/time-patterns", json=slot_payload(user, meal)).json()["id"]

        updated = client.put(f"/schedules/time-patterns/{slot_id}", json={"pattern_id": bath.id}).json()
        assert updated["pattern_name"] == "入浴パターン"

        client.put(f"/schedules/time-patterns/{slot_id}", json={"is_active": False})
        day = client.get("/schedules/time-patterns/day", params={"user_id": user.id, "day_of_week": 1})
        assert day.json() == []

    def test_update_rejects_reversed_times(self, client, make_user, make_pattern):
        """Test that an update leaving start after end is refused."""
        slot_id = client.post(
            "/schedules/time-patterns", json=slot_payload(make_user(), make_pattern())
        ).json()["id"]

        response = client.put(f"/schedules/time-patterns/{slot_id}", json={"start_time": "11:00"})
        assert response.status_code == 400

    def test_weekly_keys(self, client, make_user, make_pattern):
        """Test that the weekly view is keyed by user id and weekday."""
        user = make_user()
        pattern = make_pattern()
        client.post("/schedules/time-patterns", json=slot_payload(user, pattern))
        client.post("/schedules/time-patterns", json=slot_payload(user, pattern, day_of_week=3))

        weekly = client.get("/schedules/weekly").json()

        assert set(weekly) == {f"{user.id}_1", f"{user.id}_3"}

    def test_delete(self, client, make_user, make_pattern):
        """Test deleting a slot."""
        slot_id = client.post(
            "/schedules/time-patterns", json=slot_payload(make_user(), make_pattern())
        ).json()["id"]

        assert client.delete(f"/schedules/time-patterns/{slot_id}").status_code == 200
        assert client.get(f"/schedules/time-patterns/{slot_id}").status_code == 404


@pytest.fixture
def visit_history(make_record):
    """Two Monday-morning visits for one user and a single afternoon visit for another."""
    return [
        make_record(service_date=date(2024, 4, 1)),
        make_record(service_date=date(2024, 4, 8), service_content="食事介助と服薬"),
        make_record(user_name="佐藤花子", start_time="14:00", end_time="15:00", service_content="入浴介助"),
    ]


class TestGroupedTimeData:
    """Test grouping of visit history into pattern suggestions."""

    def test_groups(self, client, visit_history):
        """Test grouping by user and start time, most frequent first."""
        groups = client.get("/schedules/grouped-time-data").json()

        assert [g["id"] for g in groups] == ["田中太郎_09:00", "佐藤花子_14:00"]
        first = groups[0]
        assert first["count"] == 2
        assert first["end_time"] == "09:30"
        assert first["service_contents"] == ["食事介助と服薬", "食事介助"]
        assert first["suggested_pattern_name"] == "田中太郎_09:00_食事介助"
        assert first["is_pattern_created"] is False
        assert groups[1]["main_service_type"] == "入浴介助"

    def test_date_range(self, client, visit_history):
        """Test that the date range limits the grouped records."""
        groups = client.get(
            "/schedules/grouped-time-data", params={"date_from": "2024-04-02", "date_to": "2024-04-30"}
        ).json()
        assert [(g["id"], g["count"]) for g in groups] == [("田中太郎_09:00", 1)]

    def test_bulk_create_then_reuse(self, client, db_session, visit_history):
        """Test that a group becomes a linked pattern, and a second run reuses it."""
        first = client.post(
            "/schedules/bulk-create-patterns", json={"group_ids": ["田中太郎_09:00", "unknown_00:00"]}
        ).json()

        assert len(first["created_pattern_ids"]) == 1
        assert first["linked_records"] == 2
        assert len(first["errors"]) == 1
        pattern = db_session.get(ServicePattern, first["created_pattern_ids"][0])
        assert pattern.pattern_name == "田中太郎_09:00_食事介助"
        assert pattern.pattern_details["assistance"]["medication_assistance"] is True

        second = client.post("/schedules/bulk-create-patterns", json={"group_ids": ["田中太郎_09:00"]}).json()
        assert second["created_pattern_ids"] == []
        assert second["existing_pattern_ids"] == first["created_pattern_ids"]

    def test_bulk_create_requires_groups(self, client):
        """Test that an empty selection is refused."""
        response = client.post("/schedules/bulk-create-patterns", json={"group_ids": []})
        assert response.status_code == 400

    def test_statistics(self, client, visit_history, make_pattern):
        """Test statistics after linking one group."""
        pattern = make_pattern()
        client.post(
            "/schedules/link-records",
            json={"pattern_id": pattern.id, "record_ids": [visit_history[2].id]},
        )

        stats = client.get("/schedules/statistics").json()

        assert stats == {
            "total_groups": 2,
            "groups_with_patterns": 1,
            "groups_without_patterns": 1,
            "total_records": 3,
        }

    def test_link_and_unlink(self, client, db_session, visit_history, make_pattern):
        """Test linking and unlinking records directly."""
        pattern = make_pattern()
        ids = [r.id for r in visit_history[:2]]

        assert client.post(
            "/schedules/link-records", json={"pattern_id": pattern.id, "record_ids": ids}
        ).json() == {"updated": 2}
        assert client.post("/schedules/unlink-records", json={"record_ids": ids}).json() == {"updated": 2}
        assert db_session.get(ServiceRecord, ids[0]).pattern_id is None


class TestApplyPattern:
    """Test writing a pattern checklist into records."""

    def test_fills_vitals_and_timestamps(self, db_session, make_user, make_pattern, make_record):
        """Test that vital signs come from the baseline and timestamps are generated."""
        make_user()
        pattern = make_pattern()
        record = make_record()

        result = ScheduleService(db_session).apply_pattern_to_records(
            pattern.id, [record.id], special_notes="特記なし", rng=random.Random(3)
        )

        assert result == {"updated": 1}
        stored = db_session.get(ServiceRecord, record.id)
        pre_check = stored.service_details["pre_check"]
        assert 36.0 <= pre_check["temperature"] <= 37.5
        assert re.fullmatch(r"\d{3}/\d{2}", pre_check["blood_pressure"])
        assert 60 <= pre_check["pulse"] <= 100
        assert stored.special_notes == "特記なし"
        assert stored.pattern_id == pattern.id
        assert stored.record_created_at is not None
        assert stored.print_datetime > stored.record_created_at
        assert pattern.pattern_details["pre_check"].get("temperature") is None

    def test_no_matching_records(self, db_session, make_pattern):
        """Test 404 when none of the ids exist."""
        with pytest.raises(HTTPException) as exc_info:
            ScheduleService(db_session).apply_pattern_to_records(make_pattern().id, [999])
        assert exc_info.value.status_code == 404


class TestWeekView:
    """Test the Monday-to-Sunday view."""

    def test_week_starts_on_monday(self, client, make_pattern, make_record):
        """Test week bounds and that linked records are not listed as schedules."""
        make_record(service_date=date(2024, 4, 3))
        make_record(service_date=date(2024, 4, 3), start_time="10:00", end_time="10:30", pattern=make_pattern())

        view = client.get("/schedules/week-view", params={"date": "2024-04-03"}).json()

        assert view["week_start"] == "2024-04-01"
        assert view["week_end"] == "2024-04-07"
        assert [d["day_of_week"] for d in view["days"]] == [1, 2, 3, 4, 5, 6, 0]
        wednesday = view["days"][2]
        assert len(wednesday["records"]) == 2
        assert [r["start_time"] for r in wednesday["schedules"]] == ["09:00"]
