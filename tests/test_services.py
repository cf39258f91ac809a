import datetime
import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from audit_service import AuditService
from auth import PasswordGate
from db import (
    ChangesAuditRepository,
    PRChangesAuditRepository,
    SettingsRepository,
    WeightAuditRepository,
    WeightEntryRepository,
    WorkoutLogRepository,
)
from object_storage import ObjectStorage
from stats_service import StatisticsService


def _audit(db_file: str) -> AuditService:
    return AuditService(
        ChangesAuditRepository(db_file),
        PRChangesAuditRepository(db_file),
        WeightAuditRepository(db_file),
    )


class FailingRepository:
    table = "weight_audit"

    def create(self, data):
        raise RuntimeError("disk full")


class TestPasswordGate:
    def _gate(self, tmp_path, hours=None):
        settings = SettingsRepository(
            str(tmp_path / "auth.db"), str(tmp_path / "auth.yaml")
        )
        return PasswordGate(settings, session_hours=hours)

    def test_login_and_expiry(self, tmp_path):
        gate = self._gate(tmp_path, hours=1)
        gate.set_password("lift-heavy")
        session = gate.login("lift-heavy", now=1_000)
        assert session == {"is_authenticated": True, "timestamp": 1_000}
        assert gate.is_valid(session, now=1_000 + 59 * 60 * 1000)
        assert not gate.is_valid(session, now=1_000 + 60 * 60 * 1000)

    def test_wrong_password(self, tmp_path):
        gate = self._gate(tmp_path)
        gate.set_password("lift-heavy")
        session = gate.login("skip-legs", now=5)
        assert session["is_authenticated"] is False
        assert not gate.is_valid(session, now=6)

    def test_no_password_configured(self, tmp_path, caplog):
        gate = self._gate(tmp_path)
        with caplog.at_level("WARNING", logger="auth"):
            assert gate.login("")["is_authenticated"] is False
        assert "no app_password" in caplog.text

    def test_session_hours_from_settings(self, tmp_path):
        gate = self._gate(tmp_path)
        gate.settings.set_int("session_hours", 2)
        assert gate.session_ms == 2 * 60 * 60 * 1000

    def test_malformed_session(self, tmp_path):
        gate = self._gate(tmp_path)
        assert not gate.is_valid(None)
        assert not gate.is_valid({"is_authenticated": True, "timestamp": "soon"})


class TestObjectStorage:
    def test_upload_flow(self, tmp_path):
        storage = ObjectStorage(str(tmp_path / "uploads"))
        upload = storage.create_upload("http://localhost:8000/")
        assert upload["upload_url"].startswith("http://localhost:8000/api/objects/uploads/")
        storage.write(upload["object_id"], b"\xff\xd8\xff\xe0data")
        path = storage.normalize_path(upload["upload_url"] + "?sig=abc")
        assert path == "/objects/uploads/" + upload["object_id"]
        data, media_type = storage.read(path)
        assert data.startswith(b"\xff\xd8\xff")
        assert media_type == "image/jpeg"
        storage.delete(path)
        with pytest.raises(ValueError, match="not found"):
            storage.read(path)

    def test_rejects_traversal(self, tmp_path):
        storage = ObjectStorage(str(tmp_path / "uploads"))
        with pytest.raises(ValueError):
            storage.write("../escape", b"x")
        with pytest.raises(ValueError, match="invalid upload url"):
            storage.normalize_path("https://example.com/photo.jpg")

    def test_normalize_unknown_object(self, tmp_path):
        storage = ObjectStorage(str(tmp_path / "uploads"))
        with pytest.raises(ValueError, match="object not found"):
            storage.normalize_path("/objects/uploads/missing")


class TestAuditService:
    def test_exercise_weight_change(self, tmp_path):
        audit = _audit(str(tmp_path / "audit.db"))
        row = audit.record_exercise_update(
            {"name": "Leg Press", "category": "legs", "weight": 180},
            {"name": "Leg Press", "category": "legs", "weight": 198},
        )
        assert row["percentage_change"] == pytest.approx(10.0)
        assert audit.record_exercise_update({"weight": 5}, {"weight": 5}) is None

    def test_pr_update_only_changed_fields(self, tmp_path):
        audit = _audit(str(tmp_path / "audit.db"))
        before = {"id": "p1", "exercise": "Bench", "category": "push", "weight": "200", "reps": "5", "time": ""}
        after = dict(before, weight="220")
        rows = audit.record_pr_update(before, after)
        assert [r["field_name"] for r in rows] == ["weight"]
        assert rows[0]["previous_value"] == "200"
        assert rows[0]["new_value"] == "220"

    def test_weight_create_records_source(self, tmp_path):
        audit = _audit(str(tmp_path / "audit.db"))
        entry = {"id": "w1", "weight": 180.0, "body_fat": 15.0, "muscle_mass": None, "bmi": None}
        rows = audit.record_weight_create(entry, source="csv")
        assert {r["field_name"] for r in rows} == {"weight", "body_fat"}
        assert all(r["source"] == "csv" and r["action"] == "create" for r in rows)
        assert len(audit.weight_audit.fetch_for_entry("w1")) == 2

    def test_failed_insert_is_logged(self, tmp_path, caplog):
        audit = _audit(str(tmp_path / "audit.db"))
        audit.weight_audit = FailingRepository()
        with caplog.at_level("WARNING", logger="audit_service"):
            rows = audit.record_weight_delete({"id": "w1", "weight": 180.0})
        assert rows == []
        assert "failed to write weight_audit row" in caplog.text


class TestStatisticsService:
    def test_empty_stats(self, tmp_path):
        db_file = str(tmp_path / "stats.db")
        stats = StatisticsService(WeightEntryRepository(db_file), WorkoutLogRepository(db_file))
        assert stats.weight_stats()["count"] == 0
        assert stats.weight_trend() == []
        assert stats.workout_frequency() == {}

    def test_weight_stats(self, tmp_path):
        db_file = str(tmp_path / "stats.db")
        repo = WeightEntryRepository(db_file)
        repo.create({"date": "2024-01-01", "weight": 200.0, "body_fat": 20.0})
        repo.create({"date": "2024-01-08", "weight": 198.0})
        repo.create({"date": "2024-01-15", "weight": 196.0, "body_fat": 19.0})
        stats = StatisticsService(repo).weight_stats()
        assert stats["count"] == 3
        assert stats["latest"] == 196.0
        assert stats["avg"] == 198.0
        assert stats["change"] == -4.0
        assert stats["weekly_rate"] == pytest.approx(-2.0)
        assert stats["body_fat_change"] == -1.0
        assert stats["muscle_mass_change"] is None

        ranged = StatisticsService(repo).weight_stats("2024-01-08", "2024-01-08")
        assert ranged["count"] == 1
        assert ranged["weekly_rate"] == 0.0

    def test_weight_trend_rolling_average(self, tmp_path):
        repo = WeightEntryRepository(str(tmp_path / "trend.db"))
        repo.create({"date": "2024-01-01", "weight": 200.0})
        repo.create({"date": "2024-01-02", "weight": 198.0})
        repo.create({"date": "2024-01-20", "weight": 190.0})
        trend = StatisticsService(repo).weight_trend()
        assert [t["date"] for t in trend] == ["2024-01-01", "2024-01-02", "2024-01-20"]
        assert trend[1]["average"] == 199.0
        assert trend[2]["average"] == 190.0

    def test_workout_frequency(self, tmp_path):
        db_file = str(tmp_path / "freq.db")
        logs = WorkoutLogRepository(db_file)
        logs.log("push")
        logs.log("push")
        logs.log("legs")
        old = (datetime.datetime.now() - datetime.timedelta(days=90)).isoformat()
        logs.log("pull", completed_at=old)
        stats = StatisticsService(WeightEntryRepository(db_file), logs)
        assert stats.workout_frequency(30) == {"legs": 1, "push": 2}
