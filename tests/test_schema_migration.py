import os
import sqlite3
import sys

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import Database, PersonalRecordRepository
from migrate import migrate


class TestSchemaMigration:
    def test_drops_existing_backup_table(self, tmp_path):
        db_file = tmp_path / "test.db"
        conn = sqlite3.connect(str(db_file))
        conn.execute(
            "CREATE TABLE exercises (id TEXT PRIMARY KEY, name TEXT NOT NULL, category TEXT NOT NULL, weight REAL, reps INTEGER, notes TEXT, created_at TEXT NOT NULL)"
        )
        conn.execute(
            "INSERT INTO exercises VALUES ('e1', 'Leg Press', 'legs', 180, 0, 'est.', '2024-01-01T00:00:00')"
        )
        conn.execute("CREATE TABLE exercises_old (id INTEGER)")
        conn.commit()
        conn.close()

        Database(str(db_file))

        conn = sqlite3.connect(str(db_file))
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='exercises_old'"
        )
        assert cur.fetchone() is None
        cur = conn.execute("PRAGMA table_info(exercises)")
        cols = [row[1] for row in cur.fetchall()]
        assert "rpe" in cols
        assert "pace" in cols
        row = conn.execute("SELECT name, weight, notes FROM exercises WHERE id='e1'").fetchone()
        assert row == ("Leg Press", 180, "est.")
        conn.close()

    def test_rebuild_fills_position(self, tmp_path):
        db_file = tmp_path / "pr.db"
        conn = sqlite3.connect(str(db_file))
        conn.execute(
            "CREATE TABLE personal_records (id TEXT PRIMARY KEY, exercise TEXT NOT NULL, category TEXT NOT NULL, weight TEXT, reps TEXT, time TEXT, created_at TEXT NOT NULL, updated_at TEXT NOT NULL)"
        )
        conn.execute(
            "INSERT INTO personal_records VALUES ('p1', 'Bench', 'push', '225', '5', '', '2024-01-01', '2024-01-01')"
        )
        conn.commit()
        conn.close()

        repo = PersonalRecordRepository(str(db_file))
        record = repo.fetch_row("p1")
        assert record["position"] == 0
        assert repo.next_position() == 1

    def test_default_tabs_seeded_once(self, tmp_path):
        db_file = str(tmp_path / "tabs.db")
        Database(db_file)
        Database(db_file)
        conn = sqlite3.connect(db_file)
        count = conn.execute("SELECT COUNT(*) FROM tab_settings").fetchone()[0]
        conn.close()
        assert count == 19

    def test_migrate_adds_columns(self, tmp_path):
        db_file = str(tmp_path / "old.db")
        conn = sqlite3.connect(db_file)
        conn.execute(
            "CREATE TABLE exercises (id TEXT PRIMARY KEY, name TEXT, category TEXT, weight REAL, reps INTEGER, notes TEXT, created_at TEXT)"
        )
        conn.execute(
            "CREATE TABLE timer_lap_times (id TEXT PRIMARY KEY, timer_id TEXT, lap_id INTEGER, lap_time TEXT, lap_time_ms INTEGER, created_at TEXT)"
        )
        conn.commit()
        conn.close()

        migrate(db_file)

        conn = sqlite3.connect(db_file)
        cols = [r[1] for r in conn.execute("PRAGMA table_info(exercises)").fetchall()]
        lap_cols = [r[1] for r in conn.execute("PRAGMA table_info(timer_lap_times)").fetchall()]
        notes = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='workout_notes'"
        ).fetchone()
        conn.close()
        assert {"duration", "distance", "pace", "calories", "rpe"} <= set(cols)
        assert "started_at_ms" in lap_cols
        assert notes is not None
