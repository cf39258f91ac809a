import sqlite3
import sys


def _columns(cur: sqlite3.Cursor, table: str) -> list[str]:
    cur.execute(f"PRAGMA table_info({table});")
    return [r[1] for r in cur.fetchall()]


def migrate(db_path='fitness.db'):
    conn = sqlite3.connect(db_path)
    cur = conn.cursor()
    cols = _columns(cur, "exercises")
    if cols:
        for name, ddl in (
            ("duration", "TEXT DEFAULT ''"),
            ("distance", "TEXT DEFAULT ''"),
            ("pace", "TEXT DEFAULT ''"),
            ("calories", "INTEGER DEFAULT 0"),
            ("rpe", "INTEGER DEFAULT 0"),
        ):
            if name not in cols:
                cur.execute(f"ALTER TABLE exercises ADD COLUMN {name} {ddl};")
    cols = _columns(cur, "personal_records")
    if cols and 'position' not in cols:
        cur.execute("ALTER TABLE personal_records ADD COLUMN position INTEGER NOT NULL DEFAULT 0;")
    cols = _columns(cur, "weight_audit")
    if cols and 'source' not in cols:
        cur.execute("ALTER TABLE weight_audit ADD COLUMN source TEXT NOT NULL DEFAULT 'manual';")
    cols = _columns(cur, "workout_timers")
    if cols and 'auto_reset_daily' not in cols:
        cur.execute("ALTER TABLE workout_timers ADD COLUMN auto_reset_daily INTEGER NOT NULL DEFAULT 1;")
    cols = _columns(cur, "timer_lap_times")
    if cols and 'started_at_ms' not in cols:
        cur.execute("ALTER TABLE timer_lap_times ADD COLUMN started_at_ms INTEGER NOT NULL DEFAULT 0;")
    cols = _columns(cur, "blood_entries")
    if cols and 'attached_files' not in cols:
        cur.execute("ALTER TABLE blood_entries ADD COLUMN attached_files TEXT NOT NULL DEFAULT '[]';")
    if not _columns(cur, "workout_notes"):
        cur.execute(
            "CREATE TABLE workout_notes (id TEXT PRIMARY KEY, category TEXT NOT NULL, date TEXT NOT NULL, "
            "notes TEXT NOT NULL DEFAULT '', updated_at TEXT NOT NULL, UNIQUE(category, date));"
        )
    conn.commit()
    conn.close()

if __name__ == '__main__':
    path = sys.argv[1] if len(sys.argv) > 1 else 'fitness.db'
    migrate(path)
