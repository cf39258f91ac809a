import sqlite3
import aiosqlite
import os
import datetime
import json
import uuid
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional, Iterable

from config import SettingsFile
from settings_schema import validate_settings
from tools import MathTools, TimeFormatter


CATEGORIES = (
    "push",
    "push2",
    "pull",
    "pull2",
    "legs",
    "legs2",
    "cardio",
    "arms",
    "core",
    "chest",
    "back",
)

BLOOD_MARKERS: List[Tuple[str, str]] = [
    ("total_testosterone", "ng/dL"),
    ("free_testosterone", "pg/mL"),
    ("shbg", "nmol/L"),
    ("estradiol", "pg/mL"),
    ("estrogens_total", "pg/mL"),
    ("dhea_sulfate", "ug/dL"),
    ("cortisol_am", "ug/dL"),
    ("psa", "ng/mL"),
    ("tsh", "uIU/mL"),
    ("free_t3", "pg/mL"),
    ("free_t4", "ng/dL"),
    ("tpo_ab", "IU/mL"),
    ("vitamin_d_25oh", "ng/mL"),
    ("crp_hs", "mg/L"),
    ("insulin", "uIU/mL"),
    ("hba1c", "%"),
    ("cholesterol_total", "mg/dL"),
    ("triglycerides", "mg/dL"),
    ("hdl", "mg/dL"),
    ("ldl_calc", "mg/dL"),
    ("vldl_calc", "mg/dL"),
    ("apob", "mg/dL"),
    ("albumin", "g/dL"),
    ("ferritin", "ng/mL"),
]

DEFAULT_TABS: List[Tuple[str, str, str]] = [
    ("home", "Home", "/"),
    ("push", "Push", "/push"),
    ("push2", "Push 2", "/push2"),
    ("pull", "Pull", "/pull"),
    ("pull2", "Pull 2", "/pull2"),
    ("legs", "Legs", "/legs"),
    ("legs2", "Legs 2", "/legs2"),
    ("cardio", "Cardio", "/cardio"),
    ("arms", "Arms", "/arms"),
    ("core", "Core", "/core"),
    ("chest", "Chest", "/chest"),
    ("back", "Back", "/back"),
    ("weight", "Weight", "/weight-tracking"),
    ("blood", "Blood", "/blood-tracking"),
    ("photos", "Photos", "/photo-progress"),
    ("steps", "Steps", "/steps-tracking"),
    ("thoughts", "Thoughts", "/thoughts"),
    ("affirmations", "Affirmations", "/affirmations"),
    ("admin", "Admin", "/admin"),
]

DEFAULT_SHORTCUTS: List[Tuple[str, str, str]] = [
    ("log_weight", "Log Weight", "/weight-tracking"),
    ("log_steps", "Log Steps", "/steps-tracking"),
    ("blood_labs", "Blood Labs", "/blood-tracking"),
    ("progress_photo", "Progress Photo", "/photo-progress"),
    ("new_thought", "New Thought", "/thoughts"),
    ("affirmations", "Affirmations", "/affirmations"),
]


def _blood_entries_definition() -> Tuple[str, List[str]]:
    marker_sql = []
    marker_cols = []
    for marker, unit in BLOOD_MARKERS:
        marker_sql.append(f"{marker} REAL,")
        marker_sql.append(f"{marker}_unit TEXT DEFAULT '{unit}',")
        marker_cols.extend([marker, f"{marker}_unit"])
    sql = (
        "CREATE TABLE blood_entries (\n"
        "                    id TEXT PRIMARY KEY,\n"
        "                    as_of TEXT NOT NULL,\n"
        "                    source TEXT NOT NULL,\n"
        + "\n".join(f"                    {line}" for line in marker_sql)
        + "\n                    notes TEXT DEFAULT '',\n"
        "                    attached_files TEXT NOT NULL DEFAULT '[]',\n"
        "                    created_at TEXT NOT NULL\n"
        "                );"
    )
    return sql, [
        "id",
        "as_of",
        "source",
        *marker_cols,
        "notes",
        "attached_files",
        "created_at",
    ]


def now_iso() -> str:
    return datetime.datetime.now().isoformat(timespec="seconds")


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "exercises": (
            """CREATE TABLE exercises (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    weight REAL DEFAULT 0,
                    reps INTEGER DEFAULT 0,
                    duration TEXT DEFAULT '',
                    distance TEXT DEFAULT '',
                    pace TEXT DEFAULT '',
                    calories INTEGER DEFAULT 0,
                    rpe INTEGER DEFAULT 0,
                    notes TEXT DEFAULT '',
                    created_at TEXT NOT NULL
                );""",
            [
                "id",
                "name",
                "category",
                "weight",
                "reps",
                "duration",
                "distance",
                "pace",
                "calories",
                "rpe",
                "notes",
                "created_at",
            ],
        ),
        "workout_logs": (
            """CREATE TABLE workout_logs (
                    id TEXT PRIMARY KEY,
                    category TEXT NOT NULL,
                    completed_at TEXT NOT NULL
                );""",
            ["id", "category", "completed_at"],
        ),
        "weight_entries": (
            """CREATE TABLE weight_entries (
                    id TEXT PRIMARY KEY,
                    date TEXT NOT NULL,
                    time TEXT,
                    weight REAL NOT NULL,
                    body_fat REAL,
                    fat_free_mass REAL,
                    muscle_mass REAL,
                    bmi REAL,
                    subcutaneous_fat REAL,
                    skeletal_muscle REAL,
                    body_water REAL,
                    visceral_fat INTEGER,
                    bone_mass REAL,
                    protein REAL,
                    bmr INTEGER,
                    metabolic_age INTEGER,
                    body_type TEXT,
                    notes TEXT DEFAULT '',
                    created_at TEXT NOT NULL
                );""",
            [
                "id",
                "date",
                "time",
                "weight",
                "body_fat",
                "fat_free_mass",
                "muscle_mass",
                "bmi",
                "subcutaneous_fat",
                "skeletal_muscle",
                "body_water",
                "visceral_fat",
                "bone_mass",
                "protein",
                "bmr",
                "metabolic_age",
                "body_type",
                "notes",
                "created_at",
            ],
        ),
        "blood_entries": _blood_entries_definition(),
        "blood_optimal_ranges": (
            """CREATE TABLE blood_optimal_ranges (
                    marker_key TEXT PRIMARY KEY,
                    min_value REAL,
                    max_value REAL,
                    unit TEXT,
                    updated_at TEXT NOT NULL
                );""",
            ["marker_key", "min_value", "max_value", "unit", "updated_at"],
        ),
        "photo_progress": (
            """CREATE TABLE photo_progress (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT DEFAULT '',
                    photo_url TEXT NOT NULL,
                    body_part TEXT,
                    weight REAL,
                    taken_at TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );""",
            [
                "id",
                "title",
                "description",
                "photo_url",
                "body_part",
                "weight",
                "taken_at",
                "created_at",
            ],
        ),
        "thoughts": (
            """CREATE TABLE thoughts (
                    id TEXT PRIMARY KEY,
                    content TEXT NOT NULL,
                    mood TEXT DEFAULT 'neutral',
                    tags TEXT DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );""",
            ["id", "content", "mood", "tags", "created_at", "updated_at"],
        ),
        "personal_records": (
            """CREATE TABLE personal_records (
                    id TEXT PRIMARY KEY,
                    exercise TEXT NOT NULL,
                    category TEXT NOT NULL,
                    weight TEXT DEFAULT '',
                    reps TEXT DEFAULT '',
                    time TEXT DEFAULT '',
                    position INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );""",
            [
                "id",
                "exercise",
                "category",
                "weight",
                "reps",
                "time",
                "position",
                "created_at",
                "updated_at",
            ],
        ),
        "changes_audit": (
            """CREATE TABLE changes_audit (
                    id TEXT PRIMARY KEY,
                    exercise_name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    previous_weight REAL,
                    new_weight REAL,
                    percentage_change REAL NOT NULL DEFAULT 0,
                    changed_at TEXT NOT NULL
                );""",
            [
                "id",
                "exercise_name",
                "category",
                "previous_weight",
                "new_weight",
                "percentage_change",
                "changed_at",
            ],
        ),
        "pr_changes_audit": (
            """CREATE TABLE pr_changes_audit (
                    id TEXT PRIMARY KEY,
                    record_id TEXT,
                    exercise_name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    field_name TEXT NOT NULL,
                    previous_value TEXT,
                    new_value TEXT,
                    percentage_change REAL NOT NULL DEFAULT 0,
                    changed_at TEXT NOT NULL
                );""",
            [
                "id",
                "record_id",
                "exercise_name",
                "category",
                "field_name",
                "previous_value",
                "new_value",
                "percentage_change",
                "changed_at",
            ],
        ),
        "weight_audit": (
            """CREATE TABLE weight_audit (
                    id TEXT PRIMARY KEY,
                    entry_id TEXT,
                    action TEXT NOT NULL,
                    source TEXT NOT NULL DEFAULT 'manual',
                    field_name TEXT NOT NULL,
                    previous_value REAL,
                    new_value REAL,
                    percentage_change REAL NOT NULL DEFAULT 0,
                    changed_at TEXT NOT NULL
                );""",
            [
                "id",
                "entry_id",
                "action",
                "source",
                "field_name",
                "previous_value",
                "new_value",
                "percentage_change",
                "changed_at",
            ],
        ),
        "workout_timers": (
            """CREATE TABLE workout_timers (
                    id TEXT PRIMARY KEY,
                    storage_key TEXT NOT NULL UNIQUE,
                    is_running INTEGER NOT NULL DEFAULT 0,
                    session_start_epoch_ms INTEGER NOT NULL DEFAULT 0,
                    lap_start_epoch_ms INTEGER NOT NULL DEFAULT 0,
                    elapsed_before_start_ms INTEGER NOT NULL DEFAULT 0,
                    lap_elapsed_before_start_ms INTEGER NOT NULL DEFAULT 0,
                    date_key TEXT NOT NULL,
                    auto_reset_daily INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );""",
            [
                "id",
                "storage_key",
                "is_running",
                "session_start_epoch_ms",
                "lap_start_epoch_ms",
                "elapsed_before_start_ms",
                "lap_elapsed_before_start_ms",
                "date_key",
                "auto_reset_daily",
                "created_at",
                "updated_at",
            ],
        ),
        "timer_lap_times": (
            """CREATE TABLE timer_lap_times (
                    id TEXT PRIMARY KEY,
                    timer_id TEXT NOT NULL,
                    lap_id INTEGER NOT NULL,
                    lap_time TEXT NOT NULL,
                    lap_time_ms INTEGER NOT NULL,
                    started_at_ms INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY(timer_id) REFERENCES workout_timers(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "timer_id",
                "lap_id",
                "lap_time",
                "lap_time_ms",
                "started_at_ms",
                "created_at",
            ],
        ),
        "tab_settings": (
            """CREATE TABLE tab_settings (
                    tab_key TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    route TEXT NOT NULL,
                    is_visible INTEGER NOT NULL DEFAULT 1,
                    position INTEGER NOT NULL DEFAULT 0
                );""",
            ["tab_key", "name", "route", "is_visible", "position"],
        ),
        "workout_notes": (
            """CREATE TABLE workout_notes (
                    id TEXT PRIMARY KEY,
                    category TEXT NOT NULL,
                    date TEXT NOT NULL,
                    notes TEXT NOT NULL DEFAULT '',
                    updated_at TEXT NOT NULL,
                    UNIQUE(category, date)
                );""",
            ["id", "category", "date", "notes", "updated_at"],
        ),
        "shortcut_settings": (
            """CREATE TABLE shortcut_settings (
                    shortcut_key TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    route TEXT NOT NULL,
                    is_visible INTEGER NOT NULL DEFAULT 1,
                    position INTEGER NOT NULL DEFAULT 0
                );""",
            ["shortcut_key", "name", "route", "is_visible", "position"],
        ),
        "quotes": (
            """CREATE TABLE quotes (
                    id TEXT PRIMARY KEY,
                    text TEXT NOT NULL,
                    author TEXT NOT NULL DEFAULT 'Unknown',
                    category TEXT NOT NULL DEFAULT 'motivational',
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL
                );""",
            ["id", "text", "author", "category", "is_active", "created_at"],
        ),
        "step_entries": (
            """CREATE TABLE step_entries (
                    id TEXT PRIMARY KEY,
                    date TEXT NOT NULL,
                    steps INTEGER NOT NULL,
                    distance REAL,
                    floors_ascended INTEGER,
                    notes TEXT DEFAULT '',
                    created_at TEXT NOT NULL
                );""",
            ["id", "date", "steps", "distance", "floors_ascended", "notes", "created_at"],
        ),
        "body_measurements": (
            """CREATE TABLE body_measurements (
                    id TEXT PRIMARY KEY,
                    date TEXT NOT NULL,
                    waist REAL,
                    chest REAL,
                    hips REAL,
                    arms REAL,
                    thighs REAL,
                    neck REAL,
                    notes TEXT DEFAULT '',
                    created_at TEXT NOT NULL
                );""",
            [
                "id",
                "date",
                "waist",
                "chest",
                "hips",
                "arms",
                "thighs",
                "neck",
                "notes",
                "created_at",
            ],
        ),
        "exercise_templates": (
            """CREATE TABLE exercise_templates (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    category TEXT,
                    notes TEXT DEFAULT '',
                    created_at TEXT NOT NULL
                );""",
            ["id", "name", "category", "notes", "created_at"],
        ),
        "daily_set_progress": (
            """CREATE TABLE daily_set_progress (
                    id TEXT PRIMARY KEY,
                    exercise_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    sets_completed INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL,
                    UNIQUE(exercise_id, date),
                    FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE CASCADE
                );""",
            ["id", "exercise_id", "date", "sets_completed", "updated_at"],
        ),
        "daily_workout_status": (
            """CREATE TABLE daily_workout_status (
                    id TEXT PRIMARY KEY,
                    category TEXT NOT NULL,
                    date TEXT NOT NULL,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL,
                    UNIQUE(category, date)
                );""",
            ["id", "category", "date", "is_completed", "updated_at"],
        ),
        "user_settings": (
            """CREATE TABLE user_settings (
                    id TEXT PRIMARY KEY,
                    current_body_weight REAL,
                    updated_at TEXT NOT NULL
                );""",
            ["id", "current_body_weight", "updated_at"],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = "fitness.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._init_settings()
        self._init_navigation("tab_settings", "tab_key", DEFAULT_TABS)
        self._init_navigation("shortcut_settings", "shortcut_key", DEFAULT_SHORTCUTS)

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys=on;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA foreign_keys=off;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            cursor.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            # NOT NULL columns without a DEFAULT clause need a value when copying
            required = {
                "created_at": f"'{now_iso()}'",
                "updated_at": f"'{now_iso()}'",
                "changed_at": f"'{now_iso()}'",
                "completed_at": f"'{now_iso()}'",
                "date_key": f"'{datetime.date.today().isoformat()}'",
            }
            missing = [c for c in columns if c not in existing_cols and c in required]
            if missing:
                defaults = ", ".join(required[c] for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")

    def _init_settings(self) -> None:
        defaults = {
            "weight_unit": "lb",
            "timezone": "UTC",
            "log_level": "INFO",
            "timer_throttle_ms": "100",
            "timer_auto_reset_daily": "1",
            "session_hours": "24",
            "upload_dir": "uploads",
        }
        with self._connection() as conn:
            for key, value in defaults.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, value),
                )

    def _init_navigation(
        self, table: str, key_column: str, defaults: List[Tuple[str, str, str]]
    ) -> None:
        with self._connection() as conn:
            for position, (key, name, route) in enumerate(defaults):
                conn.execute(
                    f"INSERT OR IGNORE INTO {table} ({key_column}, name, route, is_visible, position) "
                    "VALUES (?, ?, ?, 1, ?);",
                    (key, name, route, position),
                )

    def vacuum(self) -> None:
        """Run SQLite VACUUM to reduce database size."""
        with self._connection() as conn:
            conn.execute("VACUUM;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    def fetch_dicts(self, query: str, params: Tuple = ()) -> List[dict]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            names = [d[0] for d in cursor.description]
            return [dict(zip(names, row)) for row in cursor.fetchall()]

    def _delete_all(self, table: str) -> None:
        self.execute(f"DELETE FROM {table};")


class CrudRepository(BaseRepository):
    """Generic row-level create/read/update/delete for one table.

    Subclasses set ``table`` and ``entity``; ``order_by`` controls the
    default listing order. Rows are returned as dictionaries keyed by
    column name. ``_encode``/``_decode`` convert between stored and
    returned values for columns that need it.
    """

    table: str = ""
    entity: str = "row"
    key_column: str = "id"
    order_by: str = "created_at DESC"

    @property
    def columns(self) -> List[str]:
        return self._TABLE_DEFINITIONS[self.table][1]

    def _encode(self, data: dict) -> dict:
        return data

    def _decode(self, row: dict) -> dict:
        return row

    def _writable(self, data: dict) -> dict:
        protected = {self.key_column, "created_at", "updated_at"}
        return {k: v for k, v in data.items() if k in self.columns and k not in protected}

    def exists(self, row_id: str) -> bool:
        rows = self.fetch_all(
            f"SELECT 1 FROM {self.table} WHERE {self.key_column} = ?;", (row_id,)
        )
        return bool(rows)

    def fetch_rows(self, where: str = "", params: Tuple = ()) -> List[dict]:
        query = f"SELECT * FROM {self.table}"
        if where:
            query += f" WHERE {where}"
        query += f" ORDER BY {self.order_by};"
        return [self._decode(r) for r in self.fetch_dicts(query, params)]

    def fetch_row(self, row_id: str) -> dict:
        rows = self.fetch_dicts(
            f"SELECT * FROM {self.table} WHERE {self.key_column} = ?;", (row_id,)
        )
        if not rows:
            raise ValueError(f"{self.entity} not found")
        return self._decode(rows[0])

    def create(self, data: dict) -> dict:
        values = self._encode(self._writable(data))
        row_id = str(uuid.uuid4())
        values[self.key_column] = row_id
        stamp = now_iso()
        for col in ("created_at", "updated_at"):
            if col in self.columns:
                values[col] = stamp
        cols = list(values.keys())
        placeholders = ", ".join("?" for _ in cols)
        self.execute(
            f"INSERT INTO {self.table} ({', '.join(cols)}) VALUES ({placeholders});",
            tuple(values[c] for c in cols),
        )
        return self.fetch_row(row_id)

    def update(self, row_id: str, data: dict) -> dict:
        if not self.exists(row_id):
            raise ValueError(f"{self.entity} not found")
        values = self._encode(self._writable(data))
        if "updated_at" in self.columns:
            values["updated_at"] = now_iso()
        if values:
            assignments = ", ".join(f"{c} = ?" for c in values)
            self.execute(
                f"UPDATE {self.table} SET {assignments} WHERE {self.key_column} = ?;",
                (*values.values(), row_id),
            )
        return self.fetch_row(row_id)

    def delete(self, row_id: str) -> None:
        if not self.exists(row_id):
            raise ValueError(f"{self.entity} not found")
        self.execute(
            f"DELETE FROM {self.table} WHERE {self.key_column} = ?;", (row_id,)
        )

    def delete_all(self) -> None:
        self._delete_all(self.table)


class ExerciseRepository(CrudRepository):
    """Repository for exercises logged per workout category."""

    table = "exercises"
    entity = "exercise"

    def fetch_all_exercises(self, category: Optional[str] = None) -> List[dict]:
        if category:
            return self.fetch_rows("category = ?", (category,))
        return self.fetch_rows()

    def search(self, query: str) -> List[dict]:
        like = f"%{query.lower()}%"
        return self.fetch_rows("lower(name) LIKE ? OR lower(notes) LIKE ?", (like, like))


class WorkoutLogRepository(CrudRepository):
    """Repository for completed workout sessions."""

    table = "workout_logs"
    entity = "workout log"
    order_by = "completed_at DESC"

    def log(self, category: str, completed_at: Optional[str] = None) -> dict:
        row_id = str(uuid.uuid4())
        self.execute(
            "INSERT INTO workout_logs (id, category, completed_at) VALUES (?, ?, ?);",
            (row_id, category, completed_at or now_iso()),
        )
        return self.fetch_row(row_id)

    def fetch_latest(self) -> Optional[dict]:
        rows = self.fetch_dicts(
            "SELECT * FROM workout_logs ORDER BY completed_at DESC LIMIT 1;"
        )
        return rows[0] if rows else None


class DatedEntryRepository(CrudRepository):
    """Entries keyed by a ``date`` column, newest first."""

    order_by = "date DESC, created_at DESC"

    def fetch_history(
        self, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> List[dict]:
        clauses: list[str] = []
        params: list[str] = []
        if start_date:
            clauses.append("substr(date, 1, 10) >= ?")
            params.append(start_date)
        if end_date:
            clauses.append("substr(date, 1, 10) <= ?")
            params.append(end_date)
        return self.fetch_rows(" AND ".join(clauses), tuple(params))

    def fetch_latest(self) -> Optional[dict]:
        rows = self.fetch_rows()
        return rows[0] if rows else None


class WeightEntryRepository(DatedEntryRepository):
    """Repository for body weight and composition entries."""

    table = "weight_entries"
    entity = "weight entry"


class StepEntryRepository(DatedEntryRepository):
    """Repository for daily step counts."""

    table = "step_entries"
    entity = "step entry"


class BodyMeasurementRepository(DatedEntryRepository):
    """Repository for tape measurements of the body."""

    table = "body_measurements"
    entity = "body measurement"


def _decode_attachments(row: dict) -> dict:
    out = dict(row)
    try:
        files = json.loads(out.get("attached_files") or "[]")
    except ValueError:
        files = []
    out["attached_files"] = [f for f in files if isinstance(f, dict)]
    return out


class BloodEntryRepository(CrudRepository):
    """Repository for blood lab results and their attached lab reports."""

    table = "blood_entries"
    entity = "blood entry"
    order_by = "as_of DESC"

    def _encode(self, data: dict) -> dict:
        out = dict(data)
        if "attached_files" in out:
            out["attached_files"] = json.dumps(list(out["attached_files"] or []))
        return out

    def _decode(self, row: dict) -> dict:
        return _decode_attachments(row)

    def add_attachment(self, entry_id: str, attachment: dict) -> dict:
        files = self.fetch_row(entry_id)["attached_files"]
        return self.update(entry_id, {"attached_files": [*files, attachment]})

    def remove_attachment(self, entry_id: str, file_url: str) -> dict:
        files = self.fetch_row(entry_id)["attached_files"]
        kept = [f for f in files if f.get("file_url") != file_url]
        return self.update(entry_id, {"attached_files": kept})


class BloodOptimalRangeRepository(CrudRepository):
    """Repository for per-marker optimal ranges keyed by marker name."""

    table = "blood_optimal_ranges"
    entity = "optimal range"
    key_column = "marker_key"
    order_by = "marker_key"

    def upsert(self, marker_key: str, data: dict) -> dict:
        values = self._writable(data)
        self.execute(
            "INSERT INTO blood_optimal_ranges (marker_key, min_value, max_value, unit, updated_at) "
            "VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(marker_key) DO UPDATE SET min_value=excluded.min_value, "
            "max_value=excluded.max_value, unit=excluded.unit, updated_at=excluded.updated_at;",
            (
                marker_key,
                values.get("min_value"),
                values.get("max_value"),
                values.get("unit"),
                now_iso(),
            ),
        )
        return self.fetch_row(marker_key)


class PhotoProgressRepository(CrudRepository):
    """Repository for progress photos."""

    table = "photo_progress"
    entity = "photo"
    order_by = "taken_at DESC"

    def fetch_by_body_part(self, body_part: str) -> List[dict]:
        return self.fetch_rows("body_part = ?", (body_part,))


def _encode_thought(data: dict) -> dict:
    out = dict(data)
    if "tags" in out:
        out["tags"] = json.dumps(list(out["tags"] or []))
    return out


def _decode_thought(row: dict) -> dict:
    out = dict(row)
    try:
        out["tags"] = json.loads(out.get("tags") or "[]")
    except ValueError:
        out["tags"] = []
    return out


class ThoughtRepository(CrudRepository):
    """Repository for journal thoughts."""

    table = "thoughts"
    entity = "thought"

    def _encode(self, data: dict) -> dict:
        return _encode_thought(data)

    def _decode(self, row: dict) -> dict:
        return _decode_thought(row)


class PersonalRecordRepository(CrudRepository):
    """Repository for personal records with manual ordering."""

    table = "personal_records"
    entity = "personal record"
    order_by = "position ASC, created_at ASC"

    def next_position(self) -> int:
        rows = self.fetch_all("SELECT MAX(position) FROM personal_records;")
        current = rows[0][0] if rows and rows[0][0] is not None else 0
        return int(current) + 1

    def create(self, data: dict) -> dict:
        values = dict(data)
        values["position"] = self.next_position()
        return super().create(values)

    def reorder(self, order: Iterable[dict]) -> None:
        with self._connection() as conn:
            for item in order:
                conn.execute(
                    "UPDATE personal_records SET position = ?, updated_at = ? WHERE id = ?;",
                    (int(item["position"]), now_iso(), item["id"]),
                )


class QuoteRepository(CrudRepository):
    """Repository for motivational quotes."""

    table = "quotes"
    entity = "quote"

    def _encode(self, data: dict) -> dict:
        out = dict(data)
        if "is_active" in out:
            out["is_active"] = 1 if out["is_active"] else 0
        return out

    def _decode(self, row: dict) -> dict:
        out = dict(row)
        out["is_active"] = bool(out["is_active"])
        return out

    def fetch_active(self) -> List[dict]:
        return self.fetch_rows("is_active = 1")

    def fetch_random(self) -> dict:
        rows = self.fetch_dicts(
            "SELECT * FROM quotes WHERE is_active = 1 ORDER BY RANDOM() LIMIT 1;"
        )
        if not rows:
            raise ValueError("active quote not found")
        return self._decode(rows[0])

    def replace_all(self, quotes: Iterable[dict]) -> int:
        """Delete every quote and insert ``quotes`` in one transaction."""
        stamp = now_iso()
        count = 0
        with self._connection() as conn:
            conn.execute("DELETE FROM quotes;")
            for quote in quotes:
                values = self._encode(self._writable(quote))
                values.update(id=str(uuid.uuid4()), created_at=stamp)
                cols = list(values.keys())
                conn.execute(
                    f"INSERT INTO quotes ({', '.join(cols)}) VALUES ({', '.join('?' for _ in cols)});",
                    tuple(values[c] for c in cols),
                )
                count += 1
        return count


class ExerciseTemplateRepository(CrudRepository):
    """Repository for reusable exercise names, unique regardless of case."""

    table = "exercise_templates"
    entity = "exercise template"
    order_by = "name COLLATE NOCASE"

    def create(self, data: dict) -> dict:
        try:
            return super().create(data)
        except sqlite3.IntegrityError:
            raise ValueError("exercise template already exists")

    def update(self, row_id: str, data: dict) -> dict:
        try:
            return super().update(row_id, data)
        except sqlite3.IntegrityError:
            raise ValueError("exercise template already exists")

    def fetch_by_name(self, name: str) -> Optional[dict]:
        rows = self.fetch_rows("name = ? COLLATE NOCASE", (name,))
        return rows[0] if rows else None

    def get_or_create(self, name: str) -> dict:
        existing = self.fetch_by_name(name)
        if existing is not None:
            return existing
        return self.create({"name": name})


class AuditRepository(CrudRepository):
    """Append-only audit table; rows are inserted and deleted, never updated."""

    order_by = "changed_at DESC"

    def create(self, data: dict) -> dict:
        values = self._writable(data)
        row_id = str(uuid.uuid4())
        values["id"] = row_id
        values.setdefault("changed_at", now_iso())
        cols = list(values.keys())
        self.execute(
            f"INSERT INTO {self.table} ({', '.join(cols)}) VALUES ({', '.join('?' for _ in cols)});",
            tuple(values[c] for c in cols),
        )
        return self.fetch_row(row_id)

    def update(self, row_id: str, data: dict) -> dict:
        raise ValueError(f"{self.entity} rows cannot be modified")

    def fetch_entries(self, category: Optional[str] = None) -> List[dict]:
        if category and "category" in self.columns:
            return self.fetch_rows("category = ?", (category,))
        return self.fetch_rows()


class ChangesAuditRepository(AuditRepository):
    table = "changes_audit"
    entity = "changes audit entry"


class PRChangesAuditRepository(AuditRepository):
    table = "pr_changes_audit"
    entity = "PR changes audit entry"


class WeightAuditRepository(AuditRepository):
    table = "weight_audit"
    entity = "weight audit entry"

    def fetch_for_entry(self, entry_id: str) -> List[dict]:
        return self.fetch_rows("entry_id = ?", (entry_id,))


class TimerRepository(BaseRepository):
    """Repository for persisted stopwatch state and lap rows."""

    _STATE_FIELDS = (
        "is_running",
        "session_start_epoch_ms",
        "lap_start_epoch_ms",
        "elapsed_before_start_ms",
        "lap_elapsed_before_start_ms",
        "date_key",
        "auto_reset_daily",
    )

    @staticmethod
    def _decode(row: dict) -> dict:
        out = dict(row)
        out["is_running"] = bool(out["is_running"])
        out["auto_reset_daily"] = bool(out["auto_reset_daily"])
        return out

    def fetch(self, storage_key: str) -> Optional[dict]:
        rows = self.fetch_dicts(
            "SELECT * FROM workout_timers WHERE storage_key = ?;", (storage_key,)
        )
        return self._decode(rows[0]) if rows else None

    def fetch_required(self, storage_key: str) -> dict:
        timer = self.fetch(storage_key)
        if timer is None:
            raise ValueError("timer not found")
        return timer

    def upsert(self, storage_key: str, state: dict) -> dict:
        values = {k: state[k] for k in self._STATE_FIELDS if k in state}
        values.setdefault("date_key", datetime.date.today().isoformat())
        for flag in ("is_running", "auto_reset_daily"):
            if flag in values:
                values[flag] = 1 if values[flag] else 0
        stamp = now_iso()
        existing = self.fetch(storage_key)
        if existing is None:
            values.update(
                id=str(uuid.uuid4()),
                storage_key=storage_key,
                created_at=stamp,
                updated_at=stamp,
            )
            cols = list(values.keys())
            self.execute(
                f"INSERT INTO workout_timers ({', '.join(cols)}) VALUES ({', '.join('?' for _ in cols)});",
                tuple(values[c] for c in cols),
            )
        else:
            values["updated_at"] = stamp
            assignments = ", ".join(f"{c} = ?" for c in values)
            self.execute(
                f"UPDATE workout_timers SET {assignments} WHERE storage_key = ?;",
                (*values.values(), storage_key),
            )
        return self.fetch_required(storage_key)

    def delete(self, storage_key: str) -> None:
        timer = self.fetch_required(storage_key)
        self.execute("DELETE FROM timer_lap_times WHERE timer_id = ?;", (timer["id"],))
        self.execute("DELETE FROM workout_timers WHERE id = ?;", (timer["id"],))

    def fetch_laps(self, timer_id: str) -> List[dict]:
        return self.fetch_dicts(
            "SELECT * FROM timer_lap_times WHERE timer_id = ? ORDER BY lap_id ASC, created_at ASC, rowid ASC;",
            (timer_id,),
        )

    def count_laps(self, timer_id: str) -> int:
        rows = self.fetch_all(
            "SELECT COUNT(*) FROM timer_lap_times WHERE timer_id = ?;", (timer_id,)
        )
        return int(rows[0][0])

    def add_lap(
        self,
        timer_id: str,
        lap_time_ms: int,
        started_at_ms: int = 0,
        lap_id: Optional[int] = None,
        lap_time: Optional[str] = None,
    ) -> dict:
        # ids follow the number of stored laps, so a deleted lap can be reissued
        if lap_id is None:
            lap_id = self.count_laps(timer_id) + 1
        row_id = str(uuid.uuid4())
        self.execute(
            "INSERT INTO timer_lap_times (id, timer_id, lap_id, lap_time, lap_time_ms, started_at_ms, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?);",
            (
                row_id,
                timer_id,
                int(lap_id),
                lap_time or TimeFormatter.format_ms(lap_time_ms),
                int(lap_time_ms),
                int(started_at_ms),
                now_iso(),
            ),
        )
        rows = self.fetch_dicts("SELECT * FROM timer_lap_times WHERE id = ?;", (row_id,))
        return rows[0]

    def replace_laps(self, timer_id: str, laps: Iterable[dict]) -> None:
        self.clear_laps(timer_id)
        for lap in laps:
            self.add_lap(
                timer_id,
                lap["lap_time_ms"],
                lap.get("started_at_ms", 0),
                lap.get("lap_id"),
                lap.get("lap_time"),
            )

    def clear_laps(self, timer_id: str) -> None:
        self.execute("DELETE FROM timer_lap_times WHERE timer_id = ?;", (timer_id,))

    def delete_lap(self, timer_id: str, lap_id: int) -> None:
        rows = self.fetch_all(
            "SELECT id FROM timer_lap_times WHERE timer_id = ? AND lap_id = ?;",
            (timer_id, lap_id),
        )
        if not rows:
            raise ValueError("lap not found")
        self.execute(
            "DELETE FROM timer_lap_times WHERE timer_id = ? AND lap_id = ?;",
            (timer_id, lap_id),
        )


class NavigationSettingsRepository(BaseRepository):
    """Visibility and order of navigation entries stored in ``table``."""

    table: str = "tab_settings"
    key_column: str = "tab_key"
    entity: str = "tab setting"

    @staticmethod
    def _decode(row: dict) -> dict:
        out = dict(row)
        out["is_visible"] = bool(out["is_visible"])
        return out

    def fetch_all_entries(self) -> List[dict]:
        rows = self.fetch_dicts(
            f"SELECT * FROM {self.table} ORDER BY position, {self.key_column};"
        )
        return [self._decode(r) for r in rows]

    def fetch_visible(self) -> List[dict]:
        rows = self.fetch_dicts(
            f"SELECT * FROM {self.table} WHERE is_visible = 1 ORDER BY position, {self.key_column};"
        )
        return [self._decode(r) for r in rows]

    def update(self, key: str, data: dict) -> dict:
        rows = self.fetch_all(
            f"SELECT 1 FROM {self.table} WHERE {self.key_column} = ?;", (key,)
        )
        if not rows:
            raise ValueError(f"{self.entity} not found")
        values = {k: v for k, v in data.items() if k in ("name", "route", "is_visible", "position")}
        if "is_visible" in values:
            values["is_visible"] = 1 if values["is_visible"] else 0
        if values:
            assignments = ", ".join(f"{c} = ?" for c in values)
            self.execute(
                f"UPDATE {self.table} SET {assignments} WHERE {self.key_column} = ?;",
                (*values.values(), key),
            )
        rows = self.fetch_dicts(
            f"SELECT * FROM {self.table} WHERE {self.key_column} = ?;", (key,)
        )
        return self._decode(rows[0])


class TabSettingsRepository(NavigationSettingsRepository):
    """Repository for navigation tab visibility and order."""


class ShortcutSettingsRepository(NavigationSettingsRepository):
    """Repository for home screen shortcut visibility and order."""

    table = "shortcut_settings"
    key_column = "shortcut_key"
    entity = "shortcut setting"


class WorkoutNotesRepository(BaseRepository):
    """Repository for per-category daily workout notes."""

    def fetch_notes(self, category: str, date: str) -> str:
        rows = self.fetch_all(
            "SELECT notes FROM workout_notes WHERE category = ? AND date = ?;",
            (category, date),
        )
        return rows[0][0] if rows else ""

    def save(self, category: str, date: str, notes: str) -> str:
        self.execute(
            "INSERT INTO workout_notes (id, category, date, notes, updated_at) VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(category, date) DO UPDATE SET notes=excluded.notes, updated_at=excluded.updated_at;",
            (str(uuid.uuid4()), category, date, notes, now_iso()),
        )
        return self.fetch_notes(category, date)


class DailySetProgressRepository(BaseRepository):
    """Sets completed per exercise and day, kept between 0 and ``MAX_SETS``."""

    MAX_SETS = 3

    def fetch_for_category(self, category: str, date: str) -> List[dict]:
        return self.fetch_dicts(
            "SELECT p.* FROM daily_set_progress p JOIN exercises e ON e.id = p.exercise_id "
            "WHERE e.category = ? AND p.date = ? ORDER BY e.created_at, e.id;",
            (category, date),
        )

    def fetch_sets(self, exercise_id: str, date: str) -> int:
        rows = self.fetch_all(
            "SELECT sets_completed FROM daily_set_progress WHERE exercise_id = ? AND date = ?;",
            (exercise_id, date),
        )
        return int(rows[0][0]) if rows else 0

    def save(self, exercise_id: str, date: str, sets_completed: int) -> dict:
        sets = int(MathTools.clamp(sets_completed, 0, self.MAX_SETS))
        self.execute(
            "INSERT INTO daily_set_progress (id, exercise_id, date, sets_completed, updated_at) "
            "VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(exercise_id, date) DO UPDATE SET "
            "sets_completed=excluded.sets_completed, updated_at=excluded.updated_at;",
            (str(uuid.uuid4()), exercise_id, date, sets, now_iso()),
        )
        rows = self.fetch_dicts(
            "SELECT * FROM daily_set_progress WHERE exercise_id = ? AND date = ?;",
            (exercise_id, date),
        )
        return rows[0]

    def tap(self, exercise_id: str, date: str) -> dict:
        return self.save(exercise_id, date, self.fetch_sets(exercise_id, date) + 1)

    def reset(self) -> None:
        self._delete_all("daily_set_progress")


class DailyWorkoutStatusRepository(BaseRepository):
    """Whether a category's workout was marked done on a given day."""

    def fetch_status(self, category: str, date: str) -> bool:
        rows = self.fetch_all(
            "SELECT is_completed FROM daily_workout_status WHERE category = ? AND date = ?;",
            (category, date),
        )
        return bool(rows and rows[0][0])

    def save(self, category: str, date: str, is_completed: bool) -> bool:
        self.execute(
            "INSERT INTO daily_workout_status (id, category, date, is_completed, updated_at) "
            "VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(category, date) DO UPDATE SET "
            "is_completed=excluded.is_completed, updated_at=excluded.updated_at;",
            (str(uuid.uuid4()), category, date, 1 if is_completed else 0, now_iso()),
        )
        return self.fetch_status(category, date)

    def reset(self) -> None:
        self._delete_all("daily_workout_status")


class UserSettingsRepository(BaseRepository):
    """The single row of per-user values such as current body weight."""

    def fetch(self) -> Optional[dict]:
        rows = self.fetch_dicts("SELECT * FROM user_settings ORDER BY updated_at DESC LIMIT 1;")
        return rows[0] if rows else None

    def save(self, data: dict) -> dict:
        existing = self.fetch()
        stamp = now_iso()
        if existing is None:
            row_id = str(uuid.uuid4())
            self.execute(
                "INSERT INTO user_settings (id, current_body_weight, updated_at) VALUES (?, ?, ?);",
                (row_id, data.get("current_body_weight"), stamp),
            )
        else:
            row_id = existing["id"]
            if "current_body_weight" in data:
                self.execute(
                    "UPDATE user_settings SET current_body_weight = ?, updated_at = ? WHERE id = ?;",
                    (data["current_body_weight"], stamp, row_id),
                )
        return self.fetch()

    def update(self, settings_id: str, data: dict) -> dict:
        existing = self.fetch()
        if existing is None or existing["id"] != settings_id:
            raise ValueError("user settings not found")
        return self.save(data)


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    BOOL_KEYS = {"timer_auto_reset_daily"}
    INT_KEYS = {"timer_throttle_ms", "session_hours"}

    def __init__(
        self, db_path: str = "fitness.db", yaml_path: str = "settings.yaml"
    ) -> None:
        super().__init__(db_path)
        self._yaml = SettingsFile(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, int | bool | str] = {}
        for k, v in rows:
            if k in self.BOOL_KEYS:
                result[k] = v in {"1", "1.0", "true", "True"}
            elif k in self.INT_KEYS:
                try:
                    result[k] = int(float(v))
                except ValueError:
                    result[k] = v
            else:
                result[k] = v
        return result

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                val = str(value)
                if key in self.BOOL_KEYS:
                    val = "1" if val in {"1", "1.0", "true", "True"} else "0"
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, val),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self._raw_all_settings())

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def set_text(self, key: str, value: str) -> None:
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def set_int(self, key: str, value: int) -> None:
        self.set_text(key, str(value))

    def get_bool(self, key: str, default: bool) -> bool:
        return self.get_text(key, "1" if default else "0") in {
            "1",
            "true",
            "True",
            "1.0",
        }

    def set_bool(self, key: str, value: bool) -> None:
        self.set_text(key, "1" if value else "0")

    def all_settings(self) -> dict:
        self._sync_from_yaml()
        data = self._raw_all_settings()
        data.pop("app_password", None)
        return data

    def update_many(self, values: dict) -> dict:
        validate_settings(values)
        for key, value in values.items():
            if isinstance(value, bool):
                self.set_bool(key, value)
            else:
                self.set_text(key, str(value))
        return self.all_settings()


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        try:
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return rows

    async def fetch_dicts(self, query: str, params: Tuple = ()) -> List[dict]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            names = [d[0] for d in cursor.description]
            rows = await cursor.fetchall()
            return [dict(zip(names, row)) for row in rows]

    async def _delete_all(self, table: str) -> None:
        await self.execute(f"DELETE FROM {table};")


class AsyncThoughtRepository(AsyncBaseRepository):
    """Async repository for journal thoughts."""

    _WRITABLE = ("content", "mood", "tags")

    async def fetch_thoughts(self, mood: Optional[str] = None) -> List[dict]:
        if mood:
            rows = await self.fetch_dicts(
                "SELECT * FROM thoughts WHERE mood = ? ORDER BY created_at DESC;",
                (mood,),
            )
        else:
            rows = await self.fetch_dicts(
                "SELECT * FROM thoughts ORDER BY created_at DESC;"
            )
        return [_decode_thought(r) for r in rows]

    async def fetch_detail(self, thought_id: str) -> dict:
        rows = await self.fetch_dicts(
            "SELECT * FROM thoughts WHERE id = ?;", (thought_id,)
        )
        if not rows:
            raise ValueError("thought not found")
        return _decode_thought(rows[0])

    async def create(self, data: dict) -> dict:
        values = _encode_thought({k: v for k, v in data.items() if k in self._WRITABLE})
        thought_id = str(uuid.uuid4())
        stamp = now_iso()
        values.update(id=thought_id, created_at=stamp, updated_at=stamp)
        cols = list(values.keys())
        await self.execute(
            f"INSERT INTO thoughts ({', '.join(cols)}) VALUES ({', '.join('?' for _ in cols)});",
            tuple(values[c] for c in cols),
        )
        return await self.fetch_detail(thought_id)

    async def update(self, thought_id: str, data: dict) -> dict:
        await self.fetch_detail(thought_id)
        values = _encode_thought({k: v for k, v in data.items() if k in self._WRITABLE})
        values["updated_at"] = now_iso()
        assignments = ", ".join(f"{c} = ?" for c in values)
        await self.execute(
            f"UPDATE thoughts SET {assignments} WHERE id = ?;",
            (*values.values(), thought_id),
        )
        return await self.fetch_detail(thought_id)

    async def delete(self, thought_id: str) -> None:
        rows = await self.fetch_all(
            "SELECT id FROM thoughts WHERE id = ?;",
            (thought_id,),
        )
        if not rows:
            raise ValueError("thought not found")
        await self.execute("DELETE FROM thoughts WHERE id = ?;", (thought_id,))
