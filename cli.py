import argparse
import json
import logging
import os
import shutil
import time

import requests

from audit_service import AuditService
from config import configure_logging
from db import (
    ChangesAuditRepository,
    PRChangesAuditRepository,
    WeightAuditRepository,
    WeightEntryRepository,
    Database,
    SettingsRepository,
)
from schemas import validate_weight_csv
from seed_sample_data import seed
from tools import WeightCsv

logger = logging.getLogger(__name__)

EXPORT_TABLES = (
    "exercises",
    "workout_logs",
    "weight_entries",
    "blood_entries",
    "blood_optimal_ranges",
    "photo_progress",
    "thoughts",
    "personal_records",
    "changes_audit",
    "pr_changes_audit",
    "weight_audit",
    "workout_notes",
    "step_entries",
    "body_measurements",
    "quotes",
    "exercise_templates",
    "daily_set_progress",
    "daily_workout_status",
    "user_settings",
)


def default_db() -> str:
    return os.environ.get("DB_PATH", "fitness.db")


def import_weights(csv_path: str, db_path: str) -> int:
    """Import weight entries from a CSV file; all rows or none."""
    with open(csv_path, encoding="utf-8-sig") as f:
        text = f.read()
    entries = validate_weight_csv(text)
    repo = WeightEntryRepository(db_path)
    audit = AuditService(
        ChangesAuditRepository(db_path),
        PRChangesAuditRepository(db_path),
        WeightAuditRepository(db_path),
    )
    for payload in entries:
        row = repo.create(payload)
        audit.record_weight_create(row, source="csv")
    logger.info("imported %d weight entries from %s", len(entries), csv_path)
    return len(entries)


def export_weights(db_path: str, out_path: str) -> None:
    rows = WeightEntryRepository(db_path).fetch_history()
    with open(out_path, "w", encoding="utf-8", newline="") as f:
        f.write(WeightCsv.export(rows))


def export_all(db_path: str, out_path: str) -> None:
    """Dump every data table to one JSON document."""
    db = Database(db_path)
    data: dict[str, list[dict]] = {}
    with db._connection() as conn:
        for table in EXPORT_TABLES:
            cur = conn.execute(f"SELECT * FROM {table};")
            names = [d[0] for d in cur.description]
            data[table] = [dict(zip(names, row)) for row in cur.fetchall()]
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def set_password(db_path: str, yaml_path: str, password: str) -> None:
    SettingsRepository(db_path, yaml_path).set_text("app_password", password)


def benchmark(url: str, runs: int = 10) -> None:
    times: list[float] = []
    for _ in range(runs):
        t0 = time.time()
        requests.get(f"{url}/health", timeout=5)
        times.append(time.time() - t0)
    avg = sum(times) / len(times)
    print(f"Average /health response time over {runs} runs: {avg:.4f}s")


def serve(db_path: str, host: str, port: int) -> None:
    import uvicorn

    os.environ["DB_PATH"] = db_path
    from rest_api import app

    uvicorn.run(app, host=host, port=port)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Utility commands")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="cmd", required=True)

    imp = sub.add_parser("import-weights")
    imp.add_argument("--csv", required=True)
    imp.add_argument("--db", default=default_db())

    expw = sub.add_parser("export-weights")
    expw.add_argument("--db", default=default_db())
    expw.add_argument("--out", default="weight_entries.csv")

    exp = sub.add_parser("export")
    exp.add_argument("--db", default=default_db())
    exp.add_argument("--out", default="fitness_export.json")

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default=default_db())
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default=default_db())

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default=default_db())

    vac = sub.add_parser("vacuum")
    vac.add_argument("--db", default=default_db())

    pwd = sub.add_parser("set-password")
    pwd.add_argument("password")
    pwd.add_argument("--db", default=default_db())
    pwd.add_argument("--yaml", default="settings.yaml")

    bench = sub.add_parser("benchmark")
    bench.add_argument("--url", default="http://localhost:8000")
    bench.add_argument("--runs", type=int, default=10)

    srv = sub.add_parser("serve")
    srv.add_argument("--db", default=default_db())
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.cmd == "import-weights":
        try:
            count = import_weights(args.csv, args.db)
        except ValueError as e:
            parser.exit(1, f"{e}\n")
        print(f"Imported {count} weight entries")
    elif args.cmd == "export-weights":
        export_weights(args.db, args.out)
    elif args.cmd == "export":
        export_all(args.db, args.out)
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        seed(args.db)
    elif args.cmd == "vacuum":
        Database(args.db).vacuum()
    elif args.cmd == "set-password":
        set_password(args.db, args.yaml, args.password)
    elif args.cmd == "benchmark":
        benchmark(args.url, args.runs)
    elif args.cmd == "serve":
        serve(args.db, args.host, args.port)


if __name__ == "__main__":
    main()
