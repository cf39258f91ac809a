import json
import os
import sqlite3
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
import cli
from db import ExerciseRepository, WeightAuditRepository, WeightEntryRepository
from seed_sample_data import SAMPLE_EXERCISES, seed


def test_import_and_export_weights(tmp_path, capsys):
    db_file = str(tmp_path / "cli.db")
    csv_file = tmp_path / "weights.csv"
    csv_file.write_text(
        "date,weight,bodyFat,muscle,notes\n2024-02-01,181.2,16.5,,morning\n2024-02-02,180.8,,,\n",
        encoding="utf-8",
    )
    cli.main(["import-weights", "--csv", str(csv_file), "--db", db_file])
    assert "Imported 2 weight entries" in capsys.readouterr().out

    entries = WeightEntryRepository(db_file).fetch_history()
    assert [e["date"] for e in entries] == ["2024-02-02", "2024-02-01"]
    sources = {r["source"] for r in WeightAuditRepository(db_file).fetch_entries()}
    assert sources == {"csv"}

    out_file = tmp_path / "out.csv"
    cli.main(["export-weights", "--db", db_file, "--out", str(out_file)])
    lines = out_file.read_text(encoding="utf-8").strip().splitlines()
    assert lines[0] == "date,weight,bodyFat,muscle,notes"
    assert len(lines) == 3


def test_import_rejects_bad_file(tmp_path):
    db_file = str(tmp_path / "cli.db")
    csv_file = tmp_path / "bad.csv"
    csv_file.write_text("2024-02-01,180\nnot-a-date,181\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        cli.main(["import-weights", "--csv", str(csv_file), "--db", db_file])
    assert exc.value.code == 1
    assert WeightEntryRepository(db_file).fetch_history() == []


def test_export_all_tables(tmp_path):
    db_file = str(tmp_path / "cli.db")
    ExerciseRepository(db_file).create({"name": "Plank", "category": "core"})
    out_file = tmp_path / "export.json"
    cli.main(["export", "--db", db_file, "--out", str(out_file)])
    data = json.loads(out_file.read_text(encoding="utf-8"))
    assert set(data) == set(cli.EXPORT_TABLES)
    assert [e["name"] for e in data["exercises"]] == ["Plank"]


def test_backup_and_restore(tmp_path):
    db_file = str(tmp_path / "cli.db")
    backup = str(tmp_path / "backup.db")
    repo = ExerciseRepository(db_file)
    repo.create({"name": "Plank", "category": "core"})
    cli.main(["backup", "--db", db_file, "--out", backup])
    repo.create({"name": "Crunch", "category": "core"})
    cli.main(["restore", "--in", backup, "--db", db_file])
    conn = sqlite3.connect(db_file)
    names = [r[0] for r in conn.execute("SELECT name FROM exercises").fetchall()]
    conn.close()
    assert names == ["Plank"]


def test_set_password(tmp_path):
    db_file = str(tmp_path / "cli.db")
    yaml_file = str(tmp_path / "settings.yaml")
    cli.main(["set-password", "open-sesame", "--db", db_file, "--yaml", yaml_file])
    conn = sqlite3.connect(db_file)
    value = conn.execute(
        "SELECT value FROM settings WHERE key = 'app_password'"
    ).fetchone()[0]
    conn.close()
    assert value == "open-sesame"


def test_seed_is_idempotent(tmp_path):
    db_file = str(tmp_path / "seed.db")
    assert seed(db_file) == len(SAMPLE_EXERCISES)
    assert seed(db_file) == 0
    legs = ExerciseRepository(db_file).fetch_all_exercises("legs")
    assert {e["name"] for e in legs} >= {"Leg Press", "Hip Thrusts"}
