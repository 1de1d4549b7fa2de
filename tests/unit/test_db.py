import sqlite3

import pytest

from cadence import db
from cadence.db import load_migrations


def test_init_creates_schema(tmp_cadence_dir):
    with db.get_db() as conn:
        tables = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    names = {t[0] for t in tables}
    assert {
        "tasks",
        "subtasks",
        "categories",
        "habits",
        "habit_groups",
        "habit_completions",
        "calibrations",
        "calibration_scores",
        "journals",
        "today_items",
    } <= names


def test_init_is_idempotent(tmp_cadence_dir):
    db.init()
    with db.get_db() as conn:
        rows = conn.execute("SELECT name FROM _migrations").fetchall()
    assert [r[0] for r in rows] == [name for name, _ in load_migrations()]


def test_get_db_commits_on_success(tmp_cadence_dir):
    with db.get_db() as conn:
        conn.execute("INSERT INTO journals (date, content) VALUES ('2024-06-01', 'hello')")
    with db.get_db() as conn:
        assert conn.execute("SELECT content FROM journals").fetchone()[0] == "hello"


def test_get_db_rolls_back_on_error(tmp_cadence_dir):
    with pytest.raises(RuntimeError), db.get_db() as conn:
        conn.execute("INSERT INTO journals (date, content) VALUES ('2024-06-01', 'hello')")
        raise RuntimeError("boom")
    with db.get_db() as conn:
        assert conn.execute("SELECT COUNT(*) FROM journals").fetchone()[0] == 0


def test_foreign_keys_cascade_subtasks(tmp_cadence_dir):
    with db.get_db() as conn:
        conn.execute("INSERT INTO tasks (id, title) VALUES ('t-1', 'parent')")
        conn.execute("INSERT INTO subtasks (id, task_id, title) VALUES ('s-1', 't-1', 'child')")
        conn.execute("DELETE FROM tasks WHERE id = 't-1'")
        assert conn.execute("SELECT COUNT(*) FROM subtasks").fetchone()[0] == 0


def test_calibration_score_check_constraint(tmp_cadence_dir):
    with db.get_db() as conn:
        conn.execute("INSERT INTO calibrations (id, name) VALUES ('c-1', 'mood')")
    with pytest.raises(sqlite3.IntegrityError), db.get_db() as conn:
        conn.execute(
            "INSERT INTO calibration_scores (calibration_id, date, score) VALUES ('c-1', '2024-06-01', 9)"
        )


def test_failed_migration_restores_backup(tmp_cadence_dir, tmp_path, monkeypatch):
    with db.get_db() as conn:
        conn.execute("INSERT INTO journals (date, content) VALUES ('2024-06-01', 'keep me')")

    migrations = tmp_path / "migrations"
    migrations.mkdir()
    for name, sql in load_migrations():
        (migrations / f"{name}.sql").write_text(sql)
    (migrations / "999_bad.sql").write_text("DELETE FROM journals;")
    monkeypatch.setattr(db, "MIGRATIONS_DIR", migrations)

    with pytest.raises(ValueError, match="data loss"):
        db.init()
    with db.get_db() as conn:
        assert conn.execute("SELECT content FROM journals").fetchone()[0] == "keep me"
