import sqlite3
from pathlib import Path

import pytest

from src.adapters.sqlite.migrator import SQLiteMigrator

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


def table_names(db_path: str) -> set[str]:
    conn = sqlite3.connect(db_path)
    try:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
        return {row[0] for row in rows}
    finally:
        conn.close()


def test_migrations_create_schema(tmp_path: Path) -> None:
    db_path = str(tmp_path / "test.db")

    applied = SQLiteMigrator(db_path, MIGRATIONS_DIR).run_migrations()

    assert applied == ["0001_initial.sql"]
    assert {
        "users",
        "role_assignments",
        "posts",
        "publicize_connections",
        "post_meta",
        "_migrations",
    } <= table_names(db_path)


def test_migrations_are_applied_once(tmp_path: Path) -> None:
    db_path = str(tmp_path / "test.db")
    migrator = SQLiteMigrator(db_path, MIGRATIONS_DIR)

    migrator.run_migrations()

    assert migrator.run_migrations() == []


def test_down_section_is_not_run(tmp_path: Path) -> None:
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_t.sql").write_text(
        "-- Up\nCREATE TABLE t (id INTEGER);\n-- Down\nDROP TABLE t;\n"
    )
    db_path = str(tmp_path / "test.db")

    SQLiteMigrator(db_path, migrations).run_migrations()

    assert "t" in table_names(db_path)


def test_failed_migration_raises(tmp_path: Path) -> None:
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_bad.sql").write_text("CREATE TABLE (;")

    with pytest.raises(RuntimeError, match="0001_bad.sql"):
        SQLiteMigrator(str(tmp_path / "test.db"), migrations).run_migrations()
