from pathlib import Path

import pytest

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.rules.loader import load_rules
from src.rules.models import Rules

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def rules() -> Rules:
    """Real rules from the project root."""
    return load_rules(PROJECT_ROOT / "rules.yaml")


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """A migrated SQLite database in a temp dir."""
    path = str(tmp_path / "publicize.db")
    SQLiteMigrator(path, PROJECT_ROOT / "migrations").run_migrations()
    return path
