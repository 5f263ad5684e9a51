"""
Database Migration System

Timestamped up/down migrations for the Toolshelf SQLite database.
Migration files live in db/migrations/ and are named
``YYYYMMDDHHMMSS_description.py``; each defines ``up(conn)`` and optionally
``down(conn)``.
"""

import importlib.util
import logging
import re
import sqlite3
from datetime import datetime
from pathlib import Path
from types import ModuleType
from typing import Optional


MIGRATIONS_DIR = Path(__file__).parent.parent / "db" / "migrations"
MIGRATIONS_TABLE = "_migrations"
MIGRATION_FILE_PATTERN = re.compile(r"^\d{14}_\w+\.py$")

logger = logging.getLogger(__name__)


class MigrationError(Exception):
    """Migration-related error."""
    pass


class Migrator:
    """Applies and rolls back schema migrations."""

    def __init__(self, db_path: str = "db/toolshelf.db",
                 migrations_dir: Optional[Path] = None):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.migrations_dir = Path(migrations_dir) if migrations_dir else MIGRATIONS_DIR
        self.conn: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """Get database connection."""
        if self.conn is None:
            self.conn = sqlite3.connect(self.db_path)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
        return self.conn

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def _ensure_table(self):
        conn = self.connect()
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT UNIQUE NOT NULL,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.commit()

    def applied(self) -> list[str]:
        """Names of applied migrations, in the order they were applied."""
        self._ensure_table()
        rows = self.connect().execute(
            f"SELECT name FROM {MIGRATIONS_TABLE} ORDER BY id"
        ).fetchall()
        return [row["name"] for row in rows]

    def available(self) -> list[str]:
        """Names of all migration files, oldest first."""
        if not self.migrations_dir.exists():
            return []
        return sorted(
            f.stem for f in self.migrations_dir.iterdir()
            if f.is_file() and MIGRATION_FILE_PATTERN.match(f.name)
        )

    def pending(self) -> list[str]:
        """Names of migrations not yet applied, oldest first."""
        done = set(self.applied())
        return [name for name in self.available() if name not in done]

    def _load(self, name: str) -> ModuleType:
        path = self.migrations_dir / f"{name}.py"
        if not path.exists():
            raise MigrationError(f"Migration file not found: {path}")

        spec = importlib.util.spec_from_file_location(name, path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        if not hasattr(module, "up"):
            raise MigrationError(f"Migration {name} missing 'up' function")
        return module

    def _run(self, name: str, direction: str):
        step = getattr(self._load(name), direction, None)
        if step is None:
            raise MigrationError(f"Migration {name} does not support '{direction}'")

        conn = self.connect()
        try:
            step(conn)
            if direction == "up":
                conn.execute(f"INSERT INTO {MIGRATIONS_TABLE} (name) VALUES (?)", (name,))
            else:
                conn.execute(f"DELETE FROM {MIGRATIONS_TABLE} WHERE name = ?", (name,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise MigrationError(f"Migration {name} ({direction}) failed: {e}") from e
        logger.info("Migration %s: %s", direction, name)

    def migrate(self, steps: Optional[int] = None) -> list[str]:
        """Apply pending migrations (all of them unless steps is given)."""
        todo = self.pending()
        if steps is not None:
            todo = todo[:steps]
        for name in todo:
            self._run(name, "up")
        return todo

    def rollback(self, steps: int = 1) -> list[str]:
        """Roll back the most recently applied migrations."""
        todo = list(reversed(self.applied()))[:steps]
        for name in todo:
            self._run(name, "down")
        return todo

    def status(self) -> dict:
        """Applied and pending migrations."""
        applied = self.applied()
        pending = self.pending()
        return {
            "applied": applied,
            "pending": pending,
            "total_applied": len(applied),
            "total_pending": len(pending),
        }


def run_pending_migrations(db_path: str) -> list[str]:
    """Apply every pending migration to the database at db_path."""
    migrator = Migrator(db_path)
    try:
        return migrator.migrate()
    finally:
        migrator.close()


def create_migration(name: str, migrations_dir: Optional[Path] = None) -> Path:
    """Write an empty migration file and return its path."""
    target_dir = Path(migrations_dir) if migrations_dir else MIGRATIONS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    clean_name = re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")
    path = target_dir / f"{timestamp}_{clean_name}.py"

    path.write_text(f'''"""
Migration: {name}
Created: {datetime.now().date().isoformat()}
"""


def up(conn):
    """Apply the migration."""
    pass


def down(conn):
    """Rollback the migration."""
    pass
''')
    return path
