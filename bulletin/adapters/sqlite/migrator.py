"""
Forward-only SQL migrations.

Scripts named ``NNN_description.sql`` are applied once each, in version
order, and recorded in ``schema_migrations``. Only the part of a script
above its ``-- Down`` marker runs.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

DOWN_MARKER = "-- Down"


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str | Path):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def scripts(self) -> list[Path]:
        return sorted(self.migrations_dir.glob("*.sql"), key=lambda p: p.name)

    def pending(self, conn: sqlite3.Connection) -> list[str]:
        """Script names not yet recorded on ``conn``."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                name TEXT PRIMARY KEY,
                applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        # Plain tuples whatever row factory the connection carries
        cursor = conn.cursor()
        cursor.row_factory = None
        done = {name for (name,) in cursor.execute("SELECT name FROM schema_migrations")}
        return [p.name for p in self.scripts() if p.name not in done]

    def apply_to(self, conn: sqlite3.Connection) -> list[str]:
        """Apply pending scripts on an open connection. Returns the names applied."""
        names = self.pending(conn)
        for name in names:
            logger.info("Applying migration: %s", name)
            up = (self.migrations_dir / name).read_text().split(DOWN_MARKER, 1)[0]
            try:
                conn.executescript(up)
                conn.execute("INSERT INTO schema_migrations (name) VALUES (?)", (name,))
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise RuntimeError(f"Migration {name} failed: {e}") from e
        return names

    def run_migrations(self) -> list[str]:
        """Open ``db_path`` and bring it up to date."""
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("PRAGMA foreign_keys = ON;")
            applied = self.apply_to(conn)
        finally:
            conn.close()
        logger.info("Migrations up to date (%d applied)", len(applied))
        return applied
