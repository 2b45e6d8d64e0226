"""
Case database connection and schema migrations.

Migrations are plain SQL files named ``NNNN_description.sql`` next to this
module. Each file is applied once, inside its own transaction, and recorded
in ``schema_version``.
"""
from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from core.logging import get_logger

LOGGER = get_logger("core.database.connection")

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

sqlite3.register_adapter(Path, str)


class MigrationError(RuntimeError):
    """Raised when a schema migration cannot be applied."""


def init_db(db_path: Path) -> sqlite3.Connection:
    """
    Open (or create) the case database and bring its schema up to date.

    Rows come back as ``sqlite3.Row`` so callers can index by column name.

    Raises:
        MigrationError: if a pending migration fails
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    LOGGER.debug("Opening case database at %s", db_path)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL;")
    conn.execute("PRAGMA busy_timeout = 10000;")
    try:
        migrate(conn)
    except MigrationError:
        conn.close()
        raise
    return conn


def list_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> List[Tuple[int, Path]]:
    """Return ``(version, path)`` pairs for every migration file, oldest first."""
    found = []
    for path in migrations_dir.glob("*.sql"):
        prefix = path.name.split("_", 1)[0]
        if not prefix.isdigit():
            LOGGER.warning("Ignoring migration without a numeric prefix: %s", path.name)
            continue
        found.append((int(prefix), path))
    return sorted(found)


def schema_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied migration version (0 for an empty database)."""
    row = conn.execute("SELECT COALESCE(MAX(version), 0) FROM schema_version;").fetchone()
    return int(row[0])


def migrate(conn: sqlite3.Connection, migrations_dir: Optional[Path] = None) -> int:
    """
    Apply pending migrations.

    Returns:
        Number of migrations applied
    """
    conn.execute(
        "CREATE TABLE IF NOT EXISTS schema_version ("
        " version INTEGER PRIMARY KEY,"
        " applied_at_utc TEXT NOT NULL);"
    )
    applied = {int(row[0]) for row in conn.execute("SELECT version FROM schema_version;")}

    count = 0
    for version, path in list_migrations(migrations_dir or MIGRATIONS_DIR):
        if version in applied:
            continue
        LOGGER.info("Applying migration %s", path.name)
        try:
            with conn:
                conn.executescript(path.read_text(encoding="utf-8"))
                conn.execute(
                    "INSERT INTO schema_version(version, applied_at_utc) VALUES (?, ?)",
                    (version, utc_now()),
                )
        except (sqlite3.DatabaseError, OSError) as exc:
            LOGGER.exception("Migration %s failed", path.name)
            raise MigrationError(f"Failed to apply migration {path}: {exc}") from exc
        count += 1
    return count


def utc_now() -> str:
    """Return the current UTC time as ISO 8601 without microseconds."""
    return datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat()
