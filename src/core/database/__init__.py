"""SQLite persistence for the case registry and the file index."""

from .connection import (  # noqa: F401
    MigrationError,
    init_db,
    list_migrations,
    migrate,
    schema_version,
    utc_now,
)
