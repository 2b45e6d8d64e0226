"""
Case workspace: the folder a pass writes into and the report registry.

Layout:
    <case>/case.sqlite       data sources, file index, registered reports
    <case>/ModuleOutput/     per-module working directories
    <case>/logs/             per-case log files
"""
from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .database import MigrationError, init_db, utc_now
from .logging import get_logger

LOGGER = get_logger("core.case")

CASE_DB_NAME = "case.sqlite"
MODULE_OUTPUT_DIR = "ModuleOutput"


class CaseError(Exception):
    """Raised when the case registry cannot be opened or written."""


@dataclass(frozen=True, slots=True)
class RegisteredReport:
    """One row of the case report registry."""

    id: int
    path: Path
    module_name: str
    display_name: str
    added_at_utc: str


class Case:
    """Open case folder with its sqlite registry."""

    def __init__(self, case_dir: Path) -> None:
        self.case_dir = Path(case_dir)
        try:
            self.case_dir.mkdir(parents=True, exist_ok=True)
            self.conn = init_db(self.case_dir / CASE_DB_NAME)
        except (OSError, sqlite3.Error, MigrationError) as exc:
            raise CaseError(f"Cannot open case at {self.case_dir}: {exc}") from exc
        LOGGER.info("Opened case %s", self.case_dir)

    @property
    def module_directory(self) -> Path:
        """Root under which each module gets its own working directory."""
        return self.case_dir / MODULE_OUTPUT_DIR

    @property
    def logs_directory(self) -> Path:
        return self.case_dir / "logs"

    def next_data_source_id(self) -> int:
        """Return the id a newly added data source should get."""
        try:
            row = self.conn.execute("SELECT COALESCE(MAX(id), 0) FROM data_sources").fetchone()
        except sqlite3.Error as exc:
            raise CaseError(f"Failed to read data sources: {exc}") from exc
        return int(row[0]) + 1

    def add_report(self, path: Path, module_name: str, display_name: str) -> int:
        """
        Register a generated report with the case.

        Returns:
            Row id of the registered report

        Raises:
            CaseError: if the registry cannot be written
        """
        try:
            with self.conn:
                cursor = self.conn.execute(
                    "INSERT INTO reports (path, module_name, display_name, added_at_utc) VALUES (?, ?, ?, ?)",
                    (str(Path(path).resolve()), module_name, display_name, utc_now()),
                )
        except sqlite3.Error as exc:
            raise CaseError(f"Failed to register report {path}: {exc}") from exc
        LOGGER.info("Registered report %s (%s)", path, display_name)
        return int(cursor.lastrowid)

    def list_reports(self, module_name: Optional[str] = None) -> List[RegisteredReport]:
        """Return registered reports, oldest first, optionally for one module."""
        query = "SELECT id, path, module_name, display_name, added_at_utc FROM reports"
        params: tuple = ()
        if module_name:
            query += " WHERE module_name = ?"
            params = (module_name,)
        try:
            rows = self.conn.execute(query + " ORDER BY id", params).fetchall()
        except sqlite3.Error as exc:
            raise CaseError(f"Failed to list reports: {exc}") from exc
        return [
            RegisteredReport(
                id=int(row["id"]),
                path=Path(row["path"]),
                module_name=row["module_name"],
                display_name=row["display_name"],
                added_at_utc=row["added_at_utc"],
            )
            for row in rows
        ]

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> "Case":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
