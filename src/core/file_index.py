"""
File index over data source entries.

Entries are stored in the ``file_list`` table of the case database and
queried with SQL ``LIKE`` semantics:

- ``%`` matches any run of characters, ``_`` any single character
- matching is case-insensitive for ASCII names
- the optional parent path filter is a substring match

Usage:
    index = FileIndex(case.conn)
    index.index_data_source(data_source)

    # All property lists under any "Preferences" folder
    entries = index.find_files(data_source, "%.plist", "Preferences/")

    # Everything in the data source
    entries = index.find_files(data_source, "%", "/")
"""
from __future__ import annotations

import sqlite3
from typing import Iterable, List, Optional

from .data_source import DataSource, VirtualFileEntry
from .database import utc_now
from .logging import get_logger

__all__ = [
    "FileIndex",
    "IndexQueryError",
]

LOGGER = get_logger("core.file_index")

_COLUMNS = "id, name, parent_path, extension, size_bytes, is_dir, is_virtual, local_abs_path"


class IndexQueryError(Exception):
    """Raised when the file index cannot be queried or written."""


class FileIndex:
    """Name/path lookup service for indexed data source entries."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def index_data_source(self, data_source: DataSource, batch_size: int = 1000) -> int:
        """
        (Re)build the index rows for ``data_source``.

        Existing rows for the same data source id are replaced.

        Returns:
            Number of entries indexed
        """
        total = 0
        try:
            with self.conn:
                self.conn.execute(
                    "INSERT OR REPLACE INTO data_sources (id, name, kind, source_path, added_at_utc) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (data_source.id, data_source.name, str(data_source.kind), data_source.source_path, utc_now()),
                )
                self.conn.execute("DELETE FROM file_list WHERE data_source_id = ?", (data_source.id,))
                batch: List[tuple] = []
                for entry in data_source.iter_entries():
                    batch.append(self._to_row(data_source.id, entry))
                    if len(batch) >= batch_size:
                        total += self._insert_batch(batch)
                        batch.clear()
                if batch:
                    total += self._insert_batch(batch)
        except sqlite3.Error as exc:
            raise IndexQueryError(f"Failed to index data source {data_source.id}: {exc}") from exc

        LOGGER.info("Indexed %d entries for data source %s (%s)", total, data_source.id, data_source.name)
        return total

    def find_files(
        self,
        data_source: DataSource,
        name: str,
        parent_path: Optional[str] = None,
    ) -> List[VirtualFileEntry]:
        """
        Return entries whose name matches ``name`` (LIKE pattern).

        Args:
            data_source: Data source to search
            name: LIKE pattern for the entry name (e.g. ``"%.plist"``)
            parent_path: Optional substring the parent path must contain

        Raises:
            IndexQueryError: if the underlying database fails
        """
        query = f"SELECT {_COLUMNS} FROM file_list WHERE data_source_id = ? AND name LIKE ?"
        params: List[object] = [data_source.id, name]
        if parent_path:
            query += " AND parent_path LIKE ?"
            params.append(f"%{parent_path}%")
        query += " ORDER BY id"

        LOGGER.debug("file index query: name=%r parent=%r source=%s", name, parent_path, data_source.id)
        try:
            rows = self.conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise IndexQueryError(f"File index query failed for {name!r}: {exc}") from exc
        return [self._from_row(row) for row in rows]

    def count(self, data_source: DataSource) -> int:
        """Return the number of indexed entries for ``data_source``."""
        try:
            row = self.conn.execute(
                "SELECT COUNT(*) FROM file_list WHERE data_source_id = ?",
                (data_source.id,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise IndexQueryError(f"File index count failed: {exc}") from exc
        return int(row[0])

    def _insert_batch(self, rows: Iterable[tuple]) -> int:
        cursor = self.conn.executemany(
            "INSERT INTO file_list (data_source_id, name, parent_path, extension, size_bytes, "
            "is_dir, is_virtual, local_abs_path) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            rows,
        )
        return cursor.rowcount

    @staticmethod
    def _to_row(data_source_id: int, entry: VirtualFileEntry) -> tuple:
        return (
            data_source_id,
            entry.name,
            entry.parent_path,
            entry.extension,
            entry.size,
            int(entry.is_dir),
            int(entry.is_virtual),
            entry.local_abs_path,
        )

    @staticmethod
    def _from_row(row) -> VirtualFileEntry:
        return VirtualFileEntry(
            id=int(row[0]),
            name=row[1],
            parent_path=row[2],
            extension=row[3] or "",
            size=int(row[4] or 0),
            is_dir=bool(row[5]),
            is_virtual=bool(row[6]),
            local_abs_path=row[7],
        )
