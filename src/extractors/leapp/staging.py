"""
Materialize data source entries into a staging directory.

The staging tree mirrors container parent paths below the staging root.
Files are always rewritten from scratch, so staging the same entries twice
yields the same tree.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from core.data_source import ContentReadError, DataSource, VirtualFileEntry
from core.logging import get_logger

from .._shared.path_utils import (
    is_reserved_name,
    is_skipped_name,
    sanitize_entry_name,
    staging_dir_for,
)

LOGGER = get_logger("extractors.leapp.staging")


@dataclass(slots=True)
class StagingSummary:
    """Counters for one materialization loop."""

    files_written: int = 0
    dirs_created: int = 0
    skipped: int = 0
    failed: int = 0
    cancelled: bool = False

    @property
    def processed(self) -> int:
        return self.files_written + self.dirs_created + self.skipped + self.failed


def materialize_entry(data_source: DataSource, entry: VirtualFileEntry, root: Path) -> Optional[Path]:
    """
    Write one entry below ``root``.

    Directories become directories; files are copied with a sanitized name.
    Slack pseudo-files are skipped, ``.`` and ``..`` are skipped for both.

    Returns:
        The created path, or None when the entry was skipped

    Raises:
        ValueError: if the entry's parent path escapes ``root``
        ContentReadError: if the entry bytes cannot be read
        OSError: if the local filesystem refuses the write
    """
    destination_dir = staging_dir_for(root, entry.parent_path)
    name = sanitize_entry_name(entry.name)
    if entry.is_dir:
        if is_reserved_name(name):
            return None
        target = destination_dir / name
        target.mkdir(parents=True, exist_ok=True)
        return target

    if is_skipped_name(name):
        return None
    destination_dir.mkdir(parents=True, exist_ok=True)
    target = destination_dir / name
    try:
        with open(target, "wb") as handle:
            for chunk in data_source.open_stream(entry):
                handle.write(chunk)
    except (ContentReadError, OSError):
        target.unlink(missing_ok=True)
        raise
    return target


def materialize_entries(
    data_source: DataSource,
    entries: Iterable[VirtualFileEntry],
    root: Path,
    is_cancelled: Optional[Callable[[], bool]] = None,
    on_entry: Optional[Callable[[int, VirtualFileEntry], None]] = None,
) -> StagingSummary:
    """
    Materialize ``entries`` in order, continuing past per-entry failures.

    ``is_cancelled`` is checked before each entry; once it returns True the
    loop stops and the summary is flagged as cancelled. ``on_entry`` is
    called after each processed entry with the running count.
    """
    summary = StagingSummary()
    for entry in entries:
        if is_cancelled is not None and is_cancelled():
            LOGGER.info("Staging cancelled after %d entr(ies)", summary.processed)
            summary.cancelled = True
            break

        try:
            written = materialize_entry(data_source, entry, root)
        except ContentReadError as exc:
            LOGGER.warning("Read failed for %s (id=%d): %s", entry.path, entry.id, exc)
            summary.failed += 1
        except ValueError as exc:
            LOGGER.warning("Refusing to stage %s (id=%d): %s", entry.path, entry.id, exc)
            summary.failed += 1
        except OSError as exc:
            LOGGER.warning("Write failed for %s (id=%d) under %s: %s", entry.path, entry.id, root, exc)
            summary.failed += 1
        else:
            if written is None:
                LOGGER.debug("Skipped %s (id=%d)", entry.path, entry.id)
                summary.skipped += 1
            elif entry.is_dir:
                summary.dirs_created += 1
            else:
                summary.files_written += 1

        if on_entry is not None:
            on_entry(summary.processed, entry)

    LOGGER.info(
        "Staged %d file(s), %d dir(s) into %s (%d skipped, %d failed)",
        summary.files_written,
        summary.dirs_created,
        root,
        summary.skipped,
        summary.failed,
    )
    return summary
