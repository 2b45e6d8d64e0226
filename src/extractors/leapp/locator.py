"""
Resolve manifest patterns and discovery queries to file index entries.

Index failures never abort a pass: they are logged and count as zero
matches for the pattern that triggered them.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Sequence

from core.data_source import DataSource, VirtualFileEntry
from core.file_index import FileIndex, IndexQueryError
from core.logging import get_logger

from .._shared.path_utils import normalize_manifest_pattern, split_pattern

LOGGER = get_logger("extractors.leapp.locator")


def find_manifest_entries(
    index: FileIndex,
    data_source: DataSource,
    patterns: Iterable[str],
    is_cancelled: Optional[Callable[[], bool]] = None,
) -> List[VirtualFileEntry]:
    """
    Return every entry matching any manifest pattern, in pattern order.

    Entries matched by several patterns appear several times.
    """
    matches: List[VirtualFileEntry] = []
    for line in patterns:
        if is_cancelled is not None and is_cancelled():
            LOGGER.info("Cancelled while locating manifest entries")
            break

        pattern = normalize_manifest_pattern(line)
        if pattern is None:
            LOGGER.warning("Ignoring manifest path outside the container root: %r", line)
            continue
        directory, name = split_pattern(pattern)
        if not name:
            LOGGER.debug("Manifest path %r has no name component, skipped", line)
            continue

        try:
            found = index.find_files(data_source, name, directory)
        except IndexQueryError as exc:
            LOGGER.warning("File index lookup failed for %r: %s", line, exc)
            continue

        LOGGER.debug("%d match(es) for %r", len(found), line)
        matches.extend(found)
    return matches


def is_archive_candidate(entry: VirtualFileEntry, markers: Sequence[str]) -> bool:
    """True for real local files whose name carries an archive marker."""
    if entry.is_dir or entry.is_virtual:
        return False
    if not entry.local_abs_path or not entry.extension:
        return False
    name = entry.name.lower()
    return any(marker in name for marker in markers)


def find_logical_candidates(
    index: FileIndex,
    data_source: DataSource,
    markers: Sequence[str],
) -> List[VirtualFileEntry]:
    """Return the archive files of a logical collection, in index order."""
    try:
        entries = index.find_files(data_source, "%", "/")
    except IndexQueryError as exc:
        LOGGER.warning("Catch-all file index query failed for data source %s: %s", data_source.id, exc)
        return []
    candidates = [entry for entry in entries if is_archive_candidate(entry, markers)]
    LOGGER.info("%d archive candidate(s) among %d logical entries", len(candidates), len(entries))
    return candidates
