"""
Path utilities shared by extractors.

Provides helpers for moving between container paths and real paths:
- Tool glob patterns to file index (SQL LIKE) patterns
- Splitting a pattern into directory and name components
- Sanitizing container names for the local filesystem
- Mapping container parent paths into a staging directory

Design Principle:
    Container paths always use forward slashes and are treated as untrusted.
    Nothing derived from them may resolve outside the staging root.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple, Union

# Suffix used for file slack pseudo-entries
SLACK_SUFFIX = "-slack"

_UNSAFE_NAME_CHARS = (":", "/", "\\")


def glob_to_sql_like(pattern: str) -> str:
    """
    Convert a tool glob pattern to a file index pattern.

    ``*`` and ``**`` become ``%``. Everything else is passed through, so a
    literal ``_`` keeps its single-character LIKE meaning (it still matches
    itself).

    Example:
        >>> glob_to_sql_like("*/mobile/Library/SMS/sms.db*")
        '%/mobile/Library/SMS/sms.db%'
    """
    return pattern.replace("**", "*").replace("*", "%")


def normalize_evidence_path(path: Union[str, Path]) -> Optional[str]:
    """
    Normalize a container path to forward slashes without ``.``/``..``.

    Backslashes become slashes, repeated slashes collapse, ``.`` segments are
    dropped and ``..`` removes the previous segment. A leading slash is kept.

    Returns:
        Normalized path, or None if ``..`` climbs above the root

    Example:
        >>> normalize_evidence_path("/a/./b/../c.db")
        '/a/c.db'
    """
    path_str = str(path).strip().replace("\\", "/")
    if not path_str:
        return ""

    leading = "/" if path_str.startswith("/") else ""
    trailing = "/" if path_str.endswith("/") and len(path_str) > 1 else ""
    parts: List[str] = []
    for part in path_str.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if not parts:
                return None
            parts.pop()
            continue
        parts.append(part)

    if not parts:
        return leading
    return leading + "/".join(parts) + trailing


def normalize_manifest_pattern(line: str) -> Optional[str]:
    """
    Turn one manifest line into a file index pattern.

    Returns None when the line cannot be normalized (climbs above root).
    """
    normalized = normalize_evidence_path(line)
    if normalized is None:
        return None
    return glob_to_sql_like(normalized)


def split_pattern(pattern: str) -> Tuple[Optional[str], str]:
    """
    Split a normalized pattern into (directory, name).

    The directory keeps its trailing slash and is None when the pattern has
    no directory component.

    Example:
        >>> split_pattern("/a/%.plist")
        ('/a/', '%.plist')
        >>> split_pattern("name.db")
        (None, 'name.db')
    """
    index = pattern.rfind("/")
    if index < 0:
        return None, pattern
    directory = pattern[: index + 1]
    name = pattern[index + 1:]
    if directory == "/":
        directory = None
    return directory, name


def sanitize_entry_name(name: str) -> str:
    """Replace characters that are unsafe in local file names with ``-``."""
    for char in _UNSAFE_NAME_CHARS:
        name = name.replace(char, "-")
    return name


def is_reserved_name(sanitized: str) -> bool:
    """Return True for names that cannot be created as a directory entry."""
    return sanitized in ("", ".", "..")


def is_skipped_name(sanitized: str) -> bool:
    """Return True for file names that must never be written to staging."""
    return is_reserved_name(sanitized) or sanitized.lower().endswith(SLACK_SUFFIX)


def staging_dir_for(root: Path, parent_path: str) -> Path:
    """
    Map a container parent path (``/a/b/``) to a directory under ``root``.

    Empty, ``.`` and ``..`` segments are dropped, and each remaining segment
    is sanitized like a file name.

    Raises:
        ValueError: if the result would resolve outside ``root``
    """
    segments = [
        sanitize_entry_name(part)
        for part in parent_path.replace("\\", "/").split("/")
        if part not in ("", ".", "..")
    ]
    destination = root.joinpath(*segments) if segments else root
    base = root.resolve()
    try:
        destination.resolve().relative_to(base)
    except ValueError as exc:
        raise ValueError(f"Parent path {parent_path!r} escapes staging root {root}") from exc
    return destination
