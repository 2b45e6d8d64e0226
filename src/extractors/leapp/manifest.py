"""Loader for the path manifest a LEAPP tool writes in discovery mode."""

from __future__ import annotations

from pathlib import Path
from typing import List

from core.logging import get_logger

from ..exceptions import ManifestReadError
from .profiles import MANIFEST_BANNER

LOGGER = get_logger("extractors.leapp.manifest")

MIN_LINE_LENGTH = 2


def load_manifest(path: Path, banner: str = MANIFEST_BANNER) -> List[str]:
    """
    Read the tool's path list.

    Lines are stripped and backslashes turned into forward slashes. Lines
    shorter than two characters or containing the generation banner are
    dropped. Order is kept and duplicates are not removed.

    Returns:
        Path patterns in file order; empty when the file does not exist

    Raises:
        ManifestReadError: if the file exists but cannot be read
    """
    if not path.exists():
        LOGGER.warning("Path manifest %s does not exist, nothing to locate", path)
        return []

    entries: List[str] = []
    try:
        with path.open("r", encoding="utf-8", errors="replace") as handle:
            for raw in handle:
                line = raw.strip()
                if len(line) < MIN_LINE_LENGTH or banner in line:
                    continue
                entries.append(line.replace("\\", "/"))
    except OSError as exc:
        raise ManifestReadError(f"Cannot read path manifest {path}: {exc}") from exc

    LOGGER.info("Loaded %d path pattern(s) from %s", len(entries), path.name)
    return entries
