"""Find the HTML report a LEAPP run produced and register it with the case."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from core.case import Case, CaseError
from core.logging import get_logger

from .profiles import REPORT_ENTRY_POINT

LOGGER = get_logger("extractors.leapp.reports")


@dataclass(frozen=True, slots=True)
class ReportArtifact:
    """A registered report entry point."""

    path: Path
    display_name: str


def find_report(output_dir: Path, filename: str = REPORT_ENTRY_POINT) -> Optional[Path]:
    """
    Return the first file under ``output_dir`` whose lowercase name ends with ``filename``.

    The walk is depth-first with entries sorted per directory, so the first
    match is stable across runs.

    Raises:
        OSError: if ``output_dir`` cannot be walked
    """
    suffix = filename.lower()

    def _raise(exc: OSError) -> None:
        raise exc

    for root, dirs, files in os.walk(output_dir, onerror=_raise):
        dirs.sort()
        for name in sorted(files):
            if name.lower().endswith(suffix):
                return Path(root) / name
    return None


def harvest_report(
    case: Case,
    output_dir: Path,
    module_name: str,
    display_name: str,
    filename: str = REPORT_ENTRY_POINT,
) -> Optional[ReportArtifact]:
    """
    Register the report found under ``output_dir``, if any.

    Walk and registry failures are logged; they never propagate.
    """
    try:
        report_path = find_report(output_dir, filename)
    except OSError as exc:
        LOGGER.warning("Cannot search %s for %s: %s", output_dir, filename, exc)
        return None

    if report_path is None:
        LOGGER.info("No %s produced under %s", filename, output_dir)
        return None

    try:
        case.add_report(report_path, module_name, display_name)
    except CaseError as exc:
        LOGGER.error("Report %s could not be registered: %s", report_path, exc)
        return None
    return ReportArtifact(path=report_path, display_name=display_name)
