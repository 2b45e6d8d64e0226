"""
Tool profiles for the LEAPP family (iLEAPP, ALEAPP).

Both tools share one command-line contract and differ only in names:
executable candidates, file names they are told to write and the report
display name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

MANIFEST_BANNER = "path list generation"
REPORT_ENTRY_POINT = "index.html"
STAGING_PREFIX = "fs_"
ARCHIVE_MARKERS: Tuple[str, ...] = (".zip", ".tar", ".tgz")


@dataclass(frozen=True, slots=True)
class ToolProfile:
    """Names and file conventions for one LEAPP tool."""

    tool_name: str
    display_name: str
    executable_candidates: Tuple[str, ...]
    install_hint: str
    staging_prefix: str = STAGING_PREFIX
    banner: str = MANIFEST_BANNER
    report_filename: str = REPORT_ENTRY_POINT
    archive_markers: Tuple[str, ...] = ARCHIVE_MARKERS

    @property
    def module_name(self) -> str:
        """Working directory name under the case module directory."""
        return self.display_name

    @property
    def manifest_filename(self) -> str:
        return f"{self.display_name}_paths.txt"

    @property
    def manifest_error_filename(self) -> str:
        return f"{self.display_name}_paths_error.txt"

    @property
    def stdout_filename(self) -> str:
        return f"{self.display_name}_out.txt"

    @property
    def stderr_filename(self) -> str:
        return f"{self.display_name}_err.txt"

    @property
    def report_display_name(self) -> str:
        return f"{self.display_name} Html Report"


ILEAPP = ToolProfile(
    tool_name="ileapp",
    display_name="iLeapp",
    executable_candidates=("ileapp.exe", "ileapp", "ileapp.py"),
    install_hint="Download iLEAPP from https://github.com/abrignoni/iLEAPP and set leapp.executable in config.yml",
)

ALEAPP = ToolProfile(
    tool_name="aleapp",
    display_name="aLeapp",
    executable_candidates=("aleapp.exe", "aleapp", "aleapp.py"),
    install_hint="Download ALEAPP from https://github.com/abrignoni/ALEAPP and set leapp.executable in config.yml",
)

PROFILES: Dict[str, ToolProfile] = {profile.tool_name: profile for profile in (ILEAPP, ALEAPP)}


def candidate_table() -> Dict[str, Tuple[str, ...]]:
    """Return executable candidates per tool, as used by ``discover_tools``."""
    return {name: profile.executable_candidates for name, profile in PROFILES.items()}


def get_profile(tool_name: str) -> ToolProfile:
    """
    Return the profile for ``tool_name`` (case-insensitive).

    Raises:
        KeyError: for unknown tools
    """
    try:
        return PROFILES[tool_name.lower()]
    except KeyError:
        raise KeyError(f"Unknown LEAPP tool {tool_name!r} (expected one of: {', '.join(PROFILES)})") from None
