from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .logging import get_logger

LOGGER = get_logger("core.tool_discovery")

class ToolNotFoundError(FileNotFoundError):
    """Raised when no usable executable exists for a tool."""

    def __init__(self, tool_name: str, searched: List[str]):
        self.tool_name = tool_name
        self.searched = searched
        super().__init__(f"{tool_name} executable not found (searched: {', '.join(searched) or 'nothing'})")


@dataclass(slots=True)
class ToolInfo:
    """Description of an external tool present on the system."""

    name: str
    path: Optional[Path]
    version: Optional[str]

    @property
    def available(self) -> bool:
        return self.path is not None


def is_usable_executable(path: Path) -> bool:
    """
    Return True when ``path`` can be launched.

    Python scripts only need to be readable files since they are run through
    the current interpreter; anything else must carry the executable bit.
    """
    if not path.is_file():
        return False
    if path.suffix.lower() == ".py":
        return os.access(path, os.R_OK)
    return os.access(path, os.X_OK)


def locate_executable(
    tool_name: str,
    override: Optional[Path] = None,
    tool_paths: Optional[Dict[str, Path]] = None,
    candidates: Optional[Iterable[str]] = None,
) -> Path:
    """
    Resolve the executable for ``tool_name``.

    Lookup order: explicit override, ``tool_paths`` from config.yml, then the
    candidate names on PATH.

    Raises:
        ToolNotFoundError: if no usable executable was found
    """
    searched: List[str] = []
    configured = [override, (tool_paths or {}).get(tool_name)]
    for path in configured:
        if path is None:
            continue
        path = Path(path)
        searched.append(str(path))
        if is_usable_executable(path):
            LOGGER.debug("Using configured executable for %s: %s", tool_name, path)
            return path
        LOGGER.warning("Configured path for %s is not executable: %s", tool_name, path)

    names = list(candidates) if candidates is not None else [tool_name]
    found = _which(names)
    searched.extend(names)
    if found is not None and is_usable_executable(found):
        LOGGER.debug("Found %s on PATH: %s", tool_name, found)
        return found

    raise ToolNotFoundError(tool_name, searched)


def discover_tools(
    candidates: Dict[str, Iterable[str]],
    overrides: Optional[Dict[str, Path]] = None,
) -> Dict[str, ToolInfo]:
    """
    Discover external tools, optionally using user-provided overrides.

    Args:
        candidates: Executable names to look for on PATH, keyed by tool name
        overrides: Configured paths from config.yml ``tool_paths``
    """
    tools: Dict[str, ToolInfo] = {}
    for name, names in candidates.items():
        try:
            path: Optional[Path] = locate_executable(name, tool_paths=overrides, candidates=names)
        except ToolNotFoundError:
            path = None
        version = get_tool_version([str(path)]) if path else None
        tools[name] = ToolInfo(name=name, path=path, version=version)
    return tools


def get_tool_version(cmd: List[str]) -> Optional[str]:
    """Attempt to retrieve the version string for an external tool."""
    try:
        process = subprocess.run(
            cmd + ["--version"],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        LOGGER.warning("Unable to determine version for %s: %s", cmd, exc)
        return None

    output = (process.stdout or "").strip()
    if not output:
        return None
    first_line = output.splitlines()[0]
    LOGGER.debug("Detected tool version for %s: %s", cmd[0], first_line)
    return first_line


def _which(candidates: Iterable[str]) -> Optional[Path]:
    for candidate in candidates:
        found = shutil.which(candidate)
        if found:
            return Path(found)
    return None
