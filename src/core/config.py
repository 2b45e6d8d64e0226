from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_ENVIRONMENT = {"__COMPAT_LAYER": "RunAsInvoker"}


@dataclass(slots=True)
class LoggingConfig:
    """Logging configuration from config.yml."""

    level: str = "INFO"
    app_log_max_mb: int = 50
    app_log_backup_count: int = 10


@dataclass(slots=True)
class LeappConfig:
    """Settings for the LEAPP analyzer pass (``leapp`` section of config.yml)."""

    tool: str = "ileapp"
    executable: Optional[Path] = None
    environment: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ENVIRONMENT))
    required_platform: Optional[str] = None
    poll_interval_seconds: float = 0.5
    timeout_seconds: Optional[float] = None
    terminate_grace_seconds: float = 5.0

    def platform_supported(self, platform: Optional[str] = None) -> bool:
        """Return True when the host matches ``required_platform`` (or none is required)."""
        if not self.required_platform:
            return True
        host = platform or sys.platform
        return host.startswith(self.required_platform)


@dataclass(slots=True)
class AppConfig:
    """Top-level configuration resolved from disk."""

    base_dir: Path
    tool_paths: Dict[str, Path]
    logs_dir: Path
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    leapp: LeappConfig = field(default_factory=LeappConfig)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle) or {}
        if not isinstance(content, dict):
            raise ValueError(f"Config file {path} must contain a mapping at the top level.")
        return content


def _load_leapp_config(section: Dict[str, Any]) -> LeappConfig:
    if not isinstance(section, dict):
        raise ValueError("The 'leapp' config section must be a mapping.")

    environment = dict(DEFAULT_ENVIRONMENT)
    if "environment" in section:
        # An explicit mapping replaces the defaults; null clears them.
        environment = {str(k): str(v) for k, v in (section["environment"] or {}).items()}

    executable = section.get("executable")
    timeout = section.get("timeout_seconds")
    return LeappConfig(
        tool=str(section.get("tool", "ileapp")).lower(),
        executable=Path(executable) if executable else None,
        environment=environment,
        required_platform=section.get("required_platform"),
        poll_interval_seconds=float(section.get("poll_interval_seconds", 0.5)),
        timeout_seconds=float(timeout) if timeout is not None else None,
        terminate_grace_seconds=float(section.get("terminate_grace_seconds", 5.0)),
    )


def load_app_config(base_dir: Path) -> AppConfig:
    """Load application configuration from disk, providing sensible defaults."""

    config_yaml = base_dir / "config" / "config.yml"
    config_overrides = _load_yaml(config_yaml)

    tool_paths: Dict[str, Path] = {}
    for tool_name, path_str in (config_overrides.get("tool_paths") or {}).items():
        tool_paths[tool_name] = Path(path_str)

    # Logs must go to a persistent, writable location when running frozen.
    if getattr(sys, "frozen", False):
        logs_dir = Path.home() / ".config" / "leappsifter" / "logs"
    else:
        logs_dir = base_dir / "logs"

    logging_cfg = config_overrides.get("logging") or {}
    logging_config = LoggingConfig(
        level=logging_cfg.get("level", "INFO"),
        app_log_max_mb=logging_cfg.get("app_log_max_mb", 50),
        app_log_backup_count=logging_cfg.get("app_log_backup_count", 10),
    )

    return AppConfig(
        base_dir=base_dir,
        tool_paths=tool_paths,
        logs_dir=logs_dir,
        logging=logging_config,
        leapp=_load_leapp_config(config_overrides.get("leapp") or {}),
    )
