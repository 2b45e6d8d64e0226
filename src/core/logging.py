from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

APP_LOGGER_NAME = "leappsifter"
LOG_FILE_NAME = "processing.log"
LOG_FORMAT = "%(asctime)sZ %(levelname)s %(name)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


class UtcFormatter(logging.Formatter):
    """Formatter that renders timestamps in UTC using ISO-8601."""

    converter = time.gmtime

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat(timespec="seconds")


def _build_formatter() -> UtcFormatter:
    return UtcFormatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def configure_logging(
    log_dir: Path,
    level: int = logging.INFO,
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 10,
) -> Logger:
    """
    Configure the application logger with console and rotating file handlers.

    Args:
        log_dir: Directory for log files
        level: Logging level (default: INFO)
        max_bytes: Maximum size per log file before rotation (default: 50 MB)
        backup_count: Number of backup files to keep (default: 10)

    Returns:
        Configured application logger
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME
    formatter = _build_formatter()

    root_logger = logging.getLogger(APP_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    root_logger.debug("Logging configured. File: %s (max %d MB, %d backups)",
                      log_path, max_bytes // (1024 * 1024), backup_count)
    return root_logger


@contextmanager
def case_log(log_path: Path, level: int = logging.DEBUG) -> Iterator[logging.Handler]:
    """
    Mirror application log records into a case-local log file for one pass.

    The handler is detached and closed when the block exits, so the case
    folder keeps a self-contained record of what the pass did.
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(_build_formatter())
    base = logging.getLogger(APP_LOGGER_NAME)
    base.addHandler(handler)
    try:
        yield handler
    finally:
        base.removeHandler(handler)
        handler.close()


def get_logger(name: Optional[str] = None) -> Logger:
    """Return a child logger under the application namespace."""
    base = logging.getLogger(APP_LOGGER_NAME)
    if name:
        return base.getChild(name)
    return base
