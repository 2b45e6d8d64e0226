"""
Callback interface for extractor progress reporting.
"""

import logging
import threading
from typing import Protocol

from core.logging import get_logger

LOGGER = get_logger("extractors.callbacks")

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class ExtractorCallbacks(Protocol):
    """
    Callback interface for extractor progress reporting.

    Modules call these methods to report progress, logs, and errors.
    Implementations can be synchronous (for testing) or forward to a UI.
    """

    def on_progress(self, current: int, total: int, message: str = "") -> None:
        """
        Report progress.

        Args:
            current: Units completed so far
            total: Total units, 0 while the total is unknown
            message: Optional status message

        Example:
            callbacks.on_progress(3, 10, "Analyzing evidence.zip")
        """
        ...

    def switch_to_determinate(self, total: int) -> None:
        """
        Announce the total number of work units once it is known.

        Called once per phase, before the first ``on_progress`` with a total.
        """
        ...

    def on_log(self, message: str, level: str = "info") -> None:
        """
        Log a message.

        Args:
            message: Log message
            level: "debug" | "info" | "warning" | "error"
        """
        ...

    def on_error(self, error: str, details: str = "") -> None:
        """
        Report an error.

        Args:
            error: Short error message
            details: Detailed error information (traceback, etc.)
        """
        ...

    def on_step(self, step_name: str) -> None:
        """
        Report entering a new processing step.

        Example:
            callbacks.on_step("Running iLeapp path discovery")
        """
        ...

    def post_message(self, subject: str, detail: str = "") -> None:
        """Post a user-facing notification (one per completed pass)."""
        ...

    def is_cancelled(self) -> bool:
        """
        Check if user cancelled the operation.

        Returns:
            True if operation should stop
        """
        ...


class LoggingCallbacks:
    """
    Headless callbacks that forward everything to the application logger.

    Cancellation is driven by a ``threading.Event`` so another thread (or a
    signal handler) can stop a running pass with ``cancel()``.
    """

    def __init__(self, cancel_event: threading.Event | None = None) -> None:
        self.cancel_event = cancel_event or threading.Event()
        self.total = 0
        self.messages: list[tuple[str, str]] = []

    def on_progress(self, current: int, total: int, message: str = "") -> None:
        if total:
            LOGGER.info("[%d/%d] %s", current, total, message)
        else:
            LOGGER.info("%s", message)

    def switch_to_determinate(self, total: int) -> None:
        self.total = total
        LOGGER.debug("Progress switched to determinate (%d units)", total)

    def on_log(self, message: str, level: str = "info") -> None:
        LOGGER.log(_LEVELS.get(level, logging.INFO), "%s", message)

    def on_error(self, error: str, details: str = "") -> None:
        if details:
            LOGGER.error("%s: %s", error, details)
        else:
            LOGGER.error("%s", error)

    def on_step(self, step_name: str) -> None:
        LOGGER.info("== %s", step_name)

    def post_message(self, subject: str, detail: str = "") -> None:
        self.messages.append((subject, detail))
        LOGGER.info("%s %s", subject, detail)

    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()
