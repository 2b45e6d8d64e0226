"""
Core Enumerations

Centralized enum definitions for consistent typing across the codebase.
Using StrEnum (Python 3.11+) for string-based enums that serialize naturally.
"""

from enum import StrEnum


class PassStatus(StrEnum):
    """Overall outcome of one analysis pass over a data source."""

    OK = "ok"
    ERROR = "error"          # Pass-fatal or phase-fatal condition
    CANCELLED = "cancelled"  # Cancellation observed; partial output kept


class ExecutionMode(StrEnum):
    """Modes the external LEAPP tool can be invoked in."""

    DISCOVER_PATHS = "discover-paths"
    ANALYZE_FILE = "analyze-file"
    ANALYZE_FILESYSTEM = "analyze-filesystem"


class InvocationState(StrEnum):
    """How one external-process invocation ended."""

    COMPLETED = "completed"          # Exited on its own, any exit code
    TERMINATED = "terminated"        # Stopped by cancellation or timeout
    LAUNCH_FAILED = "launch_failed"  # Process never started


class DataSourceKind(StrEnum):
    """Kinds of forensic containers a pass can run against."""

    IMAGE = "image"      # Imaged filesystem (E01 or mounted image)
    LOGICAL = "logical"  # Logical collection of local files
