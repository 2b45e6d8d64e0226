"""
Modular extractor system for forensic analysis.

Each extractor is a self-contained module with:
- Metadata and host checks
- One extraction pass per data source
- Report registration with the case

Folder Structure:
- leapp/           iLEAPP / ALEAPP analyzer (discovery, staging, analysis)
- _shared/         Shared utilities (path_utils)
"""

from .base import BaseExtractor, ExtractorMetadata, PassResult
from .callbacks import ExtractorCallbacks, LoggingCallbacks
from .exceptions import (
    ExtractorError,
    ManifestReadError,
    MissingToolError,
    StagingError,
    ToolLaunchError,
    UnsupportedPlatformError,
)

__all__ = [
    'BaseExtractor',
    'ExtractorMetadata',
    'PassResult',
    'ExtractorCallbacks',
    'LoggingCallbacks',
    'ExtractorError',
    'ManifestReadError',
    'MissingToolError',
    'StagingError',
    'ToolLaunchError',
    'UnsupportedPlatformError',
]
