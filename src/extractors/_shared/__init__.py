"""
Shared utilities for extractors.

- path_utils: container path normalization and staging path mapping

Design Principle:
    Extractors keep their helpers here rather than in src/core/ so that
    core stays free of extractor-specific conventions.
"""

from .path_utils import (
    glob_to_sql_like,
    is_reserved_name,
    is_skipped_name,
    normalize_evidence_path,
    normalize_manifest_pattern,
    sanitize_entry_name,
    split_pattern,
    staging_dir_for,
)

__all__ = [
    "glob_to_sql_like",
    "is_reserved_name",
    "is_skipped_name",
    "normalize_evidence_path",
    "normalize_manifest_pattern",
    "sanitize_entry_name",
    "split_pattern",
    "staging_dir_for",
]
