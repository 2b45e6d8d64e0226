"""Tests for container path helpers."""

from pathlib import Path

import pytest

from extractors._shared.path_utils import (
    glob_to_sql_like,
    is_reserved_name,
    is_skipped_name,
    normalize_evidence_path,
    normalize_manifest_pattern,
    sanitize_entry_name,
    split_pattern,
    staging_dir_for,
)


class TestNormalization:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("/a/b/c.db", "/a/b/c.db"),
            ("a\\b\\c.db", "a/b/c.db"),
            ("//a///b/", "/a/b/"),
            ("/a/./b/../c.db", "/a/c.db"),
            ("  /padded.db  ", "/padded.db"),
        ],
    )
    def test_normalize_evidence_path(self, raw, expected):
        assert normalize_evidence_path(raw) == expected

    def test_climbing_above_root_is_rejected(self):
        assert normalize_evidence_path("/a/../../etc/passwd") is None
        assert normalize_manifest_pattern("../x") is None

    def test_glob_to_sql_like(self):
        assert glob_to_sql_like("*/mobile/**/sms.db*") == "%/mobile/%/sms.db%"

    def test_manifest_pattern(self):
        assert normalize_manifest_pattern("/a/*.plist") == "/a/%.plist"
        assert normalize_manifest_pattern("*\\Library\\*.db") == "%/Library/%.db"


class TestSplitPattern:
    def test_directory_and_name(self):
        assert split_pattern("/a/%.plist") == ("/a/", "%.plist")

    def test_name_only(self):
        assert split_pattern("sms.db") == (None, "sms.db")

    def test_root_directory_means_no_filter(self):
        assert split_pattern("/sms.db") == (None, "sms.db")

    def test_trailing_slash_has_empty_name(self):
        assert split_pattern("/a/b/") == ("/a/b/", "")


class TestNames:
    def test_colons_and_separators_replaced(self):
        assert sanitize_entry_name("2024-01-01 10:00:00.log") == "2024-01-01 10-00-00.log"
        assert sanitize_entry_name("a/b\\c") == "a-b-c"

    @pytest.mark.parametrize("name", [".", "..", "", "file.txt-slack", "FILE-SLACK"])
    def test_skipped_names(self, name):
        assert is_skipped_name(name) is True

    def test_regular_names_kept(self):
        assert is_skipped_name("slack.db") is False
        assert is_skipped_name("x") is False

    def test_reserved_names_only_cover_dots(self):
        assert is_reserved_name("..") is True
        assert is_reserved_name("") is True
        assert is_reserved_name("cache-slack") is False


class TestStagingDir:
    def test_mirrors_parent_path(self, tmp_path: Path):
        assert staging_dir_for(tmp_path, "/a/b/") == tmp_path / "a" / "b"

    def test_root_parent(self, tmp_path: Path):
        assert staging_dir_for(tmp_path, "/") == tmp_path

    def test_dot_segments_dropped(self, tmp_path: Path):
        assert staging_dir_for(tmp_path, "/../a/./../b//") == tmp_path / "a" / "b"

    def test_segments_sanitized(self, tmp_path: Path):
        assert staging_dir_for(tmp_path, "/C:/Users/") == tmp_path / "C-" / "Users"

    def test_symlink_escape_rejected(self, tmp_path: Path):
        root = tmp_path / "root"
        root.mkdir()
        outside = tmp_path / "outside"
        outside.mkdir()
        try:
            (root / "link").symlink_to(outside, target_is_directory=True)
        except OSError:
            pytest.skip("Unable to create symlink")

        with pytest.raises(ValueError, match="escapes"):
            staging_dir_for(root, "/link/")
