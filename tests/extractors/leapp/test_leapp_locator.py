"""Tests for manifest and logical-collection lookups."""

from unittest.mock import MagicMock

from core.data_source import VirtualFileEntry
from core.file_index import IndexQueryError
from extractors.leapp.locator import (
    find_logical_candidates,
    find_manifest_entries,
    is_archive_candidate,
)
from extractors.leapp.profiles import ARCHIVE_MARKERS


class TestManifestEntries:
    def test_patterns_resolve_to_entries(self, file_index, mounted_source_factory):
        source = mounted_source_factory(
            {"a/x.plist": b"1", "a/y.plist": b"2", "a/z.db": b"3", "b/name.db": b"4", "c/x.plist": b"5"}
        )

        found = find_manifest_entries(file_index, source, ["/a/*.plist", "/b/name.db"])

        assert sorted(entry.path for entry in found) == ["/a/x.plist", "/a/y.plist", "/b/name.db"]

    def test_results_follow_pattern_order(self, file_index, mounted_source_factory):
        source = mounted_source_factory({"a/one.db": b"1", "b/two.db": b"2"})

        found = find_manifest_entries(file_index, source, ["*/two.db", "*/one.db"])

        assert [entry.name for entry in found] == ["two.db", "one.db"]

    def test_overlapping_patterns_keep_duplicates(self, file_index, mounted_source_factory):
        source = mounted_source_factory({"a/x.plist": b"1"})

        found = find_manifest_entries(file_index, source, ["/a/*.plist", "*/x.plist"])

        assert [entry.path for entry in found] == ["/a/x.plist", "/a/x.plist"]

    def test_directory_patterns_without_name_are_skipped(self, file_index, mounted_source_factory):
        source = mounted_source_factory({"a/x.plist": b"1"})

        assert find_manifest_entries(file_index, source, ["/a/"]) == []

    def test_paths_above_root_are_skipped(self, file_index, mounted_source_factory):
        source = mounted_source_factory({"a/x.plist": b"1"})

        assert find_manifest_entries(file_index, source, ["/../../x.plist"]) == []

    def test_index_failure_only_drops_that_pattern(self):
        source = MagicMock()
        entry = VirtualFileEntry.create("name.db", "/b/", entry_id=4)
        index = MagicMock()
        index.find_files.side_effect = [IndexQueryError("index unavailable"), [entry]]

        found = find_manifest_entries(index, source, ["/a/*.plist", "/b/name.db"])

        assert found == [entry]
        index.find_files.assert_any_call(source, "%.plist", "/a/")
        index.find_files.assert_any_call(source, "name.db", "/b/")

    def test_cancellation_stops_lookups(self):
        index = MagicMock()
        index.find_files.return_value = []

        find_manifest_entries(index, MagicMock(), ["/a/x", "/b/y"], is_cancelled=lambda: True)

        index.find_files.assert_not_called()


class TestLogicalCandidates:
    def test_only_local_archives_qualify(self, file_index, logical_source_factory):
        source = logical_source_factory(
            {
                "evidence.zip": b"PK",
                "backup.TAR": b"tar",
                "notes.txt": b"text",
                "bundle.tgz": b"tgz",
            }
        )

        found = find_logical_candidates(file_index, source, ARCHIVE_MARKERS)

        assert sorted(entry.name for entry in found) == ["backup.TAR", "bundle.tgz", "evidence.zip"]
        assert all(entry.local_abs_path for entry in found)

    def test_marker_matches_anywhere_in_name(self):
        entry = VirtualFileEntry.create("itunes.zip.part1", "/", local_abs_path="/tmp/itunes.zip.part1")

        assert is_archive_candidate(entry, ARCHIVE_MARKERS) is True

    def test_virtual_and_non_local_entries_rejected(self):
        virtual = VirtualFileEntry.create("x.zip", "/", is_virtual=True, local_abs_path="/tmp/x.zip")
        not_local = VirtualFileEntry.create("x.zip", "/")
        no_extension = VirtualFileEntry.create("zip", "/", local_abs_path="/tmp/zip")
        directory = VirtualFileEntry.create("dir.zip", "/", is_dir=True, local_abs_path="/tmp/dir.zip")

        for entry in (virtual, not_local, no_extension, directory):
            assert is_archive_candidate(entry, ARCHIVE_MARKERS) is False

    def test_query_failure_yields_no_candidates(self):
        index = MagicMock()
        index.find_files.side_effect = IndexQueryError("gone")

        assert find_logical_candidates(index, MagicMock(), ARCHIVE_MARKERS) == []
