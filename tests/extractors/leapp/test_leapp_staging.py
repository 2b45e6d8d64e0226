"""Tests for materializing entries into a staging tree."""

from pathlib import Path
from unittest.mock import patch

from core.data_source import VirtualFileEntry
from extractors.leapp.staging import materialize_entries, materialize_entry


def _tree(root: Path) -> dict:
    return {
        path.relative_to(root).as_posix(): (path.read_bytes() if path.is_file() else None)
        for path in sorted(root.rglob("*"))
    }


def _entries(file_index, source):
    return file_index.find_files(source, "%", "/")


def test_tree_mirrors_container_layout(tmp_path, file_index, mounted_source_factory):
    source = mounted_source_factory(
        {"a/x.plist": b"x", "a/deep/y.db": b"y", "top.txt": b"t"},
        dirs=("empty",),
    )
    root = tmp_path / "staging"

    summary = materialize_entries(source, _entries(file_index, source), root)

    assert _tree(root) == {
        "a": None,
        "a/deep": None,
        "a/deep/y.db": b"y",
        "a/x.plist": b"x",
        "empty": None,
        "top.txt": b"t",
    }
    assert summary.files_written == 3
    assert summary.dirs_created == 3
    assert summary.failed == 0


def test_materialization_is_idempotent(tmp_path, file_index, mounted_source_factory):
    source = mounted_source_factory({"a/x.plist": b"x", "b/name.db": b"db"})
    entries = _entries(file_index, source)
    root = tmp_path / "staging"

    materialize_entries(source, entries, root)
    first = _tree(root)
    materialize_entries(source, entries + entries, root)

    assert _tree(root) == first


def test_names_sanitized_and_slack_skipped(tmp_path, mounted_source_factory):
    source = mounted_source_factory({"logs/a.log": b"log"})
    root = tmp_path / "staging"
    colon = VirtualFileEntry.create("10:00:00.log", "/logs/", entry_id=1)
    slack = VirtualFileEntry.create("a.log-slack", "/logs/", entry_id=2)
    dot = VirtualFileEntry.create("..", "/logs/", entry_id=3, is_dir=True)

    with patch.object(type(source), "open_stream", return_value=iter([b"data"])):
        summary = materialize_entries(source, [colon, slack, dot], root)

    assert (root / "logs" / "10-00-00.log").read_bytes() == b"data"
    assert not (root / "logs" / "a.log-slack").exists()
    assert summary.skipped == 2
    assert sorted(p.name for p in (root / "logs").iterdir()) == ["10-00-00.log"]


def test_traversal_in_parent_path_stays_under_root(tmp_path, mounted_source_factory):
    source = mounted_source_factory({"x.db": b"x"})
    root = tmp_path / "staging"
    entry = VirtualFileEntry.create("x.db", "/../../", entry_id=1)

    with patch.object(type(source), "open_stream", return_value=iter([b"x"])):
        materialize_entry(source, entry, root)

    assert (root / "x.db").read_bytes() == b"x"
    assert not (tmp_path / "x.db").exists()


def test_read_failure_is_logged_and_loop_continues(tmp_path, file_index, mounted_source_factory, caplog):
    source = mounted_source_factory({"a/good.db": b"good"})
    root = tmp_path / "staging"
    missing = VirtualFileEntry.create("gone.db", "/a/", entry_id=99)
    entries = [missing] + _entries(file_index, source)

    with caplog.at_level("WARNING", logger="leappsifter"):
        summary = materialize_entries(source, entries, root)

    assert summary.failed == 1
    assert (root / "a" / "good.db").read_bytes() == b"good"
    assert not (root / "a" / "gone.db").exists()
    assert "gone.db" in caplog.text


def test_write_failure_is_logged_and_loop_continues(tmp_path, file_index, mounted_source_factory):
    source = mounted_source_factory({"a/x.db": b"x", "b/y.db": b"y"})
    root = tmp_path / "staging"
    root.mkdir()
    (root / "a").write_text("a file where a directory should be", encoding="utf-8")

    summary = materialize_entries(source, _entries(file_index, source), root)

    assert summary.failed >= 1
    assert (root / "b" / "y.db").read_bytes() == b"y"


def test_cancel_before_start_writes_nothing(tmp_path, file_index, mounted_source_factory):
    source = mounted_source_factory({"a/x.db": b"x"})
    root = tmp_path / "staging"

    summary = materialize_entries(source, _entries(file_index, source), root, is_cancelled=lambda: True)

    assert summary.cancelled is True
    assert summary.processed == 0
    assert not root.exists()


def test_cancel_mid_loop_keeps_only_processed_entries(tmp_path, mounted_source_factory):
    source = mounted_source_factory({"1.db": b"1", "2.db": b"2", "3.db": b"3"})
    root = tmp_path / "staging"
    entries = [VirtualFileEntry.create(f"{i}.db", "/", entry_id=i) for i in (1, 2, 3)]
    checks = iter([False, False, True])

    summary = materialize_entries(source, entries, root, is_cancelled=lambda: next(checks))

    assert summary.cancelled is True
    assert sorted(p.name for p in root.iterdir()) == ["1.db", "2.db"]


def test_progress_callback_receives_running_count(tmp_path, mounted_source_factory):
    source = mounted_source_factory({"1.db": b"1", "2.db": b"2"})
    entries = [VirtualFileEntry.create(f"{i}.db", "/", entry_id=i) for i in (1, 2)]
    seen = []

    materialize_entries(source, entries, tmp_path / "staging", on_entry=lambda n, e: seen.append((n, e.name)))

    assert seen == [(1, "1.db"), (2, "2.db")]


def test_slack_suffix_only_skips_files(tmp_path, mounted_source_factory):
    source = mounted_source_factory({"x.db": b"x"})
    root = tmp_path / "staging"
    slack_dir = VirtualFileEntry.create("cache-slack", "/data/", entry_id=1, is_dir=True)
    dot_dir = VirtualFileEntry.create(".", "/data/", entry_id=2, is_dir=True)

    summary = materialize_entries(source, [slack_dir, dot_dir], root)

    assert (root / "data" / "cache-slack").is_dir()
    assert summary.dirs_created == 1
    assert summary.skipped == 1
