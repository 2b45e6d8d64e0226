"""Tests for the case workspace and report registry."""

import sqlite3
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from core.case import Case, CaseError


def test_case_creates_database_and_layout(tmp_path: Path):
    with Case(tmp_path / "new_case") as case:
        assert (tmp_path / "new_case" / "case.sqlite").exists()
        assert case.module_directory == tmp_path / "new_case" / "ModuleOutput"
        assert case.list_reports() == []


def test_add_and_list_reports(case: Case, tmp_path: Path):
    report = tmp_path / "out" / "index.html"
    report.parent.mkdir()
    report.write_text("<html/>", encoding="utf-8")

    row_id = case.add_report(report, "iLeapp", "iLeapp Html Report")
    case.add_report(report, "aLeapp", "aLeapp Html Report")

    reports = case.list_reports()
    assert [r.id for r in reports][0] == row_id
    assert reports[0].path == report.resolve()
    assert reports[0].display_name == "iLeapp Html Report"
    assert [r.module_name for r in case.list_reports("aLeapp")] == ["aLeapp"]


def test_next_data_source_id(case: Case, mounted_source_factory):
    assert case.next_data_source_id() == 1

    mounted_source_factory({"a.txt": b"a"})

    assert case.next_data_source_id() == 2


def test_registry_failure_raises_case_error(case: Case, tmp_path: Path):
    real_conn = case.conn
    broken = MagicMock()
    broken.__enter__.return_value = broken
    broken.execute.side_effect = sqlite3.OperationalError("disk I/O error")
    case.conn = broken
    try:
        with pytest.raises(CaseError, match="disk I/O error"):
            case.add_report(tmp_path / "index.html", "iLeapp", "iLeapp Html Report")
    finally:
        case.conn = real_conn


def test_unopenable_case_raises(tmp_path: Path):
    blocker = tmp_path / "file"
    blocker.write_text("not a folder", encoding="utf-8")

    with pytest.raises(CaseError):
        Case(blocker)


def test_reopen_keeps_reports(tmp_path: Path):
    with Case(tmp_path / "c") as case:
        case.add_report(tmp_path / "index.html", "iLeapp", "iLeapp Html Report")

    with Case(tmp_path / "c") as reopened:
        assert len(reopened.list_reports()) == 1
