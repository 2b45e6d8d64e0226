"""Tests for report discovery and registration."""

from unittest.mock import MagicMock

from core.case import CaseError
from extractors.leapp.reports import ReportArtifact, find_report, harvest_report


def _write(path, text="<html></html>"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestFindReport:
    def test_first_match_in_sorted_walk(self, tmp_path):
        _write(tmp_path / "b" / "index.html")
        expected = _write(tmp_path / "a" / "index.html")

        assert find_report(tmp_path) == expected

    def test_match_ignores_case(self, tmp_path):
        expected = _write(tmp_path / "iLEAPP_Reports" / "INDEX.HTML")

        assert find_report(tmp_path, "index.html") == expected

    def test_suffix_match(self, tmp_path):
        expected = _write(tmp_path / "report_index.html")

        assert find_report(tmp_path) == expected

    def test_no_report(self, tmp_path):
        _write(tmp_path / "report" / "other.html")

        assert find_report(tmp_path) is None


class TestHarvestReport:
    def test_registers_report_with_case(self, tmp_path, case):
        report = _write(tmp_path / "out" / "iLEAPP_Reports" / "index.html")

        artifact = harvest_report(case, tmp_path / "out", "iLeapp", "iLeapp Html Report")

        assert artifact == ReportArtifact(path=report, display_name="iLeapp Html Report")
        registered = case.list_reports("iLeapp")
        assert len(registered) == 1
        assert registered[0].path == report.resolve()
        assert registered[0].display_name == "iLeapp Html Report"

    def test_nothing_registered_without_report(self, tmp_path, case):
        (tmp_path / "out").mkdir()

        assert harvest_report(case, tmp_path / "out", "iLeapp", "iLeapp Html Report") is None
        assert case.list_reports() == []

    def test_missing_output_dir(self, tmp_path, case):
        assert harvest_report(case, tmp_path / "missing", "iLeapp", "iLeapp Html Report") is None

    def test_registry_failure_is_not_raised(self, tmp_path):
        _write(tmp_path / "out" / "index.html")
        failing_case = MagicMock()
        failing_case.add_report.side_effect = CaseError("database is locked")

        assert harvest_report(failing_case, tmp_path / "out", "iLeapp", "iLeapp Html Report") is None
        failing_case.add_report.assert_called_once()
