"""Tests for src/core/enums.py - Core enumerations."""

from core.enums import DataSourceKind, ExecutionMode, InvocationState, PassStatus


class TestPassStatus:
    def test_values(self):
        assert PassStatus.OK == "ok"
        assert PassStatus.ERROR == "error"
        assert PassStatus.CANCELLED == "cancelled"

    def test_str_renders_value(self):
        assert f"{PassStatus.CANCELLED}" == "cancelled"


class TestExecutionMode:
    def test_mode_tags(self):
        assert ExecutionMode.DISCOVER_PATHS == "discover-paths"
        assert ExecutionMode.ANALYZE_FILE == "analyze-file"
        assert ExecutionMode.ANALYZE_FILESYSTEM == "analyze-filesystem"


class TestInvocationState:
    def test_end_states(self):
        assert {state.value for state in InvocationState} == {"completed", "terminated", "launch_failed"}


def test_data_source_kind_matches_schema_check():
    """Values are stored in data_sources.kind which only accepts these strings."""
    assert {kind.value for kind in DataSourceKind} == {"image", "logical"}
