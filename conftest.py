import os
from pathlib import Path

import pytest

pytest_plugins = ["tests.fixtures.leapp"]


@pytest.fixture(scope="session")
def e01_path() -> Path:
    """Provide the E01 path for tests that need real evidence."""
    env_path = os.environ.get("E01_PATH")
    if not env_path:
        pytest.skip("Set E01_PATH to run tests against real evidence")
    path = Path(env_path)
    if not path.exists():
        pytest.skip(f"E01 evidence not found at {path}")
    return path
