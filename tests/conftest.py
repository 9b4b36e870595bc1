"""
Shared fixtures for the test suite.

Every test runs with the work history redirected into its own tmp_path so
nothing is appended under output/private/.
"""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scripts.summary import worklog  # noqa: E402


@pytest.fixture(autouse=True)
def worklog_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the worklog at a per-test JSONL file."""
    path = tmp_path / "work_history.jsonl"
    monkeypatch.setenv(worklog.ENV_WORKLOG_PATH, str(path))
    return path
