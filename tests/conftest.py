"""Pytest configuration and fixtures."""

from typing import List, Optional

import pytest

from executor import ExecutionResult
from models.repository_config import RepositoryConfig


class RecordingExecutor:
    """Stands in for execute_script and remembers every call."""

    def __init__(self, result: Optional[ExecutionResult] = None):
        self.result = result or ExecutionResult(exit_ok=True, stdout="deployed", returncode=0)
        self.calls: List[dict] = []

    def __call__(self, script_path, timeout=None, cwd=None):
        self.calls.append({"script_path": script_path, "timeout": timeout, "cwd": cwd})
        return self.result


@pytest.fixture
def repository() -> RepositoryConfig:
    return RepositoryConfig(
        full_name="org/repo",
        branch="main",
        secret="abc",
        script_path="/bin/true",
    )


@pytest.fixture
def recording_executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def make_executor():
    """Build a RecordingExecutor that returns a given ExecutionResult."""
    return RecordingExecutor
