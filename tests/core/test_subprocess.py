"""Tests for run_subprocess_with_context."""

import shutil
from pathlib import Path

import pytest

from gtown.core.subprocess import run_subprocess_with_context


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
def test_returns_captured_output(tmp_path: Path) -> None:
    result = run_subprocess_with_context(["git", "--version"], "read git version", cwd=tmp_path)

    assert result.stdout.startswith("git version")


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
def test_failure_names_operation_command_and_output(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError) as exc_info:
        run_subprocess_with_context(["git", "rev-parse", "HEAD"], "read HEAD", cwd=tmp_path)

    message = str(exc_info.value)
    assert message.startswith("Failed to read HEAD\n")
    assert "Command: git rev-parse HEAD" in message
    assert "Exit code: 128" in message
    assert "stderr: fatal:" in message


def test_missing_binary_is_reported(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError, match="Command not found while trying to sync"):
        run_subprocess_with_context(["gtown-missing-binary"], "sync", cwd=tmp_path)
