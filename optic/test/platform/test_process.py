"""Tests for optic.platform.process module."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from optic.core.result import Err, Ok
from optic.platform.process import ProcessError, run, with_env


class TestProcessError:
    def test_str_short_command(self) -> None:
        error = ProcessError(
            command=("git", "status"),
            returncode=1,
            stdout="",
            stderr="fatal: not a git repository",
        )
        assert str(error) == "git status failed (exit 1)"

    def test_str_hides_trailing_arguments(self) -> None:
        error = ProcessError(
            command=("npm", "publish", "--otp", "123456"),
            returncode=1,
            stdout="",
            stderr="E401",
        )
        assert str(error) == "npm publish --otp ... failed (exit 1)"
        assert "123456" not in str(error)

    def test_frozen(self) -> None:
        error = ProcessError(("cmd",), 1, "", "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


class TestRun:
    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "print('hello')"], cwd=tmp_path)
        assert isinstance(result, Ok)
        assert "hello" in result.value

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import sys; sys.stderr.write('nope'); sys.exit(42)"],
            cwd=tmp_path,
        )
        assert isinstance(result, Err)
        assert result.error.returncode == 42
        assert "nope" in result.error.stderr

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == -1

    def test_timeout(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import time; time.sleep(5)"], cwd=tmp_path, timeout=0.2
        )
        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert "timed out" in result.error.stderr

    def test_runs_in_cwd_with_env(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import os; print(os.getcwd()); print(os.environ['OPTIC_X'])"],
            cwd=tmp_path,
            env=with_env({"OPTIC_X": "42"}),
        )
        assert isinstance(result, Ok)
        lines = result.value.splitlines()
        assert Path(lines[0]).resolve() == tmp_path.resolve()
        assert lines[1] == "42"


def test_with_env_overlays_current_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPTIC_BASE", "1")
    env = with_env({"OPTIC_EXTRA": "t"})
    assert env["OPTIC_BASE"] == "1"
    assert env["OPTIC_EXTRA"] == "t"
    assert "OPTIC_EXTRA" not in os.environ
