from __future__ import annotations

from pathlib import Path

import pytest

from optic.core.result import Err, Ok, Result
from optic.output.console import MockConsole
from optic.platform.process import ProcessError
from optic.services.release import git as git_mod
from optic.services.release.timeouts import GIT_NETWORK_TIMEOUT_SECONDS, GIT_TIMEOUT_SECONDS


class FakeGit:
    """Records git invocations; fails the ones whose args start with a given prefix."""

    def __init__(self, *, fail_on: tuple[str, ...] | None = None, stdout: str = "") -> None:
        self.fail_on = fail_on
        self.stdout = stdout
        self.calls: list[list[str]] = []
        self.timeouts: list[float | None] = []

    def __call__(
        self, cmd: list[str], cwd: Path, env: None = None, *, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        del cwd, env
        self.calls.append(cmd[1:])
        self.timeouts.append(timeout)
        if self.fail_on is not None and tuple(cmd[1 : 1 + len(self.fail_on)]) == self.fail_on:
            return Err(ProcessError(tuple(cmd), 1, "", "remote rejected"))
        return Ok(self.stdout)


def test_network_commands_get_longer_timeout(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    fake = FakeGit()
    monkeypatch.setattr(git_mod, "run_process", fake)

    git_mod.run_git(["push", "origin", "main"], repo_root=tmp_path)
    git_mod.run_git(["status"], repo_root=tmp_path)

    assert fake.timeouts == [GIT_NETWORK_TIMEOUT_SECONDS, GIT_TIMEOUT_SECONDS]


def test_commit_release_branch(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    fake = FakeGit()
    monkeypatch.setattr(git_mod, "run_process", fake)

    result = git_mod.commit_release_branch(
        repo_root=tmp_path,
        branch="release/v1.1.0",
        commit_message="Release v1.1.0",
        console=MockConsole(),
    )

    assert result == Ok(None)
    assert fake.calls == [
        ["checkout", "-b", "release/v1.1.0"],
        ["add", "-A"],
        ["commit", "-m", "Release v1.1.0"],
        ["push", "origin", "release/v1.1.0"],
    ]


def test_commit_release_branch_stops_on_failure(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    fake = FakeGit(fail_on=("commit",))
    monkeypatch.setattr(git_mod, "run_process", fake)

    result = git_mod.commit_release_branch(
        repo_root=tmp_path, branch="b", commit_message="m", console=MockConsole()
    )

    assert isinstance(result, Err)
    assert result.error.kind == "git_failed"
    assert result.error.hint == "remote rejected"
    assert [c[0] for c in fake.calls] == ["checkout", "add", "commit"]


def test_tag_version_ignores_missing_remote_tag(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    fake = FakeGit(fail_on=("push", "origin", ":refs/tags/v1"))
    monkeypatch.setattr(git_mod, "run_process", fake)

    result = git_mod.tag_version(repo_root=tmp_path, tag="v1")

    assert result == Ok(None)
    assert fake.calls == [
        ["push", "origin", ":refs/tags/v1"],
        ["tag", "-f", "-a", "v1", "-m", "v1"],
        ["push", "origin", "--tags", "--force"],
    ]


def test_revert_commit_pushes_to_base(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    fake = FakeGit()
    monkeypatch.setattr(git_mod, "run_process", fake)

    assert git_mod.revert_commit(repo_root=tmp_path, base_ref="main") == Ok(None)
    assert fake.calls == [["revert", "--no-edit", "HEAD"], ["push", "origin", "HEAD:main"]]


def test_head_sha_strips(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(git_mod, "run_process", FakeGit(stdout="abc123\n"))
    assert git_mod.head_sha(repo_root=tmp_path) == Ok("abc123")


def test_last_tag_none_without_tags(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(git_mod, "run_process", FakeGit(fail_on=("describe",)))
    assert git_mod.last_tag(repo_root=tmp_path) is None


def test_commit_messages_since(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    fake = FakeGit(stdout="feat: a\n\nbody\n\x00\nfix: b\n\x00\n")
    monkeypatch.setattr(git_mod, "run_process", fake)

    result = git_mod.commit_messages_since(repo_root=tmp_path, ref="v1.0.0")

    assert result == Ok(["feat: a\n\nbody", "fix: b"])
    assert fake.calls[0][:2] == ["log", "v1.0.0..HEAD"]
