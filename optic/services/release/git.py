from __future__ import annotations

from pathlib import Path

from optic.core.result import Err, Ok, Result
from optic.output.console import ConsoleProtocol, Style
from optic.platform.process import run as run_process
from optic.services.release.errors import ReleaseError
from optic.services.release.timeouts import GIT_NETWORK_TIMEOUT_SECONDS, GIT_TIMEOUT_SECONDS

_NETWORK_SUBCOMMANDS = frozenset({"push", "fetch", "pull"})


def run_git(
    args: list[str],
    *,
    repo_root: Path,
    message: str | None = None,
) -> Result[str, ReleaseError]:
    cmd = ["git", *args]
    network = bool(args) and args[0] in _NETWORK_SUBCOMMANDS
    timeout = GIT_NETWORK_TIMEOUT_SECONDS if network else GIT_TIMEOUT_SECONDS
    result = run_process(cmd, cwd=repo_root, timeout=timeout)
    if isinstance(result, Err):
        e = result.error
        return Err(
            ReleaseError(
                kind="git_failed",
                message=message or f"git failed: {' '.join(cmd[:3])}",
                hint=e.stderr.strip() or None,
            )
        )
    return result


def head_sha(*, repo_root: Path) -> Result[str, ReleaseError]:
    result = run_git(["rev-parse", "HEAD"], repo_root=repo_root, message="failed to resolve HEAD")
    if isinstance(result, Err):
        return result
    return Ok(result.value.strip())


def commit_release_branch(
    *,
    repo_root: Path,
    branch: str,
    commit_message: str,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    """Create `branch`, commit every change on it and push it to origin."""
    for args in (
        ["checkout", "-b", branch],
        ["add", "-A"],
        ["commit", "-m", commit_message],
        ["push", "origin", branch],
    ):
        console.print(f"git {' '.join(args[:2])}", Style.DIM)
        result = run_git(args, repo_root=repo_root)
        if isinstance(result, Err):
            return result
    return Ok(None)


def delete_remote_branch(*, repo_root: Path, branch: str) -> Result[None, ReleaseError]:
    result = run_git(
        ["push", "origin", "--delete", branch],
        repo_root=repo_root,
        message=f"failed to delete branch {branch}",
    )
    if isinstance(result, Err):
        return result
    return Ok(None)


def tag_version(*, repo_root: Path, tag: str) -> Result[None, ReleaseError]:
    """Point `tag` at HEAD locally and on origin, replacing any previous tag."""
    # Deleting a tag that does not exist remotely fails; that is fine.
    run_git(["push", "origin", f":refs/tags/{tag}"], repo_root=repo_root)

    for args in (
        ["tag", "-f", "-a", tag, "-m", tag],
        ["push", "origin", "--tags", "--force"],
    ):
        result = run_git(args, repo_root=repo_root, message=f"failed to update tag {tag}")
        if isinstance(result, Err):
            return result
    return Ok(None)


def revert_commit(*, repo_root: Path, base_ref: str) -> Result[None, ReleaseError]:
    """Revert the release commit (HEAD) and push the revert to `base_ref`."""
    for args in (
        ["revert", "--no-edit", "HEAD"],
        ["push", "origin", f"HEAD:{base_ref}"],
    ):
        result = run_git(args, repo_root=repo_root, message="failed to revert the release commit")
        if isinstance(result, Err):
            return result
    return Ok(None)


def last_tag(*, repo_root: Path) -> str | None:
    result = run_git(["describe", "--tags", "--abbrev=0"], repo_root=repo_root)
    if isinstance(result, Err):
        return None
    return result.value.strip() or None


def commit_messages_since(*, repo_root: Path, ref: str | None) -> Result[list[str], ReleaseError]:
    """Full commit messages reachable from HEAD but not from `ref` (all if None)."""
    rev_range = f"{ref}..HEAD" if ref else "HEAD"
    result = run_git(
        ["log", rev_range, "--format=%B%x00"],
        repo_root=repo_root,
        message="failed to read commit history",
    )
    if isinstance(result, Err):
        return result
    return Ok([m.strip() for m in result.value.split("\x00") if m.strip()])
