"""Version bump for the release PR.

`semver=auto` derives the bump from conventional commits since the last tag;
any other value is passed to `npm version` as is (major, minor, patch,
prerelease, or an explicit version).
"""

from __future__ import annotations

import json
import re
from pathlib import Path

from optic.core.result import Err, Ok, Result
from optic.core.structured import as_str_dict, get_str
from optic.output.console import ConsoleProtocol, Style
from optic.platform.process import run as run_process
from optic.services.release.errors import ReleaseError
from optic.services.release.git import commit_messages_since, last_tag
from optic.services.release.model import ReleaseType
from optic.services.release.timeouts import NPM_TIMEOUT_SECONDS

_SUBJECT_RE = re.compile(r"^(?P<type>[a-zA-Z]+)(?:\([^)]*\))?(?P<breaking>!)?:")
_BREAKING_FOOTER_RE = re.compile(r"^BREAKING[ -]CHANGE:", re.MULTILINE)


def release_type_for_commits(messages: list[str]) -> ReleaseType:
    """Highest bump implied by conventional commit messages."""
    bump: ReleaseType = "patch"
    for message in messages:
        if _BREAKING_FOOTER_RE.search(message):
            return "major"
        subject = message.splitlines()[0] if message else ""
        m = _SUBJECT_RE.match(subject)
        if m is None:
            continue
        if m.group("breaking"):
            return "major"
        if m.group("type").lower() == "feat":
            bump = "minor"
    return bump


def package_dir(*, repo_root: Path, monorepo_root: str, monorepo_package: str | None) -> Path:
    if monorepo_package:
        return repo_root / monorepo_root / monorepo_package
    return repo_root


def read_package_json(pkg_dir: Path) -> Result[tuple[str, str], ReleaseError]:
    """Return (name, version) from package.json."""
    path = pkg_dir / "package.json"
    try:
        obj: object = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(
            ReleaseError(
                kind="invalid_input", message=f"failed to read {path}: {e}", hint=str(path)
            )
        )
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(kind="invalid_input", message=f"invalid package.json: {e}", hint=str(path))
        )

    data = as_str_dict(obj) or {}
    name = get_str(data, "name")
    version = get_str(data, "version")
    if name is None or version is None:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message="package.json must declare name and version",
                hint=str(path),
            )
        )
    return Ok((name, version))


def resolve_bump(*, repo_root: Path, semver: str, console: ConsoleProtocol) -> str:
    if semver.strip().lower() != "auto":
        return semver.strip()

    messages = commit_messages_since(repo_root=repo_root, ref=last_tag(repo_root=repo_root))
    if isinstance(messages, Err):
        console.warning(f"{messages.error.pretty()}; defaulting to a patch release")
        return "patch"

    bump = release_type_for_commits(messages.value)
    console.print(f"semver auto: {bump} ({len(messages.value)} commits)", Style.DIM)
    return bump


def bump_version(
    *,
    repo_root: Path,
    semver: str,
    monorepo_root: str,
    monorepo_package: str | None,
    console: ConsoleProtocol,
) -> Result[str, ReleaseError]:
    """Bump package.json with `npm version` and return the new version."""
    bump = resolve_bump(repo_root=repo_root, semver=semver, console=console)
    pkg_dir = package_dir(
        repo_root=repo_root, monorepo_root=monorepo_root, monorepo_package=monorepo_package
    )

    console.print(f"npm version --no-git-tag-version {bump}", Style.DIM)
    result = run_process(
        ["npm", "version", "--no-git-tag-version", bump],
        cwd=pkg_dir,
        timeout=NPM_TIMEOUT_SECONDS,
    )
    if isinstance(result, Err):
        e = result.error
        return Err(
            ReleaseError(
                kind="npm_failed",
                message=f"npm version {bump} failed",
                hint=e.stderr.strip() or None,
            )
        )

    pkg = read_package_json(pkg_dir)
    if isinstance(pkg, Err):
        return pkg
    return Ok(pkg.value[1])


_SEMVER_RE = re.compile(r"^[vV]?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)(?:[-+].*)?$")


def parse_semver(version: str) -> tuple[int, int, int] | None:
    m = _SEMVER_RE.match(version.strip())
    if m is None:
        return None
    return int(m.group("major")), int(m.group("minor")), int(m.group("patch"))
