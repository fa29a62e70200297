from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from optic.core.config import ActionInputs
from optic.core.result import Err, Ok, Result
from optic.output.console import ConsoleProtocol
from optic.services.release.artifact import attach_artifact
from optic.services.release.commit_message import transform_commit_message
from optic.services.release.errors import ReleaseError
from optic.services.release.event import EventContext
from optic.services.release.gh import GhContext, create_draft_release, create_pull_request
from optic.services.release.git import commit_release_branch, delete_remote_branch, head_sha
from optic.services.release.model import PR_TITLE_PREFIX, Artifact, DraftRelease, ReleaseMeta
from optic.services.release.pr_body import render_pr_body
from optic.services.release.version import bump_version

ARTIFACT_LABEL = "Release artifact"


@dataclass(frozen=True, slots=True)
class OpenedReleasePr:
    version: str
    branch: str
    draft: DraftRelease
    pr_url: str
    artifact: Artifact | None = None


def _base_branch(ref: str | None) -> str | None:
    if not ref:
        return None
    return ref.removeprefix("refs/heads/")


def open_release_pr(
    *,
    repo_root: Path,
    gh: GhContext,
    event: EventContext,
    inputs: ActionInputs,
    console: ConsoleProtocol,
) -> Result[OpenedReleasePr, ReleaseError]:
    """Bump the version, push a release branch, draft a release and open the PR."""
    console.header("Opening release PR")

    base = _base_branch(event.ref)
    if base is None:
        return Err(
            ReleaseError(
                kind="invalid_event",
                message="cannot open a release PR without a base ref",
                hint="Run on workflow_dispatch, or set GITHUB_REF.",
            )
        )

    bumped = bump_version(
        repo_root=repo_root,
        semver=inputs.semver,
        monorepo_root=inputs.monorepo_root,
        monorepo_package=inputs.monorepo_package,
        console=console,
    )
    if isinstance(bumped, Err):
        return bumped

    version = f"{inputs.version_prefix}{bumped.value}"
    package = inputs.monorepo_package
    # id is unknown until the draft exists; only the branch name is needed here.
    branch = ReleaseMeta(id=0, version=version, monorepo_package=package).branch
    console.info(f"New version {version}")

    committed = commit_release_branch(
        repo_root=repo_root,
        branch=branch,
        commit_message=transform_commit_message(inputs.commit_message, version, package),
        console=console,
    )
    if isinstance(committed, Err):
        return committed

    sha = head_sha(repo_root=repo_root)
    if isinstance(sha, Err):
        return sha

    console.info(f"Creating draft release from commit: {sha.value}")
    draft = create_draft_release(
        gh,
        version=version,
        target=sha.value,
        name=f"{package} - {version}" if package else None,
    )
    if isinstance(draft, Err):
        return draft
    console.success(f"Draft release created: {draft.value.html_url}")

    artifact: Artifact | None = None
    if inputs.artifact_path:
        src = repo_root / inputs.artifact_path
        attached = attach_artifact(
            gh,
            release=draft.value,
            src=src,
            filename=f"{src.name}.zip",
            label=ARTIFACT_LABEL,
            console=console,
        )
        if isinstance(attached, Err):
            return attached
        artifact = attached.value
        console.success("Artifact attached")

    if package:
        attached = attach_artifact(
            gh,
            release=draft.value,
            src=repo_root / inputs.monorepo_root / package,
            filename=f"{package}-{version}.zip",
            label=f"{package} {version}",
            console=console,
        )
        if isinstance(attached, Err):
            return attached

    meta = ReleaseMeta(
        id=draft.value.id,
        version=version,
        npm_tag=inputs.npm_tag,
        monorepo_package=package,
        monorepo_root=inputs.monorepo_root if package else None,
        optic_url=inputs.optic_url,
    )
    body = render_pr_body(
        meta=meta,
        draft=draft.value,
        npm_publish=inputs.npm_token is not None,
        sync_tags=inputs.sync_semver_tags,
        artifact=artifact,
        author=event.actor,
    )

    pr = create_pull_request(
        gh,
        head=f"refs/heads/{branch}",
        base=base,
        title=f"{PR_TITLE_PREFIX} {branch}",
        body=body,
    )
    if isinstance(pr, Err):
        message = f"Unable to create the pull request: {pr.error.pretty()}"
        deleted = delete_remote_branch(repo_root=repo_root, branch=branch)
        if isinstance(deleted, Err):
            message += f"\nUnable to delete branch {branch}: {deleted.error.pretty()}"
        return Err(ReleaseError(kind="gh_failed", message=message))

    console.success(f"Release PR opened: {pr.value}")
    return Ok(
        OpenedReleasePr(
            version=version,
            branch=branch,
            draft=draft.value,
            pr_url=pr.value,
            artifact=artifact,
        )
    )
