"""Finalize a release when its PR is closed.

Merged: publish to npm, move the semver tags, publish the draft release,
notify linked issues, upload the build folder. Closed without merging: drop
the draft release.

Failures that leave the repository consistent are collected in
`FinalizeReport.failures` and the flow continues; the rest stop it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from optic.core.config import ActionInputs
from optic.core.result import Err, Ok, Result
from optic.output.console import ConsoleProtocol
from optic.services.release.artifact import attach_artifact
from optic.services.release.errors import ReleaseError
from optic.services.release.event import EventContext, PullRequestInfo
from optic.services.release.gh import GhContext, delete_release, publish_release
from optic.services.release.git import delete_remote_branch, revert_commit, tag_version
from optic.services.release.model import (
    PR_TITLE_PREFIX,
    RELEASE_BOT_LOGIN,
    DraftRelease,
    ReleaseMeta,
)
from optic.services.release.notes import comment_body, notify_linked_issues
from optic.services.release.npm import publish_to_npm, resolve_otp
from optic.services.release.pr_body import parse_release_meta
from optic.services.release.version import package_dir, parse_semver, read_package_json

BUILD_ASSET_NAME = "asset.zip"
BUILD_ASSET_LABEL = "Release asset"


@dataclass(slots=True)
class FinalizeReport:
    skipped: bool = False
    discarded: bool = False
    npm_published: bool = False
    release_url: str | None = None
    failures: list[ReleaseError] = field(default_factory=list)


def is_release_pr(event: EventContext) -> bool:
    pr = event.pull_request
    return (
        event.action == "closed"
        and pr is not None
        and pr.author_login == RELEASE_BOT_LOGIN
        and pr.title.startswith(PR_TITLE_PREFIX)
    )


def semver_tags(version: str) -> list[str]:
    parsed = parse_semver(version)
    if parsed is None:
        return []
    major, minor, patch = parsed
    return [f"v{major}", f"v{major}.{minor}", f"v{major}.{minor}.{patch}"]


class _Finalizer:
    def __init__(
        self,
        *,
        repo_root: Path,
        gh: GhContext,
        pr: PullRequestInfo,
        meta: ReleaseMeta,
        inputs: ActionInputs,
        console: ConsoleProtocol,
    ) -> None:
        self._repo_root = repo_root
        self._gh = gh
        self._pr = pr
        self._meta = meta
        self._inputs = inputs
        self._console = console
        self._pkg_dir = package_dir(
            repo_root=repo_root,
            monorepo_root=meta.monorepo_root or inputs.monorepo_root,
            monorepo_package=meta.monorepo_package,
        )
        self.report = FinalizeReport()

    def _fail(self, error: ReleaseError) -> None:
        self._console.error(error.pretty())
        self.report.failures.append(error)

    def revert_if_configured(self) -> None:
        if not self._inputs.revert_commit_after_failure:
            return
        base = self._pr.base_ref
        if base is None:
            self._console.warning("cannot revert the release commit: unknown base branch")
            return
        reverted = revert_commit(repo_root=self._repo_root, base_ref=base)
        if isinstance(reverted, Err):
            self._console.error(reverted.error.pretty())
            return
        self._console.info("Release commit reverted.")

    def _package_name(self) -> str | None:
        pkg = read_package_json(self._pkg_dir)
        if isinstance(pkg, Err):
            self._console.warning(pkg.error.pretty())
            return None
        return pkg.value[0]

    def publish_npm(self) -> Result[None, ReleaseError]:
        npm_token = self._inputs.npm_token
        if npm_token is None:
            self._console.warning("missing npm-token; not publishing to npm")
            return Ok(None)

        name = self._package_name()
        if name is None:
            return Err(ReleaseError(kind="npm_failed", message="cannot determine the package name"))

        version = self._meta.version
        published = publish_to_npm(
            pkg_dir=self._pkg_dir,
            package_name=name,
            version=version,
            npm_tag=self._meta.npm_tag or self._inputs.npm_tag,
            npm_token=npm_token,
            otp_source=lambda: resolve_otp(
                inputs=self._inputs,
                optic_url=self._meta.optic_url,
                package_name=name,
                package_version=version,
                console=self._console,
            ),
            console=self._console,
        )
        if isinstance(published, Err):
            return published
        self.report.npm_published = published.value
        return Ok(None)

    def sync_tags(self) -> None:
        tags = semver_tags(self._meta.version)
        if not tags:
            self._fail(
                ReleaseError(
                    kind="invalid_input",
                    message=f"cannot sync semver tags: {self._meta.version} is not semver",
                )
            )
            return
        for tag in tags:
            tagged = tag_version(repo_root=self._repo_root, tag=tag)
            if isinstance(tagged, Err):
                self._fail(tagged.error)
                return

    def publish_github_release(self) -> None:
        published = publish_release(self._gh, release_id=self._meta.id)
        if isinstance(published, Err):
            self.revert_if_configured()
            self._fail(published.error)
            return

        release = published.value
        self.report.release_url = release.html_url
        self._console.success(f"Released {self._meta.version}: {release.html_url}")

        if self._inputs.notify_linked_issues:
            body = comment_body(
                package_name=self._package_name() or self._gh.repo.name,
                package_version=self._meta.version,
                release_url=release.html_url,
                npm_published=self._inputs.npm_token is not None,
            )
            notify_linked_issues(
                self._gh,
                repo=self._gh.repo,
                release_notes=release.body,
                body=body,
                console=self._console,
            )

    def upload_build_folder(self, folder: str) -> None:
        draft = DraftRelease(
            id=self._meta.id,
            tag_name=self._meta.version,
            html_url=self.report.release_url or "",
            body="",
        )
        attached = attach_artifact(
            self._gh,
            release=draft,
            src=self._repo_root / folder,
            filename=BUILD_ASSET_NAME,
            label=BUILD_ASSET_LABEL,
            console=self._console,
        )
        if isinstance(attached, Err):
            self._fail(attached.error)


def finalize_release(
    *,
    repo_root: Path,
    gh: GhContext,
    event: EventContext,
    inputs: ActionInputs,
    console: ConsoleProtocol,
) -> Result[FinalizeReport, ReleaseError]:
    pr = event.pull_request
    if pr is None or not is_release_pr(event):
        console.warning("Not a closed release PR; skipping release.")
        return Ok(FinalizeReport(skipped=True))

    console.header("Finalizing release")

    meta = parse_release_meta(pr.body)
    if isinstance(meta, Err):
        return meta

    # The branch goes whatever happens next: a failed release restarts from scratch.
    console.info(f"Deleting {meta.value.branch}")
    deleted = delete_remote_branch(repo_root=repo_root, branch=meta.value.branch)
    if isinstance(deleted, Err):
        console.warning(f"Unable to delete the release branch: {deleted.error.pretty()}")

    if not pr.merged:
        dropped = delete_release(gh, release_id=meta.value.id)
        if isinstance(dropped, Err):
            return Err(
                ReleaseError(
                    kind="gh_failed",
                    message=f"failed to delete the draft release: {dropped.error.pretty()}",
                )
            )
        console.info("Release PR closed without merging; draft release deleted.")
        return Ok(FinalizeReport(discarded=True))

    finalizer = _Finalizer(
        repo_root=repo_root,
        gh=gh,
        pr=pr,
        meta=meta.value,
        inputs=inputs,
        console=console,
    )

    npm = finalizer.publish_npm()
    if isinstance(npm, Err):
        finalizer.revert_if_configured()
        return Err(
            ReleaseError(
                kind=npm.error.kind,
                message=f"Unable to publish to npm: {npm.error.message}",
                hint=npm.error.hint,
            )
        )

    if inputs.sync_semver_tags:
        finalizer.sync_tags()

    finalizer.publish_github_release()

    if inputs.release_artifact_build_folder:
        finalizer.upload_build_folder(inputs.release_artifact_build_folder)

    return Ok(finalizer.report)
