from __future__ import annotations

import re

from optic.core.result import Err
from optic.output.console import ConsoleProtocol
from optic.services.release.gh import GhContext, create_issue_comment, linked_issues
from optic.services.release.model import IssueRef, PullRequestRef, RepoRef

_URL_RE = re.compile(r"\bhttps?://\S+", re.IGNORECASE)
_TRAILING_PUNCT = ").,;>]*_`"

OPTIC_HOMEPAGE = "https://github.com/nearform/optic-release-automation-action"


def pr_numbers_from_release_notes(notes: str) -> list[PullRequestRef]:
    """PRs linked from generated release notes, in order of first mention.

    Only the first URL of each line counts (generated notes put the PR link
    first). Compare links such as `.../compare/v1.0.0...v1.0.1` are ignored.
    """
    out: list[PullRequestRef] = []
    for line in notes.splitlines():
        m = _URL_RE.search(line)
        if m is None:
            continue

        parts = m.group(0).rstrip(_TRAILING_PUNCT).split("/")
        if len(parts) < 7 or parts[5] != "pull" or not parts[-1].isdigit():
            continue

        ref = PullRequestRef(owner=parts[3], repo=parts[4], number=int(parts[-1]))
        if ref not in out:
            out.append(ref)
    return out


def npm_package_url(package_name: str, version: str) -> str:
    return f"https://www.npmjs.com/package/{package_name}/v/{version}"


def comment_body(
    *,
    package_name: str,
    package_version: str,
    release_url: str,
    npm_published: bool,
) -> str:
    lines = [
        f"🎉 This issue has been resolved in version {package_version} 🎉",
        "",
        "The release is available on:",
    ]
    if npm_published:
        lines.append(f"* [npm package]({npm_package_url(package_name, package_version)})")
    lines.append(f"* [GitHub release]({release_url})")
    lines.append("")
    lines.append(f"Your **[optic]({OPTIC_HOMEPAGE})** bot 📦🚀")
    return "\n".join(lines)


def notify_linked_issues(
    ctx: GhContext,
    *,
    repo: RepoRef,
    release_notes: str,
    body: str,
    console: ConsoleProtocol,
) -> list[IssueRef]:
    """Comment on issues closed by the PRs of a release.

    Issues outside `repo` are skipped. Failures are logged per PR or issue
    and never stop the remaining notifications. Returns the issues commented.
    """
    issues: list[IssueRef] = []
    for pr in pr_numbers_from_release_notes(release_notes):
        found = linked_issues(ctx, owner=pr.owner, repo=pr.repo, pr_number=pr.number)
        if isinstance(found, Err):
            console.warning(found.error.pretty())
            continue
        issues.extend(i for i in found.value if i not in issues)

    notified: list[IssueRef] = []
    for issue in issues:
        if issue.owner != repo.owner or issue.repo != repo.name:
            console.info(f"Skipping external issue {issue.owner}/{issue.repo}#{issue.number}")
            continue

        result = create_issue_comment(ctx, issue=issue, body=body)
        if isinstance(result, Err):
            console.error(
                f"Failed to comment on issue #{issue.number} of {repo.slug}: "
                f"{result.error.pretty()}"
            )
            continue
        notified.append(issue)
    return notified
