from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from time import sleep

from optic.core.result import Err, Ok, Result
from optic.core.structured import as_obj_list, as_str_dict, get_int, get_str, get_table
from optic.platform.process import ProcessError, with_env
from optic.platform.process import run as run_process
from optic.services.release.errors import ReleaseError, ReleaseErrorKind
from optic.services.release.model import (
    Artifact,
    DraftRelease,
    IssueRef,
    PublishedRelease,
    RepoRef,
)
from optic.services.release.timeouts import (
    GH_READ_RETRY_ATTEMPTS,
    GH_READ_RETRY_DELAY_SECONDS,
    GH_TIMEOUT_SECONDS,
    GH_UPLOAD_TIMEOUT_SECONDS,
)

_LINKED_ISSUES_QUERY = """
query getLinkedIssues($repoOwner: String!, $repoName: String!, $prNumber: Int!) {
  repository(owner: $repoOwner, name: $repoName) {
    pullRequest(number: $prNumber) {
      closingIssuesReferences(first: 100) {
        nodes {
          number
        }
      }
    }
  }
}
"""


@dataclass(frozen=True, slots=True)
class GhContext:
    """Where and as whom `gh` runs."""

    workspace_root: Path
    repo: RepoRef
    token: str | None = None

    def env(self) -> dict[str, str] | None:
        if self.token is None:
            return None
        return with_env({"GH_TOKEN": self.token})


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "gateway timeout",
        "network is unreachable",
        "http 429",
        "http 500",
        "http 502",
        "http 503",
        "http 504",
    )
    return any(marker in text for marker in markers)


def run_gh_read(
    ctx: GhContext,
    *,
    cmd: list[str],
    message: str,
    kind: ReleaseErrorKind = "gh_failed",
    timeout: float = GH_TIMEOUT_SECONDS,
    retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
) -> Result[str, ReleaseError]:
    """Run an idempotent gh command, retrying transient failures."""
    attempts = max(1, retry_attempts)
    for attempt in range(attempts):
        result = run_process(cmd, cwd=ctx.workspace_root, env=ctx.env(), timeout=timeout)
        if isinstance(result, Ok):
            return result

        error = result.error
        if attempt < attempts - 1 and _is_transient_gh_error(error):
            sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
            continue

        return Err(ReleaseError(kind=kind, message=message, hint=error.stderr.strip() or None))

    return Err(ReleaseError(kind=kind, message=message))


def run_gh_write(
    ctx: GhContext,
    *,
    cmd: list[str],
    message: str,
    timeout: float = GH_TIMEOUT_SECONDS,
) -> Result[str, ReleaseError]:
    # Writes are not retried: a timeout may still have been applied remotely.
    result = run_process(cmd, cwd=ctx.workspace_root, env=ctx.env(), timeout=timeout)
    if isinstance(result, Err):
        e = result.error
        return Err(ReleaseError(kind="gh_failed", message=message, hint=e.stderr.strip() or None))
    return result


def _api_cmd(
    endpoint: str,
    *,
    method: str,
    fields: dict[str, str] | None = None,
    typed_fields: dict[str, str] | None = None,
) -> list[str]:
    cmd = ["gh", "api", endpoint]
    if method != "GET":
        cmd.extend(["--method", method])
    for k, v in (fields or {}).items():
        cmd.extend(["-f", f"{k}={v}"])
    # -F converts true/false/integers to JSON types.
    for k, v in (typed_fields or {}).items():
        cmd.extend(["-F", f"{k}={v}"])
    return cmd


def _parse_json(text: str, *, what: str) -> Result[object, ReleaseError]:
    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(kind="gh_failed", message=f"gh api returned invalid JSON: {e}", hint=what)
        )
    return Ok(obj)


def gh_api_json(
    ctx: GhContext,
    *,
    endpoint: str,
    method: str = "GET",
    fields: dict[str, str] | None = None,
    typed_fields: dict[str, str] | None = None,
) -> Result[object, ReleaseError]:
    cmd = _api_cmd(endpoint, method=method, fields=fields, typed_fields=typed_fields)
    message = f"gh api failed: {method} {endpoint}"
    if method == "GET":
        result = run_gh_read(ctx, cmd=cmd, message=message)
    else:
        result = run_gh_write(ctx, cmd=cmd, message=message)
    if isinstance(result, Err):
        return result

    if not result.value.strip():
        return Ok(None)
    return _parse_json(result.value, what=endpoint)


def _parse_release(obj: object, *, what: str) -> Result[DraftRelease, ReleaseError]:
    data = as_str_dict(obj)
    if data is None:
        return Err(ReleaseError(kind="gh_failed", message=f"unexpected release payload: {what}"))

    release_id = get_int(data, "id")
    html_url = get_str(data, "html_url")
    if release_id is None or html_url is None:
        return Err(
            ReleaseError(kind="gh_failed", message=f"release payload missing id/html_url: {what}")
        )

    body = data.get("body")
    return Ok(
        DraftRelease(
            id=release_id,
            tag_name=get_str(data, "tag_name") or "",
            html_url=html_url,
            body=body if isinstance(body, str) else "",
        )
    )


def create_draft_release(
    ctx: GhContext,
    *,
    version: str,
    target: str,
    name: str | None = None,
) -> Result[DraftRelease, ReleaseError]:
    fields = {"tag_name": version, "target_commitish": target, "name": name or version}
    obj = gh_api_json(
        ctx,
        endpoint=f"repos/{ctx.repo.slug}/releases",
        method="POST",
        fields=fields,
        typed_fields={"draft": "true", "generate_release_notes": "true"},
    )
    if isinstance(obj, Err):
        return obj
    return _parse_release(obj.value, what=version)


def get_release(ctx: GhContext, *, release_id: int) -> Result[object, ReleaseError]:
    return gh_api_json(ctx, endpoint=f"repos/{ctx.repo.slug}/releases/{release_id}")


def publish_release(ctx: GhContext, *, release_id: int) -> Result[PublishedRelease, ReleaseError]:
    obj = gh_api_json(
        ctx,
        endpoint=f"repos/{ctx.repo.slug}/releases/{release_id}",
        method="PATCH",
        typed_fields={"draft": "false"},
    )
    if isinstance(obj, Err):
        return obj

    parsed = _parse_release(obj.value, what=str(release_id))
    if isinstance(parsed, Err):
        return parsed
    r = parsed.value
    return Ok(PublishedRelease(id=r.id, html_url=r.html_url, body=r.body))


def delete_release(ctx: GhContext, *, release_id: int) -> Result[None, ReleaseError]:
    result = gh_api_json(
        ctx,
        endpoint=f"repos/{ctx.repo.slug}/releases/{release_id}",
        method="DELETE",
    )
    if isinstance(result, Err):
        return result
    return Ok(None)


def create_pull_request(
    ctx: GhContext,
    *,
    head: str,
    base: str,
    title: str,
    body: str,
) -> Result[str, ReleaseError]:
    obj = gh_api_json(
        ctx,
        endpoint=f"repos/{ctx.repo.slug}/pulls",
        method="POST",
        fields={"head": head, "base": base, "title": title, "body": body},
    )
    if isinstance(obj, Err):
        return obj

    data = as_str_dict(obj.value)
    url = get_str(data, "html_url") if data is not None else None
    if url is None:
        return Err(
            ReleaseError(kind="gh_failed", message="unexpected pull request payload", hint=head)
        )
    return Ok(url)


def upload_release_asset(
    ctx: GhContext,
    *,
    release: DraftRelease,
    path: Path,
    label: str,
) -> Result[Artifact, ReleaseError]:
    uploaded = run_gh_write(
        ctx,
        cmd=[
            "gh",
            "release",
            "upload",
            release.tag_name,
            f"{path}#{label}",
            "--repo",
            ctx.repo.slug,
            "--clobber",
        ],
        message=f"failed to upload {path.name} to release {release.tag_name}",
        timeout=GH_UPLOAD_TIMEOUT_SECONDS,
    )
    if isinstance(uploaded, Err):
        return uploaded

    obj = get_release(ctx, release_id=release.id)
    if isinstance(obj, Err):
        return obj

    data = as_str_dict(obj.value) or {}
    for item in as_obj_list(data.get("assets")) or []:
        asset = as_str_dict(item)
        if asset is None or get_str(asset, "name") != path.name:
            continue
        url = get_str(asset, "browser_download_url")
        if url is not None:
            return Ok(Artifact(url=url, label=get_str(asset, "label") or label))

    return Err(
        ReleaseError(
            kind="gh_failed",
            message=f"uploaded asset not found on release: {path.name}",
            hint=release.html_url,
        )
    )


def linked_issues(
    ctx: GhContext,
    *,
    owner: str,
    repo: str,
    pr_number: int,
) -> Result[list[IssueRef], ReleaseError]:
    """Issues a PR closes, from its closing references."""
    cmd = _api_cmd(
        "graphql",
        method="GET",
        fields={"query": _LINKED_ISSUES_QUERY, "repoOwner": owner, "repoName": repo},
        typed_fields={"prNumber": str(pr_number)},
    )
    # A graphql query is a POST for gh but it is still a read.
    result = run_gh_read(
        ctx,
        cmd=cmd,
        message=f"failed to query linked issues of {owner}/{repo}#{pr_number}",
    )
    if isinstance(result, Err):
        return result

    obj = _parse_json(result.value, what="graphql")
    if isinstance(obj, Err):
        return obj

    data = get_table(as_str_dict(obj.value) or {}, "data") or {}
    repository = get_table(data, "repository") or {}
    pull_request = get_table(repository, "pullRequest") or {}
    refs = get_table(pull_request, "closingIssuesReferences") or {}

    out: list[IssueRef] = []
    for item in as_obj_list(refs.get("nodes")) or []:
        node = as_str_dict(item)
        if node is None:
            continue
        number = get_int(node, "number")
        if number is not None:
            out.append(IssueRef(owner=owner, repo=repo, number=number))
    return Ok(out)


def create_issue_comment(
    ctx: GhContext, *, issue: IssueRef, body: str
) -> Result[None, ReleaseError]:
    result = gh_api_json(
        ctx,
        endpoint=f"repos/{issue.owner}/{issue.repo}/issues/{issue.number}/comments",
        method="POST",
        fields={"body": body},
    )
    if isinstance(result, Err):
        return result
    return Ok(None)
