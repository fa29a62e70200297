"""GitHub Actions event context.

The runner describes the triggering event through `GITHUB_*` variables and a
JSON payload file at `GITHUB_EVENT_PATH`.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from optic.core.result import Err, Ok, Result
from optic.core.structured import StrDict, as_str_dict, get_bool, get_int, get_str, get_table
from optic.services.release.errors import ReleaseError
from optic.services.release.model import RepoRef


@dataclass(frozen=True, slots=True)
class PullRequestInfo:
    number: int
    title: str
    body: str
    merged: bool
    author_login: str | None
    base_ref: str | None


@dataclass(frozen=True, slots=True)
class EventContext:
    event_name: str
    action: str | None
    repo: RepoRef
    actor: str | None
    ref: str | None
    pull_request: PullRequestInfo | None


def _parse_pull_request(data: StrDict) -> PullRequestInfo | None:
    number = get_int(data, "number")
    if number is None:
        return None

    user = get_table(data, "user") or {}
    base = get_table(data, "base") or {}
    # title/body may legitimately be blank; keep them verbatim.
    title = data.get("title")
    body = data.get("body")
    return PullRequestInfo(
        number=number,
        title=title if isinstance(title, str) else "",
        body=body if isinstance(body, str) else "",
        merged=get_bool(data, "merged") or False,
        author_login=get_str(user, "login"),
        base_ref=get_str(base, "ref"),
    )


def parse_event(
    *,
    event_name: str,
    repository: str,
    payload: StrDict,
    actor: str | None = None,
) -> Result[EventContext, ReleaseError]:
    repo = RepoRef.parse(repository)
    if repo is None:
        return Err(
            ReleaseError(
                kind="invalid_event",
                message=f"invalid repository slug: {repository!r}",
                hint="Expected owner/name (GITHUB_REPOSITORY).",
            )
        )

    pr_data = get_table(payload, "pull_request")
    pull_request = _parse_pull_request(pr_data) if pr_data is not None else None

    # workflow_dispatch carries the dispatched ref in the payload.
    return Ok(
        EventContext(
            event_name=event_name,
            action=get_str(payload, "action"),
            repo=repo,
            actor=actor,
            ref=get_str(payload, "ref"),
            pull_request=pull_request,
        )
    )


def load_event_context(environ: Mapping[str, str]) -> Result[EventContext, ReleaseError]:
    event_name = environ.get("GITHUB_EVENT_NAME", "").strip()
    repository = environ.get("GITHUB_REPOSITORY", "").strip()
    event_path = environ.get("GITHUB_EVENT_PATH", "").strip()
    if not event_name or not repository or not event_path:
        return Err(
            ReleaseError(
                kind="invalid_event",
                message="missing GitHub Actions event context",
                hint="GITHUB_EVENT_NAME, GITHUB_REPOSITORY and GITHUB_EVENT_PATH must be set.",
            )
        )

    path = Path(event_path)
    try:
        obj: object = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(
            ReleaseError(
                kind="invalid_event",
                message=f"failed to read event payload: {e}",
                hint=str(path),
            )
        )
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(
                kind="invalid_event",
                message=f"invalid event payload JSON: {e}",
                hint=str(path),
            )
        )

    payload = as_str_dict(obj)
    if payload is None:
        return Err(
            ReleaseError(kind="invalid_event", message="event payload must be a JSON object")
        )

    ctx = parse_event(
        event_name=event_name,
        repository=repository,
        payload=payload,
        actor=environ.get("GITHUB_ACTOR") or None,
    )
    if isinstance(ctx, Err):
        return ctx

    if ctx.value.ref is None and environ.get("GITHUB_REF"):
        return Ok(replace(ctx.value, ref=environ["GITHUB_REF"]))
    return ctx
