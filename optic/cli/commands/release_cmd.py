from __future__ import annotations

from typing import NoReturn

import typer

from optic.cli.context import CLIContext, build_context
from optic.core.errors import ErrorCode
from optic.core.result import Err
from optic.services.release.errors import ReleaseError, ReleaseErrorKind
from optic.services.release.event import EventContext, load_event_context
from optic.services.release.finalize import finalize_release
from optic.services.release.gh import GhContext
from optic.services.release.open_pr import open_release_pr

_EXIT_CODES: dict[ReleaseErrorKind, ErrorCode] = {
    "invalid_input": ErrorCode.USER_ERROR,
    "invalid_event": ErrorCode.ENV_ERROR,
    "git_failed": ErrorCode.RELEASE_ERROR,
    "gh_failed": ErrorCode.NETWORK_ERROR,
    "npm_failed": ErrorCode.RELEASE_ERROR,
    "artifact_failed": ErrorCode.IO_ERROR,
    "otp_failed": ErrorCode.NETWORK_ERROR,
}


def exit_code_for(error: ReleaseError) -> ErrorCode:
    return _EXIT_CODES.get(error.kind, ErrorCode.RELEASE_ERROR)


def _fail(ctx: CLIContext, error: ReleaseError) -> NoReturn:
    ctx.console.error(error.pretty())
    raise typer.Exit(code=int(exit_code_for(error)))


def _event(ctx: CLIContext) -> EventContext:
    event = load_event_context(ctx.environ)
    if isinstance(event, Err):
        _fail(ctx, event.error)
    return event.value


def _gh(ctx: CLIContext, event: EventContext) -> GhContext:
    return GhContext(
        workspace_root=ctx.workspace_root,
        repo=event.repo,
        token=ctx.inputs.github_token,
    )


def _open_pr(ctx: CLIContext, event: EventContext) -> None:
    result = open_release_pr(
        repo_root=ctx.workspace_root,
        gh=_gh(ctx, event),
        event=event,
        inputs=ctx.inputs,
        console=ctx.console,
    )
    if isinstance(result, Err):
        _fail(ctx, result.error)
    ctx.console.header("Finished!")


def _release(ctx: CLIContext, event: EventContext) -> None:
    result = finalize_release(
        repo_root=ctx.workspace_root,
        gh=_gh(ctx, event),
        event=event,
        inputs=ctx.inputs,
        console=ctx.console,
    )
    if isinstance(result, Err):
        _fail(ctx, result.error)

    report = result.value
    if report.failures:
        # Already reported as they happened.
        raise typer.Exit(code=int(exit_code_for(report.failures[0])))
    if report.release_url is not None:
        ctx.console.header("Released!")


def run() -> None:
    """Dispatch on the triggering GitHub event."""
    ctx = build_context()
    event = _event(ctx)

    match event.event_name:
        case "workflow_dispatch":
            _open_pr(ctx, event)
        case "pull_request":
            _release(ctx, event)
        case other:
            ctx.console.error(f"Unsupported event: {other}")
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))


def open_pr() -> None:
    """Bump the version and open a release PR."""
    ctx = build_context()
    _open_pr(ctx, _event(ctx))


def release() -> None:
    """Finalize the release of a closed release PR."""
    ctx = build_context()
    _release(ctx, _event(ctx))
