from __future__ import annotations

import asyncio

import typer

from optic.cli.context import build_context
from optic.core.errors import ErrorCode
from optic.core.result import Err
from optic.services.otp import OtpRequest, OtpSettings, collect_otp


def otp(
    name: str = typer.Option(..., "--name", help="Package name shown on the form."),
    version: str = typer.Option(..., "--version", help="Package version shown on the form."),
    host: str | None = typer.Option(None, "--host", help="Interface to listen on."),
    port: int | None = typer.Option(None, "--port", help="Port to listen on (0 = any)."),
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        help="Externally reachable URL of the form, for display.",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        min=0.1,
        help="Seconds to wait for a submission.",
    ),
) -> None:
    """Serve the OTP form once and print the submitted code."""
    ctx = build_context(stderr=True)
    inputs = ctx.inputs

    request = OtpRequest(
        package_name=name,
        package_version=version,
        base_url=base_url or inputs.otp_base_url,
    )
    settings = OtpSettings(
        host=host or inputs.otp_host,
        port=port if port is not None else inputs.otp_port,
        timeout_seconds=timeout if timeout is not None else inputs.otp_timeout,
    )

    result = asyncio.run(collect_otp(request, console=ctx.console, settings=settings))
    if isinstance(result, Err):
        ctx.console.error(result.error.pretty())
        code = ErrorCode.USER_ERROR
        if result.error.kind == "startup_failed":
            code = ErrorCode.ENV_ERROR
        raise typer.Exit(code=int(code))

    # Progress went to stderr; stdout carries only the code.
    typer.echo(result.value)
