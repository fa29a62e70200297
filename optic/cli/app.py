from __future__ import annotations

import os
from pathlib import Path

import typer

from optic import __version__
from optic.cli.commands.otp_cmd import otp
from optic.cli.commands.release_cmd import open_pr, release, run
from optic.cli.context import CONFIG_ENV_VAR
from optic.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(run)
app.command("open-pr")(open_pr)
app.command()(release)
app.command()(otp)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="TOML file with an [inputs] table (INPUT_* variables win).",
    ),
) -> None:
    if config is not None:
        path = config.expanduser()
        if not path.is_file():
            typer.echo(f"error: --config '{path}' is not a file", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
        os.environ[CONFIG_ENV_VAR] = str(path)


def main() -> None:
    app()
