from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import typer

from optic.core.config import ActionInputs, load_inputs
from optic.core.errors import ErrorCode
from optic.core.result import Err
from optic.output.console import ActionsConsole, ConsoleProtocol, RichConsole

CONFIG_ENV_VAR = "OPTIC_CONFIG"


@dataclass(frozen=True, slots=True)
class CLIContext:
    workspace_root: Path
    inputs: ActionInputs
    environ: Mapping[str, str]
    console: ConsoleProtocol


def make_console(environ: Mapping[str, str], *, stderr: bool = False) -> ConsoleProtocol:
    if environ.get("GITHUB_ACTIONS") == "true":
        return ActionsConsole(stderr=stderr)
    return RichConsole(stderr=stderr)


def build_context(*, stderr: bool = False) -> CLIContext:
    """Load inputs and pick a console.

    `stderr=True` keeps stdout free for a command's machine-readable result.
    """
    environ = dict(os.environ)
    config = environ.get(CONFIG_ENV_VAR)
    config_path = Path(config) if config else None

    inputs_result = load_inputs(environ=environ, config_path=config_path)
    if isinstance(inputs_result, Err):
        e = inputs_result.error
        where = f" ({e.path})" if e.path is not None else ""
        typer.echo(f"error: {e.message}{where}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        workspace_root=Path(environ.get("GITHUB_WORKSPACE") or Path.cwd()),
        inputs=inputs_result.value,
        environ=environ,
        console=make_console(environ, stderr=stderr),
    )
