"""Typed action inputs.

Inputs use the hyphenated names of the action manifest (`npm-token`,
`sync-semver-tags`, ...). They are merged from an optional TOML file and the
`INPUT_*` environment variables exported by the GitHub Actions runner.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_table

__all__ = [
    "ActionInputs",
    "ConfigError",
    "DEFAULT_COMMIT_MESSAGE",
    "DEFAULT_OPTIC_URL",
    "OTP_TIMEOUT_SECONDS",
    "inputs_from_env",
    "load_config",
    "load_inputs",
]

DEFAULT_OPTIC_URL = "https://optic-zf3votdk5a-ew.a.run.app/api/generate/"
DEFAULT_COMMIT_MESSAGE = "Release {version}"

# 5 minutes for a human to type the code.
OTP_TIMEOUT_SECONDS = 300.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


def _truthy(value: str | None) -> bool:
    return value is not None and value.strip().lower() == "true"


def _text(data: Mapping[str, str], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True, slots=True)
class ActionInputs:
    """Inputs of the release action."""

    github_token: str | None = None
    npm_token: str | None = None
    optic_token: str | None = None
    optic_url: str = DEFAULT_OPTIC_URL
    npm_tag: str = "latest"
    semver: str = "patch"
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    version_prefix: str = "v"
    sync_semver_tags: bool = False
    notify_linked_issues: bool = True
    artifact_path: str | None = None
    monorepo_package: str | None = None
    monorepo_root: str = "packages"
    revert_commit_after_failure: bool = False
    release_artifact_build_folder: str | None = None
    collect_otp: bool = False
    otp_host: str = "127.0.0.1"
    otp_port: int = 0
    otp_base_url: str | None = None
    otp_timeout: float = OTP_TIMEOUT_SECONDS

    @classmethod
    def from_mapping(cls, data: Mapping[str, str]) -> ActionInputs:
        """Build inputs from hyphenated string values.

        Raises:
            ValueError: If a numeric input cannot be parsed.
        """
        otp_port = _text(data, "otp-port")
        otp_timeout = _text(data, "otp-timeout")
        notify = _text(data, "notify-linked-issues")

        return cls(
            github_token=_text(data, "github-token"),
            npm_token=_text(data, "npm-token"),
            optic_token=_text(data, "optic-token"),
            optic_url=_text(data, "optic-url") or DEFAULT_OPTIC_URL,
            npm_tag=_text(data, "npm-tag") or "latest",
            semver=_text(data, "semver") or "patch",
            commit_message=_text(data, "commit-message") or DEFAULT_COMMIT_MESSAGE,
            # An empty prefix is legitimate, so only a missing key falls back.
            version_prefix=data.get("version-prefix", "v").strip(),
            sync_semver_tags=_truthy(data.get("sync-semver-tags")),
            notify_linked_issues=True if notify is None else _truthy(notify),
            artifact_path=_text(data, "artifact-path"),
            monorepo_package=_text(data, "monorepo-package"),
            monorepo_root=_text(data, "monorepo-root") or "packages",
            revert_commit_after_failure=_truthy(data.get("revert-commit-after-failure")),
            release_artifact_build_folder=_text(data, "release-artifact-build-folder"),
            collect_otp=_truthy(data.get("collect-otp")),
            otp_host=_text(data, "otp-host") or "127.0.0.1",
            otp_port=int(otp_port) if otp_port is not None else 0,
            otp_base_url=_text(data, "otp-base-url"),
            otp_timeout=float(otp_timeout) if otp_timeout is not None else OTP_TIMEOUT_SECONDS,
        )


def inputs_from_env(environ: Mapping[str, str]) -> dict[str, str]:
    """Collect `INPUT_<NAME>` variables as hyphenated lowercase input names.

    The runner upper-cases input names and replaces spaces with underscores,
    but keeps hyphens (`INPUT_NPM-TOKEN`).
    """
    out: dict[str, str] = {}
    for key, value in environ.items():
        if not key.startswith("INPUT_"):
            continue
        name = key.removeprefix("INPUT_").lower().replace("_", "-")
        if name:
            out[name] = value
    return out


def _stringify(table: StrDict) -> dict[str, str]:
    out: dict[str, str] = {}
    for key, value in table.items():
        if isinstance(value, bool):
            out[key] = "true" if value else "false"
        elif isinstance(value, (str, int, float)):
            out[key] = str(value)
    return out


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[dict[str, str], ConfigError]:
    """Read the `[inputs]` table of a TOML file as raw input values."""
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    inputs = get_table(result.value, "inputs")
    if inputs is None:
        return Err(ConfigError("Missing [inputs] table", path=path))
    return Ok(_stringify(inputs))


def load_inputs(
    *,
    environ: Mapping[str, str],
    config_path: Path | None = None,
) -> Result[ActionInputs, ConfigError]:
    """Merge TOML inputs (if any) with `INPUT_*` variables, env winning."""
    merged: dict[str, str] = {}
    if config_path is not None:
        file_inputs = load_config(config_path)
        if isinstance(file_inputs, Err):
            return file_inputs
        merged.update(file_inputs.value)

    merged.update(inputs_from_env(environ))

    try:
        return Ok(ActionInputs.from_mapping(merged))
    except ValueError as e:
        return Err(ConfigError(f"Invalid input value: {e}", path=config_path))
