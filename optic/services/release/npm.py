"""npm publishing.

When the package requires two-factor auth the one-time passcode comes from
one of two places: the optic service (`optic-token` set) or a human typing it
into the local OTP collector (`collect-otp: true`).
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path

import httpx

from optic.core.config import ActionInputs
from optic.core.result import Err, Ok, Result
from optic.core.structured import as_obj_list, as_str_dict, get_str
from optic.output.console import ConsoleProtocol, Style
from optic.platform.process import run as run_process
from optic.services.otp import OtpRequest, OtpSettings, collect_otp
from optic.services.release.errors import ReleaseError
from optic.services.release.timeouts import NPM_TIMEOUT_SECONDS, OPTIC_HTTP_TIMEOUT_SECONDS

NPM_REGISTRY_AUTH_KEY = "//registry.npmjs.org/:_authToken"


def _npm(
    args: list[str],
    *,
    pkg_dir: Path,
    message: str,
) -> Result[str, ReleaseError]:
    result = run_process(["npm", *args], cwd=pkg_dir, timeout=NPM_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        e = result.error
        return Err(ReleaseError(kind="npm_failed", message=message, hint=e.stderr.strip() or None))
    return result


def configure_token(*, pkg_dir: Path, npm_token: str) -> Result[None, ReleaseError]:
    result = _npm(
        ["config", "set", f"{NPM_REGISTRY_AUTH_KEY}={npm_token}"],
        pkg_dir=pkg_dir,
        message="failed to configure the npm token",
    )
    if isinstance(result, Err):
        return result
    return Ok(None)


def is_published(*, pkg_dir: Path, name: str, version: str) -> bool:
    """True when the registry already lists `name@version`.

    Any lookup failure (including "not found") counts as not published.
    """
    result = run_process(
        ["npm", "view", f"{name}@{version}", "version", "--json"],
        cwd=pkg_dir,
        timeout=NPM_TIMEOUT_SECONDS,
    )
    if isinstance(result, Err) or not result.value.strip():
        return False

    try:
        obj: object = json.loads(result.value)
    except json.JSONDecodeError:
        return False

    listed = as_obj_list(obj) or [obj]
    return version in listed


def fetch_optic_otp(
    *,
    optic_url: str,
    optic_token: str,
    package_name: str,
    package_version: str,
    transport: httpx.BaseTransport | None = None,
) -> Result[str, ReleaseError]:
    """Ask the optic service for a passcode (it pushes a prompt to the maintainer)."""
    url = f"{optic_url}{optic_token}"
    try:
        with httpx.Client(timeout=OPTIC_HTTP_TIMEOUT_SECONDS, transport=transport) as client:
            response = client.get(url, params={"name": package_name, "version": package_version})
            response.raise_for_status()
            obj: object = response.json()
    except httpx.HTTPStatusError as e:
        return Err(
            ReleaseError(
                kind="otp_failed",
                message=f"optic service answered HTTP {e.response.status_code}",
                hint="Check optic-token and optic-url.",
            )
        )
    except httpx.HTTPError as e:
        # The token is part of the URL; keep it out of the message.
        return Err(
            ReleaseError(kind="otp_failed", message=f"optic request failed: {type(e).__name__}")
        )
    except json.JSONDecodeError:
        return Err(ReleaseError(kind="otp_failed", message="optic service returned invalid JSON"))

    data = as_str_dict(obj) or {}
    otp = get_str(data, "otp")
    if otp is None:
        return Err(ReleaseError(kind="otp_failed", message="optic service returned no OTP"))
    return Ok(otp)


def collect_otp_locally(
    *,
    inputs: ActionInputs,
    package_name: str,
    package_version: str,
    console: ConsoleProtocol,
) -> Result[str, ReleaseError]:
    request = OtpRequest(
        package_name=package_name,
        package_version=package_version,
        base_url=inputs.otp_base_url,
    )
    settings = OtpSettings(
        host=inputs.otp_host,
        port=inputs.otp_port,
        timeout_seconds=inputs.otp_timeout,
    )
    result = asyncio.run(collect_otp(request, console=console, settings=settings))
    if isinstance(result, Err):
        return Err(
            ReleaseError(kind="otp_failed", message=result.error.message, hint=result.error.hint)
        )
    return result


def resolve_otp(
    *,
    inputs: ActionInputs,
    optic_url: str | None,
    package_name: str,
    package_version: str,
    console: ConsoleProtocol,
) -> Result[str | None, ReleaseError]:
    """Passcode for `npm publish --otp`, or None when no OTP source is configured."""
    if inputs.optic_token:
        console.print("Requesting OTP from optic", Style.DIM)
        return fetch_optic_otp(
            optic_url=optic_url or inputs.optic_url,
            optic_token=inputs.optic_token,
            package_name=package_name,
            package_version=package_version,
        )
    if inputs.collect_otp:
        return collect_otp_locally(
            inputs=inputs,
            package_name=package_name,
            package_version=package_version,
            console=console,
        )
    return Ok(None)


def publish_to_npm(
    *,
    pkg_dir: Path,
    package_name: str,
    version: str,
    npm_tag: str,
    npm_token: str,
    otp_source: Callable[[], Result[str | None, ReleaseError]],
    console: ConsoleProtocol,
) -> Result[bool, ReleaseError]:
    """Publish the package. Returns False when the version was already on npm."""
    configured = configure_token(pkg_dir=pkg_dir, npm_token=npm_token)
    if isinstance(configured, Err):
        return configured

    bare = version.lstrip("v")
    if is_published(pkg_dir=pkg_dir, name=package_name, version=bare):
        console.warning(f"{package_name}@{bare} is already published; skipping npm publish")
        return Ok(False)

    otp = otp_source()
    if isinstance(otp, Err):
        return otp

    args = ["publish", "--tag", npm_tag]
    if otp.value:
        args.extend(["--otp", otp.value])

    console.info(f"Publishing {package_name}@{bare} with tag {npm_tag}")
    published = _npm(args, pkg_dir=pkg_dir, message=f"npm publish of {package_name}@{bare} failed")
    if isinstance(published, Err):
        return published
    console.success(f"Published {package_name}@{bare}")
    return Ok(True)
