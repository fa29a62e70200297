from __future__ import annotations

VERSION_PLACEHOLDER = "{version}"


def transform_commit_message(
    template: str, version: str, monorepo_package: str | None = None
) -> str:
    """Render the release commit message.

    `{version}` is replaced everywhere it appears; monorepo releases are
    prefixed with the package name so history stays readable.
    """
    message = template.replace(VERSION_PLACEHOLDER, version).strip()
    if monorepo_package:
        return f"{monorepo_package}: {message}"
    return message
