"""Release PR body.

The body ends with a `<release-meta>` block holding the JSON that the
finalize step reads back. It must never contain secrets.
"""

from __future__ import annotations

import json

from optic.core.result import Err, Ok, Result
from optic.core.structured import as_str_dict, get_int, get_str
from optic.services.release.errors import ReleaseError
from optic.services.release.model import Artifact, DraftRelease, ReleaseMeta
from optic.services.release.version import parse_semver

MAX_BODY_LENGTH = 65_536
META_OPEN = "<release-meta>"
META_CLOSE = "</release-meta>"
_TRUNCATED_NOTE = "\n\n_Release notes truncated; see the draft release for the full text._"


def tags_to_update(version: str) -> list[str]:
    """Floating tags moved by a release: `v<major>` and `v<major>.<minor>`.

    Zero components are skipped (0.x releases do not move `v0`).
    """
    parsed = parse_semver(version)
    if parsed is None:
        return []

    major, minor, _ = parsed
    tags: list[str] = []
    if major != 0:
        tags.append(f"v{major}")
    if minor != 0:
        tags.append(f"v{major}.{minor}")
    return tags


def meta_to_json(meta: ReleaseMeta) -> str:
    data: dict[str, object] = {"id": meta.id, "version": meta.version}
    optional = {
        "npmTag": meta.npm_tag,
        "monorepoPackage": meta.monorepo_package,
        "monorepoRoot": meta.monorepo_root,
        "opticUrl": meta.optic_url,
    }
    data.update({k: v for k, v in optional.items() if v is not None})
    return json.dumps(data)


def _sections(
    *,
    meta: ReleaseMeta,
    draft: DraftRelease,
    notes: str,
    npm_publish: bool,
    sync_tags: bool,
    artifact: Artifact | None,
    author: str | None,
) -> list[str]:
    lines: list[str] = []
    lines.append(f"## Optic release PR for {meta.version}")
    lines.append("")
    lines.append(f"Merging this PR will publish the [draft release]({draft.html_url}).")
    lines.append("")

    if npm_publish:
        tag = meta.npm_tag or "latest"
        lines.append(f"- The package will be published to npm with the `{tag}` tag.")
    else:
        lines.append("- No `npm-token` was provided: the package will not be published to npm.")

    tags = tags_to_update(meta.version)
    if sync_tags and tags:
        lines.append(f"- These tags will be updated to point to this release: {', '.join(tags)}")

    if artifact is not None:
        lines.append(f"- Attached artifact: [{artifact.label}]({artifact.url})")

    lines.append("")
    lines.append("Closing this PR without merging deletes the draft release.")
    if author:
        lines.append("")
        lines.append(f"Release PR requested by @{author}.")

    lines.append("")
    lines.append("## Release notes")
    lines.append("")
    lines.append(notes.rstrip())
    return lines


def render_pr_body(
    *,
    meta: ReleaseMeta,
    draft: DraftRelease,
    npm_publish: bool,
    sync_tags: bool,
    artifact: Artifact | None = None,
    author: str | None = None,
    max_length: int = MAX_BODY_LENGTH,
) -> str:
    meta_block = f"\n\n{META_OPEN}{meta_to_json(meta)}{META_CLOSE}\n"

    def render(notes: str) -> str:
        body = "\n".join(
            _sections(
                meta=meta,
                draft=draft,
                notes=notes,
                npm_publish=npm_publish,
                sync_tags=sync_tags,
                artifact=artifact,
                author=author,
            )
        )
        return body + meta_block

    notes = draft.body
    body = render(notes)
    overflow = len(body) - (max_length - 1)
    if overflow <= 0:
        return body

    keep = max(0, len(notes) - overflow - len(_TRUNCATED_NOTE))
    return render(notes[:keep] + _TRUNCATED_NOTE)


def parse_release_meta(body: str) -> Result[ReleaseMeta, ReleaseError]:
    start = body.find(META_OPEN)
    end = body.rfind(META_CLOSE)
    if start < 0 or end < start:
        return Err(
            ReleaseError(
                kind="invalid_event",
                message="release PR body has no release metadata",
                hint=f"Expected {META_OPEN}...{META_CLOSE}.",
            )
        )

    raw = body[start + len(META_OPEN) : end]
    try:
        obj: object = json.loads(raw)
    except json.JSONDecodeError as e:
        return Err(ReleaseError(kind="invalid_event", message=f"invalid release metadata: {e}"))

    data = as_str_dict(obj)
    release_id = get_int(data, "id") if data is not None else None
    version = get_str(data, "version") if data is not None else None
    if data is None or release_id is None or version is None:
        return Err(
            ReleaseError(kind="invalid_event", message="release metadata needs id and version")
        )

    return Ok(
        ReleaseMeta(
            id=release_id,
            version=version,
            npm_tag=get_str(data, "npmTag"),
            monorepo_package=get_str(data, "monorepoPackage"),
            monorepo_root=get_str(data, "monorepoRoot"),
            optic_url=get_str(data, "opticUrl"),
        )
    )
