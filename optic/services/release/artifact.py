from __future__ import annotations

import tempfile
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipFile

from optic.core.result import Err, Ok, Result
from optic.output.console import ConsoleProtocol
from optic.services.release.errors import ReleaseError
from optic.services.release.gh import GhContext, upload_release_asset
from optic.services.release.model import Artifact, DraftRelease


def _collect_files(src: Path) -> list[tuple[Path, str]]:
    if src.is_file():
        return [(src, src.name)]
    return [(p, p.relative_to(src).as_posix()) for p in sorted(src.rglob("*")) if p.is_file()]


def zip_path(src: Path, zip_file: Path) -> Result[Path, ReleaseError]:
    """Archive a file or a directory tree (relative paths) into `zip_file`."""
    if not src.exists():
        return Err(
            ReleaseError(
                kind="artifact_failed",
                message=f"artifact path does not exist: {src}",
                hint="Check artifact-path / release-artifact-build-folder.",
            )
        )

    try:
        zip_file.parent.mkdir(parents=True, exist_ok=True)
        # ZIP cannot store pre-1980 mtimes; build outputs sometimes have mtime=0.
        with ZipFile(zip_file, "w", compression=ZIP_DEFLATED, strict_timestamps=False) as zf:
            for path, arc in _collect_files(src):
                zf.write(path, arcname=arc)
    except OSError as e:
        return Err(
            ReleaseError(kind="artifact_failed", message=f"failed to zip {src}: {e}", hint=str(src))
        )
    return Ok(zip_file)


def attach_artifact(
    ctx: GhContext,
    *,
    release: DraftRelease,
    src: Path,
    filename: str,
    label: str,
    console: ConsoleProtocol,
) -> Result[Artifact, ReleaseError]:
    """Zip `src` as `filename` and upload it to the release."""
    with tempfile.TemporaryDirectory(prefix="optic-artifact-") as tmp:
        zipped = zip_path(src, Path(tmp) / filename)
        if isinstance(zipped, Err):
            return zipped

        console.info(f"Uploading {filename} to release {release.tag_name}")
        return upload_release_asset(ctx, release=release, path=zipped.value, label=label)
