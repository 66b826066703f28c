"""Release archive packaging.

Design goals:

- Deterministic file names: ``{project}-{version}-{platform}.zip``
- Flat archives: every binary sits at the archive root
- Reproducible content: sorted entries, fixed timestamps and modes, so
  repackaging the same artifacts yields the same archive
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Iterable, Sequence
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipFile, ZipInfo

from relpipe.core.result import Err, Ok, Result
from relpipe.pipeline.errors import PackagingFailure
from relpipe.pipeline.model import BuildArtifact, Platform, ReleaseArchive

ARCHIVE_EXT = "zip"

# ZIP cannot represent timestamps before 1980.
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_ENTRY_MODE = 0o755


def archive_name(project: str, version: str, platform: Platform) -> str:
    return f"{project}-{version}-{platform}.{ARCHIVE_EXT}"


def _write_zip(zip_path: Path, *, files: list[tuple[Path, str]]) -> None:
    zip_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = zip_path.with_name(f".{zip_path.name}.tmp")
    try:
        with ZipFile(tmp, "w", compression=ZIP_DEFLATED) as zf:
            for src, arc in files:
                info = ZipInfo(arc, date_time=_FIXED_DATE_TIME)
                info.compress_type = ZIP_DEFLATED
                info.external_attr = (_ENTRY_MODE & 0xFFFF) << 16
                with src.open("rb") as fin, zf.open(info, "w") as fout:
                    shutil.copyfileobj(fin, fout, 1024 * 1024)
        os.replace(tmp, zip_path)
    finally:
        tmp.unlink(missing_ok=True)


def package(
    platform: Platform,
    artifacts: Iterable[BuildArtifact],
    *,
    out_dir: Path,
    project: str,
    version: str,
) -> Result[ReleaseArchive, PackagingFailure]:
    """Zip every artifact recorded for ``platform`` into one release archive."""
    entries: dict[str, Path] = {}
    for artifact in artifacts:
        if artifact.platform != platform:
            continue
        arc = artifact.binary_path.name
        if arc in entries and entries[arc] != artifact.binary_path:
            return Err(
                PackagingFailure(platform=platform, cause=f"duplicate archive entry: {arc}")
            )
        entries[arc] = artifact.binary_path

    if not entries:
        return Err(PackagingFailure(platform=platform, cause="no build artifacts"))

    name = archive_name(project, version, platform)
    path = out_dir / name
    try:
        _write_zip(path, files=[(entries[arc], arc) for arc in sorted(entries)])
    except OSError as e:
        return Err(PackagingFailure(platform=platform, cause=f"cannot write {name}: {e}"))

    return Ok(ReleaseArchive(platform=platform, path=path, name=name))


def package_all(
    platforms: Sequence[Platform],
    artifacts: Sequence[BuildArtifact],
    *,
    out_dir: Path,
    project: str,
    version: str,
) -> Result[tuple[ReleaseArchive, ...], PackagingFailure]:
    """Package platforms in order; the first failure stops packaging."""
    archives: list[ReleaseArchive] = []
    for platform in platforms:
        result = package(platform, artifacts, out_dir=out_dir, project=project, version=version)
        if isinstance(result, Err):
            return result
        archives.append(result.value)
    return Ok(tuple(archives))
