from __future__ import annotations

import tomllib
from pathlib import Path

from relpipe.core.result import Err, Ok, Result
from relpipe.core.structured import as_str_dict, get_str, get_table
from relpipe.pipeline.errors import VersionFileError, VersionMismatch
from relpipe.pipeline.model import ChangelogEntry


def read_version(path: Path) -> Result[str, VersionFileError]:
    """Read the project version from a TOML version file.

    Looks up ``version`` in the ``[package]`` table (Cargo.toml), falling back
    to a top-level ``version`` key.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return Err(VersionFileError(reason=f"cannot read version file: {e}", path=path))

    try:
        obj: object = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        return Err(VersionFileError(reason=f"invalid TOML: {e}", path=path))

    data = as_str_dict(obj) or {}
    package = get_table(data, "package")

    version: str | None = None
    if package is not None:
        version = get_str(package, "version")
    if version is None:
        version = get_str(data, "version")

    if version is None:
        return Err(VersionFileError(reason="missing 'version' key", path=path))
    if any(ch.isspace() for ch in version):
        return Err(VersionFileError(reason=f"invalid version token: {version!r}", path=path))
    return Ok(version)


def check_version_matches(entry: ChangelogEntry, version: str) -> Result[None, VersionMismatch]:
    """Strict mode: the top changelog entry must describe ``version``."""
    if entry.key != version:
        return Err(VersionMismatch(version=version, changelog_key=entry.key))
    return Ok(None)
