from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from relpipe.pipeline.model import Platform, ReleaseHandle

PublishStage = Literal["create", "upload"]


@dataclass(frozen=True, slots=True)
class MalformedChangelog:
    reason: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class VersionFileError:
    reason: str
    path: Path


@dataclass(frozen=True, slots=True)
class VersionMismatch:
    version: str
    changelog_key: str


@dataclass(frozen=True, slots=True)
class BuildFailure:
    platform: Platform
    cause: str


@dataclass(frozen=True, slots=True)
class PackagingFailure:
    platform: Platform
    cause: str


@dataclass(frozen=True, slots=True)
class PublishFailure:
    stage: PublishStage
    cause: str
    # Set when the draft exists: assets attached before the failure stay attached.
    handle: ReleaseHandle | None = None


PipelineError = (
    MalformedChangelog
    | VersionFileError
    | VersionMismatch
    | BuildFailure
    | PackagingFailure
    | PublishFailure
)
