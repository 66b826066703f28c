"""Release pipeline: build stage, release gate, packaging and publishing."""

from .changelog import extract, read_changelog
from .gate import should_release
from .model import (
    ALL_PLATFORMS,
    BuildArtifact,
    ChangelogEntry,
    DraftRelease,
    Platform,
    ReleaseArchive,
    ReleaseHandle,
    RunState,
)
from .packaging import archive_name, package
from .publisher import publish
from .runner import RunOutcome, RunRequest, release_from_store, run_pipeline

__all__ = [
    # changelog
    "extract",
    "read_changelog",
    # gate
    "should_release",
    # model
    "ALL_PLATFORMS",
    "BuildArtifact",
    "ChangelogEntry",
    "DraftRelease",
    "Platform",
    "ReleaseArchive",
    "ReleaseHandle",
    "RunState",
    # packaging
    "archive_name",
    "package",
    # publisher
    "publish",
    # runner
    "RunOutcome",
    "RunRequest",
    "release_from_store",
    "run_pipeline",
]
