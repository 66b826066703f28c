"""Error presentation utilities.

Centralized formatting and exit code mapping for pipeline failures, so every
command reports the failing stage and platform the same way.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from relpipe.core.errors import ErrorCode
from relpipe.output.console import Style
from relpipe.pipeline.errors import (
    BuildFailure,
    MalformedChangelog,
    PackagingFailure,
    PipelineError,
    PublishFailure,
    VersionFileError,
    VersionMismatch,
)

if TYPE_CHECKING:
    from relpipe.output.console import ConsoleProtocol

__all__ = ["describe_pipeline_error", "pipeline_error_exit_code", "print_pipeline_error"]


def describe_pipeline_error(error: PipelineError) -> str:
    match error:
        case MalformedChangelog(reason=reason, path=path):
            where = f" ({path})" if path is not None else ""
            return f"malformed changelog: {reason}{where}"
        case VersionFileError(reason=reason, path=path):
            return f"version file {path}: {reason}"
        case VersionMismatch(version=version, changelog_key=key):
            return f"version {version} does not match top changelog entry [{key}]"
        case BuildFailure(platform=platform, cause=cause):
            return f"build failed for {platform}: {cause}"
        case PackagingFailure(platform=platform, cause=cause):
            return f"packaging failed for {platform}: {cause}"
        case PublishFailure(stage=stage, cause=cause):
            return f"publish failed at {stage}: {cause}"


def print_pipeline_error(error: PipelineError, console: ConsoleProtocol) -> None:
    """Print a pipeline error with the hint a maintainer needs to recover."""
    console.error(describe_pipeline_error(error))
    match error:
        case MalformedChangelog():
            console.print(
                "hint: add a '## [<version>]' entry at the top of the changelog", Style.DIM
            )
        case VersionMismatch():
            console.print("hint: add the changelog entry for this version first", Style.DIM)
        case PublishFailure(stage="upload", handle=handle) if handle is not None:
            attached = ", ".join(handle.attached) or "none"
            console.print(f"draft release left in place: {handle.target.url}", Style.DIM)
            console.print(f"attached before failure: {attached}", Style.DIM)
        case _:
            pass


def pipeline_error_exit_code(error: PipelineError) -> int:
    match error:
        case MalformedChangelog() | VersionFileError() | VersionMismatch():
            return int(ErrorCode.USER_ERROR)
        case BuildFailure():
            return int(ErrorCode.BUILD_ERROR)
        case PackagingFailure():
            return int(ErrorCode.IO_ERROR)
        case PublishFailure():
            return int(ErrorCode.NETWORK_ERROR)
