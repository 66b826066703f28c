"""Release gate and trigger filtering.

The gate is a plain substring test on the triggering commit message: no
anchoring, no escaping, case-sensitive. A message that merely happens to
contain the marker triggers a release too.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Literal

from relpipe.core.config import DEFAULT_MARKER
from relpipe.core.result import Err, Ok, Result
from relpipe.platform.process import ProcessError, run

TriggerEvent = Literal["push", "pull_request"]

_GIT_TIMEOUT_SECONDS = 30.0


def should_release(message: str | None, marker: str = DEFAULT_MARKER) -> bool:
    if message is None or not marker:
        return False
    return marker in message


def is_tracked_branch(branch: str | None, branches: Iterable[str]) -> bool:
    """Decide whether the pipeline runs at all for this branch.

    ``None`` (no CI context, e.g. a local run) always runs.
    """
    if branch is None:
        return True
    name = branch.removeprefix("refs/heads/")
    return name in set(branches)


def head_commit_message(root: Path) -> Result[str, ProcessError]:
    """Full message of the checked-out HEAD commit."""
    result = run(["git", "log", "-1", "--format=%B"], cwd=root, timeout=_GIT_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return result
    return Ok(result.value.strip())
