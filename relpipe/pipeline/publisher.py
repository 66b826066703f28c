"""Release publisher.

Creates exactly one draft release, then attaches archives one by one. The
release stays a draft: making it public is a manual step. Nothing is rolled
back: when an upload fails, the draft and the assets already attached remain,
and the failure carries a handle listing them.
"""

from __future__ import annotations

from collections.abc import Sequence

from relpipe.core.result import Err, Ok, Result
from relpipe.output.console import ConsoleProtocol
from relpipe.pipeline.errors import PublishFailure
from relpipe.pipeline.hosting import HostingApi
from relpipe.pipeline.model import (
    ChangelogEntry,
    DraftRelease,
    ReleaseArchive,
    ReleaseHandle,
    UploadTarget,
)


def draft_release(
    version: str, entry: ChangelogEntry, archives: Sequence[ReleaseArchive]
) -> DraftRelease:
    return DraftRelease(tag=version, title=entry.title, body=entry.body, assets=tuple(archives))


def create_draft(
    draft: DraftRelease, host: HostingApi, *, resume: bool = False
) -> Result[UploadTarget, PublishFailure]:
    """Create the draft, or with ``resume`` reuse the existing draft for the tag."""
    if resume:
        found = host.find_release(draft.tag)
        if isinstance(found, Err):
            return Err(PublishFailure(stage="create", cause=found.error.pretty()))
        if found.value is not None:
            return Ok(found.value)

    created = host.create_draft_release(draft.tag, draft.title, draft.body)
    if isinstance(created, Err):
        return Err(PublishFailure(stage="create", cause=created.error.pretty()))
    return created


def attach_assets(
    target: UploadTarget,
    archives: Sequence[ReleaseArchive],
    host: HostingApi,
    *,
    console: ConsoleProtocol | None = None,
) -> Result[ReleaseHandle, PublishFailure]:
    """Attach each archive; stop at the first failed upload."""
    attached: list[str] = []
    skipped: list[str] = []
    total = len(archives)

    for index, archive in enumerate(archives, start=1):
        if archive.name in target.existing_assets:
            skipped.append(archive.name)
            if console is not None:
                console.info(f"{archive.name} already attached ({index}/{total})")
            continue

        result = host.attach_asset(target, archive.path, archive.name)
        if isinstance(result, Err):
            handle = ReleaseHandle(target=target, attached=tuple(attached), skipped=tuple(skipped))
            return Err(
                PublishFailure(
                    stage="upload",
                    cause=f"{archive.name}: {result.error.pretty()}",
                    handle=handle,
                )
            )

        attached.append(archive.name)
        if console is not None:
            console.success(f"{archive.name} ({index}/{total})")

    return Ok(ReleaseHandle(target=target, attached=tuple(attached), skipped=tuple(skipped)))


def publish(
    version: str,
    entry: ChangelogEntry,
    archives: Sequence[ReleaseArchive],
    host: HostingApi,
    *,
    resume: bool = False,
    console: ConsoleProtocol | None = None,
) -> Result[ReleaseHandle, PublishFailure]:
    draft = draft_release(version, entry, archives)
    target = create_draft(draft, host, resume=resume)
    if isinstance(target, Err):
        return target
    return attach_assets(target.value, draft.assets, host, console=console)
