"""Pipeline coordinator.

A run moves through these states::

    idle -> building -> gate_check -> skipped
                                   -> packaging -> creating -> attaching -> done

Any state may end in ``failed``; ``not_triggered`` ends a run on an untracked
branch before anything is built. Each state has one handler that returns the
next session; the loop stops at the first terminal state. Nothing is retried.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from pathlib import Path

from relpipe.core.config import Config
from relpipe.core.result import Err
from relpipe.output.console import ConsoleProtocol, Style
from relpipe.pipeline.build import Builder, build_all
from relpipe.pipeline.changelog import read_changelog
from relpipe.pipeline.errors import PipelineError
from relpipe.pipeline.gate import TriggerEvent, is_tracked_branch, should_release
from relpipe.pipeline.hosting import HostingApi
from relpipe.pipeline.model import (
    ALL_PLATFORMS,
    BuildArtifact,
    ChangelogEntry,
    Platform,
    ReleaseArchive,
    ReleaseHandle,
    RunState,
    UploadTarget,
)
from relpipe.pipeline.packaging import package_all
from relpipe.pipeline.publisher import attach_assets, create_draft, draft_release
from relpipe.pipeline.store import ArtifactStore
from relpipe.pipeline.version import check_version_matches, read_version


@dataclass(frozen=True, slots=True)
class RunRequest:
    root: Path
    config: Config
    commit_message: str | None
    branch: str | None = None
    event: TriggerEvent = "push"
    strict_version: bool = False
    resume: bool = False
    platforms: tuple[Platform, ...] = ALL_PLATFORMS


@dataclass(frozen=True, slots=True)
class RunOutcome:
    state: RunState
    history: tuple[RunState, ...]
    failed_stage: str | None = None
    errors: tuple[PipelineError, ...] = ()
    artifacts: tuple[BuildArtifact, ...] = ()
    archives: tuple[ReleaseArchive, ...] = ()
    version: str | None = None
    entry: ChangelogEntry | None = None
    release: ReleaseHandle | None = None

    @property
    def succeeded(self) -> bool:
        return self.state != RunState.FAILED


@dataclass(frozen=True, slots=True)
class _Session:
    state: RunState
    artifacts: tuple[BuildArtifact, ...] = ()
    failed_stage: str | None = None
    errors: tuple[PipelineError, ...] = ()
    version: str | None = None
    entry: ChangelogEntry | None = None
    archives: tuple[ReleaseArchive, ...] = ()
    target: UploadTarget | None = None
    release: ReleaseHandle | None = None
    history: tuple[RunState, ...] = ()


_Handler = Callable[[_Session], _Session]


def _fail(session: _Session, stage: str, *errors: PipelineError) -> _Session:
    return replace(session, state=RunState.FAILED, failed_stage=stage, errors=tuple(errors))


class _Run:
    def __init__(
        self,
        request: RunRequest,
        *,
        builder: Builder | None,
        store: ArtifactStore | None,
        host: HostingApi,
        console: ConsoleProtocol,
    ) -> None:
        self._request = request
        self._builder = builder
        self._store = store
        self._host = host
        self._console = console

    def handlers(self) -> Mapping[RunState, _Handler]:
        return {
            RunState.IDLE: self._idle,
            RunState.BUILDING: self._building,
            RunState.GATE_CHECK: self._gate_check,
            RunState.PACKAGING: self._packaging,
            RunState.CREATING: self._creating,
            RunState.ATTACHING: self._attaching,
        }

    def _idle(self, s: _Session) -> _Session:
        req = self._request
        if not is_tracked_branch(req.branch, req.config.release.branches):
            self._console.info(f"branch {req.branch} is not tracked; nothing to do")
            return replace(s, state=RunState.NOT_TRIGGERED)
        if self._builder is None:
            # Artifacts come from separate build jobs.
            return replace(s, state=RunState.GATE_CHECK)
        return replace(s, state=RunState.BUILDING)

    def _building(self, s: _Session) -> _Session:
        self._console.header(f"Build ({', '.join(str(p) for p in self._request.platforms)})")
        if self._builder is None or self._store is None:
            raise RuntimeError("building state requires a builder and a store")

        report = build_all(
            self._request.platforms, self._builder, self._store, console=self._console
        )
        if not report.succeeded:
            return _fail(s, "build", *report.failures)
        return replace(s, state=RunState.GATE_CHECK, artifacts=report.artifacts)

    def _gate_check(self, s: _Session) -> _Session:
        req = self._request
        if req.event != "push":
            self._console.info(f"{req.event} event: verification only, no release")
            return replace(s, state=RunState.SKIPPED)

        marker = req.config.release.marker
        if not should_release(req.commit_message, marker):
            self._console.info(f"commit message has no {marker} marker; release skipped")
            return replace(s, state=RunState.SKIPPED)
        return replace(s, state=RunState.PACKAGING)

    def _packaging(self, s: _Session) -> _Session:
        req = self._request
        project = req.config.project
        self._console.header("Package")

        version = read_version(req.root / project.version_file)
        if isinstance(version, Err):
            return _fail(s, "version", version.error)

        entry = read_changelog(req.root / project.changelog)
        if isinstance(entry, Err):
            return _fail(s, "changelog", entry.error)

        if req.strict_version:
            matched = check_version_matches(entry.value, version.value)
            if isinstance(matched, Err):
                return _fail(s, "version", matched.error)

        archives = package_all(
            req.platforms,
            s.artifacts,
            out_dir=req.root / req.config.build.dist_dir,
            project=project.name,
            version=version.value,
        )
        if isinstance(archives, Err):
            return _fail(s, "packaging", archives.error)

        for archive in archives.value:
            self._console.success(archive.name)
        return replace(
            s,
            state=RunState.CREATING,
            version=version.value,
            entry=entry.value,
            archives=archives.value,
        )

    def _creating(self, s: _Session) -> _Session:
        if s.version is None or s.entry is None:
            raise RuntimeError("creating state reached without version and changelog entry")
        draft = draft_release(s.version, s.entry, s.archives)
        self._console.header(f"Draft release {draft.tag} {draft.title}")

        target = create_draft(draft, self._host, resume=self._request.resume)
        if isinstance(target, Err):
            return _fail(s, "create", target.error)
        if target.value.url:
            self._console.print(target.value.url, Style.DIM)
        return replace(s, state=RunState.ATTACHING, target=target.value)

    def _attaching(self, s: _Session) -> _Session:
        if s.target is None:
            raise RuntimeError("attaching state reached without a draft release")
        handle = attach_assets(s.target, s.archives, self._host, console=self._console)
        if isinstance(handle, Err):
            failed = _fail(s, "upload", handle.error)
            return replace(failed, release=handle.error.handle)
        return replace(s, state=RunState.DONE, release=handle.value)


def _drive(run: _Run, initial: _Session) -> RunOutcome:
    handlers = run.handlers()
    current = replace(initial, history=(initial.state,))

    while not current.state.is_terminal:
        handler = handlers.get(current.state)
        if handler is None:
            raise RuntimeError(f"no handler for pipeline state: {current.state}")
        nxt = handler(current)
        current = replace(nxt, history=(*current.history, nxt.state))

    return RunOutcome(
        state=current.state,
        history=current.history,
        failed_stage=current.failed_stage,
        errors=current.errors,
        artifacts=current.artifacts,
        archives=current.archives,
        version=current.version,
        entry=current.entry,
        release=current.release,
    )


def run_pipeline(
    request: RunRequest,
    *,
    builder: Builder,
    store: ArtifactStore,
    host: HostingApi,
    console: ConsoleProtocol,
) -> RunOutcome:
    """Full run: build every platform, then gate, package and publish."""
    run = _Run(request, builder=builder, store=store, host=host, console=console)
    return _drive(run, _Session(state=RunState.IDLE))


def release_from_store(
    request: RunRequest,
    artifacts: Sequence[BuildArtifact],
    *,
    host: HostingApi,
    console: ConsoleProtocol,
) -> RunOutcome:
    """Release stage alone, over artifacts produced by separate build jobs."""
    run = _Run(request, builder=None, store=None, host=host, console=console)
    return _drive(run, _Session(state=RunState.IDLE, artifacts=tuple(artifacts)))
