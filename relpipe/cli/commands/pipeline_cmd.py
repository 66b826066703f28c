from __future__ import annotations

import typer

from relpipe.cli.commands._helpers import exit_on_error, parse_platforms, report_outcome
from relpipe.cli.context import CLIContext, build_context
from relpipe.core.errors import ErrorCode
from relpipe.core.result import Err
from relpipe.output.console import Style
from relpipe.pipeline.build import CargoBuilder, build_all
from relpipe.pipeline.gate import TriggerEvent, head_commit_message
from relpipe.pipeline.hosting import DryRunHost, GhReleaseHost, HostingApi
from relpipe.pipeline.runner import RunRequest, release_from_store, run_pipeline
from relpipe.pipeline.store import DirectoryArtifactStore, check_store_root

_EVENTS: tuple[TriggerEvent, ...] = ("push", "pull_request")


def _event(value: str) -> TriggerEvent:
    for event in _EVENTS:
        if value == event:
            return event
    raise typer.BadParameter(f"unknown event '{value}' (expected push or pull_request)")


def _commit_message(ctx: CLIContext, message: str | None) -> str | None:
    if message is not None:
        return message
    head = head_commit_message(ctx.root)
    if isinstance(head, Err):
        ctx.console.warning(f"cannot read HEAD commit message: {head.error}")
        return None
    return head.value


def _store(ctx: CLIContext) -> DirectoryArtifactStore:
    root = ctx.root / ctx.config.build.artifacts_dir
    exit_on_error(check_store_root(root, ctx.root), ctx, ErrorCode.ENV_ERROR)
    return DirectoryArtifactStore(root, project=ctx.config.project.name, workspace=ctx.root)


def _builder(ctx: CLIContext) -> CargoBuilder:
    build = ctx.config.build
    return CargoBuilder(
        root=ctx.root,
        project=ctx.config.project.name,
        command=build.command,
        target_dir=build.target_dir,
        targets=build.targets,
    )


def _host(ctx: CLIContext, *, dry_run: bool, target: str | None) -> HostingApi:
    if dry_run:
        return DryRunHost(ctx.console)
    return GhReleaseHost(root=ctx.root, repo=ctx.config.release.repo, target_commitish=target)


def run(
    message: str | None = typer.Option(
        None, "--message", "-m", help="Triggering commit message (default: HEAD message)"
    ),
    branch: str | None = typer.Option(None, "--branch", help="Triggering branch"),
    event: str = typer.Option("push", "--event", help="Trigger event: push|pull_request"),
    platform: list[str] | None = typer.Option(
        None, "--platform", "-p", help="Restrict to these platforms (repeatable)"
    ),
    strict_version: bool = typer.Option(
        False, "--strict-version", help="Fail if the top changelog entry is not the version"
    ),
    resume: bool = typer.Option(False, "--resume", help="Reuse an existing draft release"),
    target: str | None = typer.Option(None, "--target", help="Commit the release tag points at"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not call the hosting API"),
) -> None:
    """Build every platform, then package and publish if the commit asks for a release."""
    ctx = build_context()
    release = ctx.config.release
    request = RunRequest(
        root=ctx.root,
        config=ctx.config,
        commit_message=_commit_message(ctx, message),
        branch=branch,
        event=_event(event),
        strict_version=strict_version or release.strict_version,
        resume=resume or release.resume,
        platforms=parse_platforms(platform),
    )
    host = _host(ctx, dry_run=dry_run, target=target)

    store = _store(ctx)
    exit_on_error(store.reset(), ctx, ErrorCode.ENV_ERROR)
    outcome = run_pipeline(
        request, builder=_builder(ctx), store=store, host=host, console=ctx.console
    )
    report_outcome(outcome, ctx)


def build(
    platform: list[str] | None = typer.Option(
        None, "--platform", "-p", help="Platforms to build (repeatable, default: all)"
    ),
) -> None:
    """Build stage only: build platforms and store their binaries."""
    ctx = build_context()
    platforms = parse_platforms(platform)
    store = _store(ctx)

    ctx.console.header(f"Build ({', '.join(str(p) for p in platforms)})")
    report = build_all(platforms, _builder(ctx), store, console=ctx.console)
    if not report.succeeded:
        ctx.console.error(f"{len(report.failures)} of {len(platforms)} builds failed")
        raise typer.Exit(code=int(ErrorCode.BUILD_ERROR))

    ctx.console.print(f"artifacts stored in {store.root}", Style.DIM)


def release(
    message: str | None = typer.Option(
        None, "--message", "-m", help="Triggering commit message (default: HEAD message)"
    ),
    branch: str | None = typer.Option(None, "--branch", help="Triggering branch"),
    event: str = typer.Option("push", "--event", help="Trigger event: push|pull_request"),
    strict_version: bool = typer.Option(
        False, "--strict-version", help="Fail if the top changelog entry is not the version"
    ),
    resume: bool = typer.Option(False, "--resume", help="Reuse an existing draft release"),
    target: str | None = typer.Option(None, "--target", help="Commit the release tag points at"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not call the hosting API"),
) -> None:
    """Release stage only: gate, package and publish artifacts already in the store."""
    ctx = build_context()
    release_cfg = ctx.config.release
    request = RunRequest(
        root=ctx.root,
        config=ctx.config,
        commit_message=_commit_message(ctx, message),
        branch=branch,
        event=_event(event),
        strict_version=strict_version or release_cfg.strict_version,
        resume=resume or release_cfg.resume,
    )
    host = _host(ctx, dry_run=dry_run, target=target)

    outcome = release_from_store(
        request, _store(ctx).get_all(), host=host, console=ctx.console
    )
    report_outcome(outcome, ctx)
