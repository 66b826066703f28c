from __future__ import annotations

import typer

from relpipe.cli.context import build_context
from relpipe.core.errors import ErrorCode
from relpipe.core.result import Err
from relpipe.output.errors import pipeline_error_exit_code, print_pipeline_error
from relpipe.pipeline.changelog import read_changelog
from relpipe.pipeline.gate import should_release
from relpipe.pipeline.version import read_version


def changelog(
    title_only: bool = typer.Option(False, "--title", help="Print only the release title"),
) -> None:
    """Print the top changelog entry (release title, then body)."""
    ctx = build_context(stderr=True)
    entry = read_changelog(ctx.root / ctx.config.project.changelog)
    if isinstance(entry, Err):
        print_pipeline_error(entry.error, ctx.console)
        raise typer.Exit(code=pipeline_error_exit_code(entry.error))

    typer.echo(entry.value.title)
    if not title_only and entry.value.body:
        typer.echo("")
        typer.echo(entry.value.body)


def version() -> None:
    """Print the project version from the version file."""
    ctx = build_context(stderr=True)
    result = read_version(ctx.root / ctx.config.project.version_file)
    if isinstance(result, Err):
        print_pipeline_error(result.error, ctx.console)
        raise typer.Exit(code=pipeline_error_exit_code(result.error))
    typer.echo(result.value)


def gate(message: str = typer.Argument(..., help="Commit message to test")) -> None:
    """Exit 0 if the message would trigger a release, 1 otherwise."""
    ctx = build_context(stderr=True)
    marker = ctx.config.release.marker
    if should_release(message, marker):
        typer.echo("release")
        raise typer.Exit(code=int(ErrorCode.OK))
    typer.echo("skip")
    raise typer.Exit(code=int(ErrorCode.USER_ERROR))
