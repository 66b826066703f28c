from __future__ import annotations

import os
from pathlib import Path

import typer

from relpipe import __version__
from relpipe.cli.commands.inspect_cmd import changelog, gate, version
from relpipe.cli.commands.pipeline_cmd import build, release, run
from relpipe.cli.context import ROOT_ENV
from relpipe.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    invoke_without_command=True,
)


# Pipeline
app.command()(run)
app.command()(build)
app.command()(release)

# Inspection
app.command()(changelog)
app.command()(version)
app.command()(gate)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    show_version: bool = typer.Option(False, "--version", help="Show version and exit."),
    root: Path | None = typer.Option(
        None,
        "--root",
        help="Workspace root (default: current directory)",
    ),
) -> None:
    if show_version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if root is not None:
        try:
            resolved = root.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --root: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not resolved.is_dir():
            typer.echo(f"error: --root '{resolved}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        os.environ[ROOT_ENV] = str(resolved)


def main() -> None:
    app()
