from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from relpipe.core.config import Config, load_config_or_default
from relpipe.core.errors import ErrorCode
from relpipe.core.result import Err
from relpipe.output.console import ConsoleProtocol, RichConsole

ROOT_ENV = "RELPIPE_ROOT"


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    console: ConsoleProtocol


def workspace_root() -> Path:
    env = os.environ.get(ROOT_ENV)
    if env:
        return Path(env)
    return Path.cwd().resolve()


def build_context(*, stderr: bool = False) -> CLIContext:
    root = workspace_root()
    config_result = load_config_or_default(root)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(
        root=root,
        config=config_result.value,
        console=RichConsole(stderr=stderr),
    )
