"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from relpipe.core.errors import ErrorCode
from relpipe.core.result import Err, Result
from relpipe.output.console import Style
from relpipe.output.errors import pipeline_error_exit_code, print_pipeline_error
from relpipe.pipeline.model import Platform, RunState

if TYPE_CHECKING:
    from relpipe.cli.context import CLIContext
    from relpipe.pipeline.runner import RunOutcome


def exit_on_error[T, E](
    result: Result[T, E],
    ctx: CLIContext,
    error_code: ErrorCode = ErrorCode.BUILD_ERROR,
) -> None:
    """Exit with ``error_code`` if result is Err, otherwise return.

    Expects error objects to have 'message' and optional 'hint' attributes.
    """
    if isinstance(result, Err):
        error = result.error
        message: str = getattr(error, "message", str(error))
        hint: str | None = getattr(error, "hint", None)
        ctx.console.error(message)
        if hint:
            ctx.console.print(f"hint: {hint}", Style.DIM)
        raise typer.Exit(code=int(error_code))


def parse_platforms(values: list[str] | None) -> tuple[Platform, ...]:
    """Parse ``--platform`` values; none means every platform."""
    if not values:
        return tuple(Platform)

    out: list[Platform] = []
    for value in values:
        platform = Platform.parse(value)
        if platform is None:
            known = ", ".join(p.value for p in Platform)
            raise typer.BadParameter(f"unknown platform '{value}' (expected one of {known})")
        if platform not in out:
            out.append(platform)
    return tuple(out)


def outcome_exit_code(outcome: RunOutcome) -> int:
    if outcome.state != RunState.FAILED:
        return int(ErrorCode.OK)
    if outcome.errors:
        return pipeline_error_exit_code(outcome.errors[0])
    return int(ErrorCode.BUILD_ERROR)


def report_outcome(outcome: RunOutcome, ctx: CLIContext) -> NoReturn:
    """Print the terminal state (and every error), then exit with its code."""
    console = ctx.console
    console.newline()
    console.print(" -> ".join(str(s) for s in outcome.history), Style.DIM)

    match outcome.state:
        case RunState.DONE:
            handle = outcome.release
            assets = len(handle.attached) + len(handle.skipped) if handle else 0
            url = handle.target.url if handle else ""
            console.success(f"draft release {outcome.version} created with {assets} assets {url}")
        case RunState.SKIPPED:
            console.success("builds ok; release skipped")
        case RunState.NOT_TRIGGERED:
            console.success("not triggered")
        case RunState.FAILED:
            console.error(f"run failed at stage: {outcome.failed_stage}")
            for error in outcome.errors:
                print_pipeline_error(error, console)
        case _:
            pass

    raise typer.Exit(code=outcome_exit_code(outcome))
