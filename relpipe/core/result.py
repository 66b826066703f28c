"""Result type for explicit error handling.

Fallible pipeline operations return ``Ok(value)`` or ``Err(error)`` instead of
raising, so each stage decides explicitly whether a failure stops the run.

Usage:
    result = read_version(path)
    if isinstance(result, Err):
        return result
    version = result.value

    # Or with pattern matching
    match extract(text):
        case Ok(entry):
            print(entry.title)
        case Err(error):
            print(error.reason)
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful result carrying a value."""

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed result carrying an error payload."""

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
