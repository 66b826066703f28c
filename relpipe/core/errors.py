"""Exit codes for CLI commands.

Every pipeline outcome maps to one of these codes so CI jobs fail with a
status that says which stage broke.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes. Values are stable.

    - 0: Success (including a skipped release)
    - 1: User error (bad changelog, bad version file, bad arguments)
    - 2: Environment error (invalid config, missing tools)
    - 3: Build error (a platform build failed)
    - 4: Network error (hosting API rejected or unreachable)
    - 5: I/O error (archive could not be written)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
