from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path


class Platform(Enum):
    """Target platform. The set is closed and fixed at pipeline definition."""

    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"

    def __str__(self) -> str:
        return self.value

    @property
    def exe_suffix(self) -> str:
        return ".exe" if self == Platform.WINDOWS else ""

    def binary_name(self, project: str) -> str:
        """File name the build tool produces, e.g. ``neko.exe`` on Windows."""
        return f"{project}{self.exe_suffix}"

    @classmethod
    def parse(cls, value: str) -> Platform | None:
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


ALL_PLATFORMS: tuple[Platform, ...] = (Platform.LINUX, Platform.MACOS, Platform.WINDOWS)


@lru_cache(maxsize=1)
def detect_host_platform() -> Platform | None:
    """Platform this process runs on (cached); None outside the supported set."""
    system = sys.platform.lower()
    if system.startswith("linux"):
        return Platform.LINUX
    if system.startswith("darwin"):
        return Platform.MACOS
    if system.startswith(("win32", "cygwin", "msys")):
        return Platform.WINDOWS
    return None


class RunState(Enum):
    IDLE = "idle"
    NOT_TRIGGERED = "not_triggered"
    BUILDING = "building"
    GATE_CHECK = "gate_check"
    SKIPPED = "skipped"
    PACKAGING = "packaging"
    CREATING = "creating"
    ATTACHING = "attaching"
    DONE = "done"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.NOT_TRIGGERED, RunState.SKIPPED, RunState.DONE, RunState.FAILED)


@dataclass(frozen=True, slots=True)
class BuildArtifact:
    platform: Platform
    binary_path: Path


@dataclass(frozen=True, slots=True)
class ChangelogEntry:
    """Top section of the changelog."""

    key: str  # bracketed token, e.g. "2.0.0"
    body: str

    @property
    def title(self) -> str:
        return f"[{self.key}]"


@dataclass(frozen=True, slots=True)
class ReleaseArchive:
    platform: Platform
    path: Path
    name: str  # {project}-{version}-{platform}.zip


@dataclass(frozen=True, slots=True)
class DraftRelease:
    """A release as it will be created: complete before publishing starts."""

    tag: str
    title: str
    body: str
    assets: tuple[ReleaseArchive, ...]


@dataclass(frozen=True, slots=True)
class UploadTarget:
    """Handle on a created (or reused) draft release."""

    tag: str
    url: str
    existing_assets: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class ReleaseHandle:
    target: UploadTarget
    attached: tuple[str, ...]
    skipped: tuple[str, ...] = ()
