"""Typed configuration loading and access.

The pipeline reads an optional ``relpipe.toml`` at the workspace root. Every
key has a default matching the historical CI workflow, so a project with a
``Cargo.toml`` and a ``CHANGELOG.md`` needs no config file at all.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_str, get_str_list, get_table

__all__ = [
    "BuildConfig",
    "CONFIG_FILENAME",
    "Config",
    "ConfigError",
    "DEFAULT_BUILD_COMMAND",
    "DEFAULT_MARKER",
    "PLATFORM_IDS",
    "ProjectConfig",
    "ReleaseConfig",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "relpipe.toml"

DEFAULT_PROJECT = "neko"
DEFAULT_MARKER = "[release]"
DEFAULT_BRANCHES = ("master",)
DEFAULT_BUILD_COMMAND = ("cargo", "build", "--locked", "--release", "--all-features")

# Identifiers of the closed platform set (see relpipe.pipeline.model.Platform).
PLATFORM_IDS = ("linux", "macos", "windows")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    name: str = DEFAULT_PROJECT
    version_file: str = "Cargo.toml"
    changelog: str = "CHANGELOG.md"


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Release gate and publishing options."""

    marker: str = DEFAULT_MARKER
    branches: tuple[str, ...] = DEFAULT_BRANCHES
    # Fail when the top changelog entry does not match the version file.
    strict_version: bool = False
    # Reuse an existing draft and skip assets it already has.
    resume: bool = False
    repo: str | None = None  # owner/name, forwarded to gh


@dataclass(frozen=True, slots=True)
class BuildConfig:
    command: tuple[str, ...] = DEFAULT_BUILD_COMMAND
    target_dir: str = "target"
    artifacts_dir: str = ".relpipe/artifacts"
    dist_dir: str = "dist"
    # platform id -> cargo target triple (empty: host target)
    targets: Mapping[str, str] = field(default_factory=dict[str, str])


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    build: BuildConfig = field(default_factory=BuildConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: On an unknown platform id or a malformed list.
        """
        project: StrDict = get_table(data, "project") or {}
        release: StrDict = get_table(data, "release") or {}
        build: StrDict = get_table(data, "build") or {}
        platforms: StrDict = get_table(data, "platforms") or {}

        branches = DEFAULT_BRANCHES
        if "branches" in release:
            parsed = get_str_list(release, "branches")
            if parsed is None:
                raise ValueError("release.branches must be a list of strings")
            branches = tuple(parsed)

        command = DEFAULT_BUILD_COMMAND
        if "command" in build:
            parsed = get_str_list(build, "command")
            if not parsed:
                raise ValueError("build.command must be a non-empty list of strings")
            command = tuple(parsed)

        targets: dict[str, str] = {}
        for platform_id, raw in platforms.items():
            if platform_id not in PLATFORM_IDS:
                raise ValueError(
                    f"unknown platform '{platform_id}' (expected one of {', '.join(PLATFORM_IDS)})"
                )
            table = as_str_dict(raw) or {}
            target = get_str(table, "target")
            if target:
                targets[platform_id] = target

        return cls(
            project=ProjectConfig(
                name=get_str(project, "name") or DEFAULT_PROJECT,
                version_file=get_str(project, "version_file") or "Cargo.toml",
                changelog=get_str(project, "changelog") or "CHANGELOG.md",
            ),
            release=ReleaseConfig(
                marker=get_str(release, "marker") or DEFAULT_MARKER,
                branches=branches,
                strict_version=bool(get_bool(release, "strict_version")),
                resume=bool(get_bool(release, "resume")),
                repo=get_str(release, "repo"),
            ),
            build=BuildConfig(
                command=command,
                target_dir=get_str(build, "target_dir") or "target",
                artifacts_dir=get_str(build, "artifacts_dir") or ".relpipe/artifacts",
                dist_dir=get_str(build, "dist_dir") or "dist",
                targets=targets,
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to relpipe.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(root: Path) -> Result[Config, ConfigError]:
    """Load ``relpipe.toml`` from a workspace root; defaults if it is absent.

    A present but invalid file is still an error.
    """
    path = root / CONFIG_FILENAME
    if not path.exists():
        return Ok(Config())
    return load_config(path)
