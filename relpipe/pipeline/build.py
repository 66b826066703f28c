"""Build stage: one independent build per platform, joined at a barrier.

Every platform build runs to completion (success or failure) before the
caller looks at the results; a failing platform never cancels the others.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from relpipe.core.config import DEFAULT_BUILD_COMMAND
from relpipe.core.result import Err, Ok, Result
from relpipe.output.console import ConsoleProtocol
from relpipe.pipeline.errors import BuildFailure
from relpipe.pipeline.model import BuildArtifact, Platform, detect_host_platform
from relpipe.pipeline.store import ArtifactStore
from relpipe.platform.process import run

_BUILD_TIMEOUT_SECONDS = 60 * 60.0


class Builder(Protocol):
    def build(self, platform: Platform) -> Result[Path, BuildFailure]:
        """Build for ``platform`` and return the expected binary path."""
        ...


class CargoBuilder:
    """Runs cargo once per platform.

    Each platform gets its own ``--target-dir`` so parallel builds never write
    to the same output tree. A configured target triple is passed as
    ``--target``; cargo then nests the output under the triple. A platform
    other than the host needs a triple: without one cargo would build the
    host binary, so the build is refused instead.
    """

    def __init__(
        self,
        *,
        root: Path,
        project: str,
        command: Sequence[str] = DEFAULT_BUILD_COMMAND,
        target_dir: str = "target",
        targets: Mapping[str, str] | None = None,
        timeout: float | None = _BUILD_TIMEOUT_SECONDS,
        host: Platform | None = None,
    ) -> None:
        self._root = root
        self._project = project
        self._command = tuple(command)
        self._target_dir = target_dir
        self._targets = dict(targets or {})
        self._timeout = timeout
        self._host = host if host is not None else detect_host_platform()

    def command_for(self, platform: Platform) -> list[str]:
        cmd = [*self._command, "--target-dir", str(self._platform_dir(platform))]
        triple = self._targets.get(platform.value)
        if triple:
            cmd += ["--target", triple]
        return cmd

    def output_path(self, platform: Platform) -> Path:
        profile = "release" if "--release" in self._command else "debug"
        out = self._platform_dir(platform)
        triple = self._targets.get(platform.value)
        if triple:
            out = out / triple
        return out / profile / platform.binary_name(self._project)

    def build(self, platform: Platform) -> Result[Path, BuildFailure]:
        if platform != self._host and not self._targets.get(platform.value):
            return Err(
                BuildFailure(
                    platform=platform,
                    cause=f"no target triple configured for cross build (host: {self._host})",
                )
            )

        result = run(self.command_for(platform), cwd=self._root, timeout=self._timeout)
        if isinstance(result, Err):
            return Err(BuildFailure(platform=platform, cause=str(result.error)))
        return Ok(self.output_path(platform))

    def _platform_dir(self, platform: Platform) -> Path:
        return self._root / self._target_dir / platform.value


def build_platform(
    platform: Platform, builder: Builder, store: ArtifactStore
) -> Result[BuildArtifact, BuildFailure]:
    built = builder.build(platform)
    if isinstance(built, Err):
        return built

    path = built.value
    if not path.is_file():
        return Err(BuildFailure(platform=platform, cause=f"output not found: {path}"))

    try:
        artifact = store.put(platform, path)
    except OSError as e:
        return Err(BuildFailure(platform=platform, cause=f"failed to store artifact: {e}"))
    return Ok(artifact)


@dataclass(frozen=True, slots=True)
class BuildReport:
    """One result slot per requested platform, in request order."""

    results: tuple[tuple[Platform, Result[BuildArtifact, BuildFailure]], ...]

    @property
    def artifacts(self) -> tuple[BuildArtifact, ...]:
        return tuple(r.value for _, r in self.results if isinstance(r, Ok))

    @property
    def failures(self) -> tuple[BuildFailure, ...]:
        return tuple(r.error for _, r in self.results if isinstance(r, Err))

    @property
    def succeeded(self) -> bool:
        return not self.failures


def build_all(
    platforms: Sequence[Platform],
    builder: Builder,
    store: ArtifactStore,
    *,
    console: ConsoleProtocol | None = None,
) -> BuildReport:
    """Build every platform concurrently and wait for all of them."""
    slots: dict[Platform, Result[BuildArtifact, BuildFailure]] = {}
    if not platforms:
        return BuildReport(results=())

    with ThreadPoolExecutor(max_workers=len(platforms)) as executor:
        futures: dict[Future[Result[BuildArtifact, BuildFailure]], Platform] = {
            executor.submit(build_platform, platform, builder, store): platform
            for platform in platforms
        }
        for future in as_completed(futures):
            platform = futures[future]
            result = future.result()
            slots[platform] = result
            if console is None:
                continue
            if isinstance(result, Ok):
                console.success(f"{platform}: {result.value.binary_path.name}")
            else:
                console.error(f"{platform}: {result.error.cause}")

    return BuildReport(results=tuple((p, slots[p]) for p in platforms))
