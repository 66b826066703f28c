"""Artifact store: hand-off between the build and release stages.

One directory per platform (``<project>-<platform>``) under a store root. Each
build writes only its own platform's directory, so concurrent builds never
contend, and re-running a platform replaces its previous entry.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from relpipe.core.result import Err, Ok, Result
from relpipe.pipeline.model import BuildArtifact, Platform


@dataclass(frozen=True, slots=True)
class StoreError:
    message: str


class ArtifactStore(Protocol):
    def put(self, platform: Platform, file: Path) -> BuildArtifact:
        """Store ``file`` under the platform's key, replacing any earlier entry."""
        ...

    def get_all(self) -> list[BuildArtifact]: ...


def check_store_root(root: Path, workspace: Path) -> Result[None, StoreError]:
    """The store root is deleted on reset: it must not be or contain the workspace."""
    store = root.resolve()
    ws = workspace.resolve()
    if ws == store or ws.is_relative_to(store):
        return Err(StoreError(f"artifact store {store} contains the workspace {ws}"))
    return Ok(None)


class DirectoryArtifactStore:
    def __init__(self, root: Path, *, project: str, workspace: Path | None = None) -> None:
        self._root = root
        self._project = project
        self._workspace = workspace

    @property
    def root(self) -> Path:
        return self._root

    def key(self, platform: Platform) -> str:
        return f"{self._project}-{platform}"

    def reset(self) -> Result[None, StoreError]:
        """Start a fresh run: drop every stored artifact."""
        if self._workspace is not None:
            checked = check_store_root(self._root, self._workspace)
            if isinstance(checked, Err):
                return checked
        if self._root.exists():
            shutil.rmtree(self._root)
        self._root.mkdir(parents=True, exist_ok=True)
        return Ok(None)

    def put(self, platform: Platform, file: Path) -> BuildArtifact:
        slot = self._root / self.key(platform)
        if slot.exists():
            shutil.rmtree(slot)
        slot.mkdir(parents=True)
        dest = slot / file.name
        shutil.copy2(file, dest)
        return BuildArtifact(platform=platform, binary_path=dest)

    def for_platform(self, platform: Platform) -> list[BuildArtifact]:
        slot = self._root / self.key(platform)
        if not slot.is_dir():
            return []
        return [
            BuildArtifact(platform=platform, binary_path=p)
            for p in sorted(slot.iterdir())
            if p.is_file()
        ]

    def get_all(self) -> list[BuildArtifact]:
        out: list[BuildArtifact] = []
        for platform in Platform:
            out.extend(self.for_platform(platform))
        return out
