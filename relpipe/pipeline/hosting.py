"""Release-hosting adapters.

The pipeline needs three calls from the hosting service: create a draft
release, attach an asset to it, and (for resumed runs) look up an existing
draft by tag. ``GhReleaseHost`` implements them with the GitHub CLI; ``gh``
handles authentication. The CLI is looked up on the first call that needs it,
so runs that never publish do not require it. No call is retried.
"""

from __future__ import annotations

import json
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from relpipe.core.result import Err, Ok, Result
from relpipe.core.structured import as_obj_list, as_str_dict, get_str
from relpipe.output.console import ConsoleProtocol, Style
from relpipe.pipeline.model import UploadTarget
from relpipe.platform.process import run as run_process

GH_TIMEOUT_SECONDS = 60.0
GH_UPLOAD_TIMEOUT_SECONDS = 15 * 60.0

_NOT_FOUND_MARKERS = ("release not found", "http 404")


@dataclass(frozen=True, slots=True)
class HostingError:
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


class HostingApi(Protocol):
    def create_draft_release(
        self, tag: str, title: str, body: str
    ) -> Result[UploadTarget, HostingError]: ...

    def attach_asset(
        self, target: UploadTarget, file: Path, name: str
    ) -> Result[None, HostingError]: ...

    def find_release(self, tag: str) -> Result[UploadTarget | None, HostingError]:
        """Existing draft for ``tag``, or None if there is no release yet."""
        ...


def ensure_gh_available() -> Result[None, HostingError]:
    if shutil.which("gh") is None:
        return Err(
            HostingError(
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


class GhReleaseHost:
    def __init__(
        self,
        *,
        root: Path,
        repo: str | None = None,
        target_commitish: str | None = None,
    ) -> None:
        self._root = root
        self._repo = repo
        self._target_commitish = target_commitish
        self._gh_checked = False

    def _ensure_gh(self) -> Result[None, HostingError]:
        if self._gh_checked:
            return Ok(None)
        found = ensure_gh_available()
        if isinstance(found, Ok):
            self._gh_checked = True
        return found

    def _repo_args(self) -> list[str]:
        return ["--repo", self._repo] if self._repo else []

    def create_draft_release(
        self, tag: str, title: str, body: str
    ) -> Result[UploadTarget, HostingError]:
        gh = self._ensure_gh()
        if isinstance(gh, Err):
            return gh

        cmd = ["gh", "release", "create", tag, "--draft", "--title", title, "--notes", body]
        if self._target_commitish:
            cmd += ["--target", self._target_commitish]
        cmd += self._repo_args()

        result = run_process(cmd, cwd=self._root, timeout=GH_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                HostingError(
                    message=f"failed to create draft release {tag}",
                    hint=result.error.stderr.strip() or None,
                )
            )

        # gh prints the release URL on success.
        lines = result.value.strip().splitlines()
        url = lines[-1].strip() if lines else ""
        return Ok(UploadTarget(tag=tag, url=url))

    def attach_asset(
        self, target: UploadTarget, file: Path, name: str
    ) -> Result[None, HostingError]:
        # gh names the asset after the file, so stage a copy when they differ.
        if file.name == name:
            return self._upload(target, file)

        with tempfile.TemporaryDirectory(prefix="relpipe-asset-") as tmp:
            staged = Path(tmp) / name
            try:
                shutil.copy2(file, staged)
            except OSError as e:
                return Err(HostingError(message=f"failed to stage asset {name}: {e}"))
            return self._upload(target, staged)

    def _upload(self, target: UploadTarget, file: Path) -> Result[None, HostingError]:
        cmd = ["gh", "release", "upload", target.tag, str(file), *self._repo_args()]
        result = run_process(cmd, cwd=self._root, timeout=GH_UPLOAD_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                HostingError(
                    message=f"failed to upload {file.name}",
                    hint=result.error.stderr.strip() or None,
                )
            )
        return Ok(None)

    def find_release(self, tag: str) -> Result[UploadTarget | None, HostingError]:
        gh = self._ensure_gh()
        if isinstance(gh, Err):
            return gh

        cmd = ["gh", "release", "view", tag, "--json", "url,isDraft,assets", *self._repo_args()]
        result = run_process(cmd, cwd=self._root, timeout=GH_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            stderr = result.error.stderr.strip()
            if any(marker in stderr.lower() for marker in _NOT_FOUND_MARKERS):
                return Ok(None)
            return Err(
                HostingError(message=f"failed to query release {tag}", hint=stderr or None)
            )

        return _parse_release_view(tag, result.value)


def _parse_release_view(tag: str, payload: str) -> Result[UploadTarget | None, HostingError]:
    try:
        obj: object = json.loads(payload)
    except json.JSONDecodeError as e:
        return Err(HostingError(message=f"gh release view returned invalid JSON: {e}"))

    data = as_str_dict(obj)
    if data is None:
        return Err(HostingError(message=f"unexpected release payload: {tag}"))

    if data.get("isDraft") is not True:
        return Err(
            HostingError(
                message=f"release {tag} is already published",
                hint="Resuming only works on draft releases.",
            )
        )

    names: set[str] = set()
    for item in as_obj_list(data.get("assets")) or []:
        asset = as_str_dict(item)
        if asset is None:
            continue
        name = get_str(asset, "name")
        if name is not None:
            names.add(name)

    url = get_str(data, "url") or ""
    return Ok(UploadTarget(tag=tag, url=url, existing_assets=frozenset(names)))


class DryRunHost:
    """Prints the hosting calls instead of making them."""

    def __init__(self, console: ConsoleProtocol) -> None:
        self._console = console

    def create_draft_release(
        self, tag: str, title: str, body: str
    ) -> Result[UploadTarget, HostingError]:
        self._console.print(f"(dry-run) create draft release {tag}: {title}", Style.DIM)
        return Ok(UploadTarget(tag=tag, url="(dry-run)"))

    def attach_asset(
        self, target: UploadTarget, file: Path, name: str
    ) -> Result[None, HostingError]:
        self._console.print(f"(dry-run) attach {name} to {target.tag}", Style.DIM)
        return Ok(None)

    def find_release(self, tag: str) -> Result[UploadTarget | None, HostingError]:
        return Ok(None)
