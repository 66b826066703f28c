"""Tests for relpipe.pipeline.packaging."""

from __future__ import annotations

import os
from pathlib import Path
from zipfile import ZipFile

from relpipe.core.result import Err, Ok
from relpipe.pipeline.model import ALL_PLATFORMS, BuildArtifact, Platform
from relpipe.pipeline.packaging import archive_name, package, package_all


def _artifact(
    tmp_path: Path, platform: Platform, name: str, content: bytes = b"x"
) -> BuildArtifact:
    path = tmp_path / "store" / f"neko-{platform}" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return BuildArtifact(platform=platform, binary_path=path)


class TestArchiveName:
    def test_scheme(self) -> None:
        assert archive_name("neko", "1.2.3", Platform.LINUX) == "neko-1.2.3-linux.zip"
        assert archive_name("neko", "2.0.0", Platform.WINDOWS) == "neko-2.0.0-windows.zip"

    def test_is_pure(self) -> None:
        names = {archive_name("neko", "1.2.3", Platform.MACOS) for _ in range(5)}
        assert names == {"neko-1.2.3-macos.zip"}


class TestPackage:
    def test_flat_archive(self, tmp_path: Path) -> None:
        artifacts = [
            _artifact(tmp_path, Platform.LINUX, "neko", b"linux-bin"),
            _artifact(tmp_path, Platform.MACOS, "neko", b"mac-bin"),
        ]
        result = package(
            Platform.LINUX, artifacts, out_dir=tmp_path / "dist", project="neko", version="1.2.3"
        )

        assert isinstance(result, Ok)
        archive = result.value
        assert archive.name == "neko-1.2.3-linux.zip"
        assert archive.path == tmp_path / "dist" / "neko-1.2.3-linux.zip"
        with ZipFile(archive.path) as zf:
            assert zf.namelist() == ["neko"]
            assert zf.read("neko") == b"linux-bin"

    def test_multiple_binaries_sorted_at_root(self, tmp_path: Path) -> None:
        artifacts = [
            _artifact(tmp_path, Platform.WINDOWS, "neko.exe"),
            _artifact(tmp_path, Platform.WINDOWS, "helper.dll"),
        ]
        result = package(
            Platform.WINDOWS, artifacts, out_dir=tmp_path / "dist", project="neko", version="1.0.0"
        )

        assert isinstance(result, Ok)
        with ZipFile(result.value.path) as zf:
            assert zf.namelist() == ["helper.dll", "neko.exe"]

    def test_repackaging_is_idempotent(self, tmp_path: Path) -> None:
        a = _artifact(tmp_path, Platform.WINDOWS, "neko.exe", b"exe")
        b = _artifact(tmp_path, Platform.WINDOWS, "readme.txt", b"doc")
        # Old mtime must not leak into the archive.
        os.utime(a.binary_path, (0, 0))

        first = package(
            Platform.WINDOWS, [a, b], out_dir=tmp_path / "one", project="neko", version="1.0.0"
        )
        second = package(
            Platform.WINDOWS, [b, a], out_dir=tmp_path / "two", project="neko", version="1.0.0"
        )

        assert isinstance(first, Ok) and isinstance(second, Ok)
        assert first.value.path.read_bytes() == second.value.path.read_bytes()

    def test_empty_artifact_set(self, tmp_path: Path) -> None:
        artifacts = [_artifact(tmp_path, Platform.LINUX, "neko")]
        result = package(
            Platform.MACOS, artifacts, out_dir=tmp_path / "dist", project="neko", version="1.0.0"
        )

        assert isinstance(result, Err)
        assert result.error.platform == Platform.MACOS
        assert not (tmp_path / "dist" / "neko-1.0.0-macos.zip").exists()

    def test_duplicate_entry_names(self, tmp_path: Path) -> None:
        first = _artifact(tmp_path, Platform.LINUX, "neko")
        other = tmp_path / "elsewhere" / "neko"
        other.parent.mkdir()
        other.write_bytes(b"y")
        second = BuildArtifact(platform=Platform.LINUX, binary_path=other)

        result = package(
            Platform.LINUX, [first, second], out_dir=tmp_path / "dist", project="neko", version="1"
        )
        assert isinstance(result, Err)
        assert "duplicate" in result.error.cause

    def test_unreadable_artifact(self, tmp_path: Path) -> None:
        missing = BuildArtifact(platform=Platform.LINUX, binary_path=tmp_path / "gone" / "neko")
        result = package(
            Platform.LINUX, [missing], out_dir=tmp_path / "dist", project="neko", version="1.0.0"
        )

        assert isinstance(result, Err)
        assert "cannot write" in result.error.cause
        assert list((tmp_path / "dist").iterdir()) == []


class TestPackageAll:
    def test_one_archive_per_platform(self, tmp_path: Path) -> None:
        artifacts = [_artifact(tmp_path, p, p.binary_name("neko")) for p in ALL_PLATFORMS]
        result = package_all(
            ALL_PLATFORMS, artifacts, out_dir=tmp_path / "dist", project="neko", version="2.0.0"
        )

        assert isinstance(result, Ok)
        assert [a.name for a in result.value] == [
            "neko-2.0.0-linux.zip",
            "neko-2.0.0-macos.zip",
            "neko-2.0.0-windows.zip",
        ]

    def test_stops_at_missing_platform(self, tmp_path: Path) -> None:
        artifacts = [_artifact(tmp_path, Platform.LINUX, "neko")]
        result = package_all(
            ALL_PLATFORMS, artifacts, out_dir=tmp_path / "dist", project="neko", version="2.0.0"
        )

        assert isinstance(result, Err)
        assert result.error.platform == Platform.MACOS
