from __future__ import annotations

from pathlib import Path

import pytest
import typer

from relpipe.cli.context import CLIContext
from relpipe.core.config import BuildConfig, Config
from relpipe.core.errors import ErrorCode
from relpipe.output.console import MockConsole
from relpipe.pipeline.model import Platform
from relpipe.pipeline.store import DirectoryArtifactStore
from relpipe.test.fakes import CHANGELOG, FakeBuilder, write_workspace


def _ctx(
    tmp_path: Path, *, changelog: str = CHANGELOG, config: Config | None = None
) -> CLIContext:
    return CLIContext(
        root=write_workspace(tmp_path / "ws", changelog=changelog),
        config=config or Config(),
        console=MockConsole(),
    )


def _console(ctx: CLIContext) -> MockConsole:
    assert isinstance(ctx.console, MockConsole)
    return ctx.console


def _patch_context(monkeypatch: pytest.MonkeyPatch, module: object, ctx: CLIContext) -> None:
    def fake_build_context(**_: object) -> CLIContext:
        return ctx

    monkeypatch.setattr(module, "build_context", fake_build_context)


class TestInspect:
    def test_changelog_prints_title_and_body(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        import relpipe.cli.commands.inspect_cmd as inspect_cmd

        _patch_context(monkeypatch, inspect_cmd, _ctx(tmp_path))

        inspect_cmd.changelog(title_only=False)

        assert capsys.readouterr().out == "[2.0.0]\n\nAdded foo.\n"

    def test_changelog_title_only(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        import relpipe.cli.commands.inspect_cmd as inspect_cmd

        _patch_context(monkeypatch, inspect_cmd, _ctx(tmp_path))

        inspect_cmd.changelog(title_only=True)

        assert capsys.readouterr().out == "[2.0.0]\n"

    def test_malformed_changelog_exits_user_error(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        import relpipe.cli.commands.inspect_cmd as inspect_cmd

        ctx = _ctx(tmp_path, changelog="# Changelog\n")
        _patch_context(monkeypatch, inspect_cmd, ctx)

        with pytest.raises(typer.Exit) as exc:
            inspect_cmd.changelog(title_only=False)

        assert exc.value.exit_code == int(ErrorCode.USER_ERROR)
        assert _console(ctx).has_error()

    def test_version(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        import relpipe.cli.commands.inspect_cmd as inspect_cmd

        _patch_context(monkeypatch, inspect_cmd, _ctx(tmp_path))

        inspect_cmd.version()

        assert capsys.readouterr().out == "2.0.0\n"

    @pytest.mark.parametrize(
        ("message", "code", "verdict"),
        [
            ("Bump [release]", ErrorCode.OK, "release"),
            ("Fix typo", ErrorCode.USER_ERROR, "skip"),
            ("[Release]", ErrorCode.USER_ERROR, "skip"),
        ],
    )
    def test_gate(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
        message: str,
        code: ErrorCode,
        verdict: str,
    ) -> None:
        import relpipe.cli.commands.inspect_cmd as inspect_cmd

        _patch_context(monkeypatch, inspect_cmd, _ctx(tmp_path))

        with pytest.raises(typer.Exit) as exc:
            inspect_cmd.gate(message=message)

        assert exc.value.exit_code == int(code)
        assert capsys.readouterr().out.strip() == verdict


class TestPipelineCommands:
    def test_run_dry_run_releases_without_hosting(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        import relpipe.cli.commands.pipeline_cmd as pipeline_cmd

        ctx = _ctx(tmp_path)
        _patch_context(monkeypatch, pipeline_cmd, ctx)
        monkeypatch.setattr(pipeline_cmd, "_builder", lambda _ctx: FakeBuilder(tmp_path / "out"))

        with pytest.raises(typer.Exit) as exc:
            pipeline_cmd.run(
                message="Bump [release]",
                branch="master",
                event="push",
                platform=None,
                strict_version=False,
                resume=False,
                target=None,
                dry_run=True,
            )

        assert exc.value.exit_code == int(ErrorCode.OK)
        console = _console(ctx)
        assert console.find("(dry-run) create draft release 2.0.0: [2.0.0]")
        assert len(console.find("(dry-run) attach")) == 3
        assert (ctx.root / "dist" / "neko-2.0.0-windows.zip").is_file()

    def test_run_build_failure_exit_code(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        import relpipe.cli.commands.pipeline_cmd as pipeline_cmd

        ctx = _ctx(tmp_path)
        _patch_context(monkeypatch, pipeline_cmd, ctx)
        monkeypatch.setattr(
            pipeline_cmd,
            "_builder",
            lambda _ctx: FakeBuilder(tmp_path / "out", fail={Platform.LINUX}),
        )

        with pytest.raises(typer.Exit) as exc:
            pipeline_cmd.run(
                message="Bump [release]",
                branch=None,
                event="push",
                platform=None,
                strict_version=False,
                resume=False,
                target=None,
                dry_run=True,
            )

        assert exc.value.exit_code == int(ErrorCode.BUILD_ERROR)
        assert _console(ctx).find("run failed at stage: build")

    def test_build_then_release_from_store(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        import relpipe.cli.commands.pipeline_cmd as pipeline_cmd

        ctx = _ctx(tmp_path)
        _patch_context(monkeypatch, pipeline_cmd, ctx)
        monkeypatch.setattr(pipeline_cmd, "_builder", lambda _ctx: FakeBuilder(tmp_path / "out"))

        for platform in ("linux", "macos", "windows"):
            pipeline_cmd.build(platform=[platform])

        store = DirectoryArtifactStore(ctx.root / ".relpipe" / "artifacts", project="neko")
        assert len(store.get_all()) == 3

        with pytest.raises(typer.Exit) as exc:
            pipeline_cmd.release(
                message="Bump [release]",
                branch="master",
                event="push",
                strict_version=True,
                resume=False,
                target=None,
                dry_run=True,
            )

        assert exc.value.exit_code == int(ErrorCode.OK)
        assert len(_console(ctx).find("(dry-run) attach")) == 3

    def test_release_without_marker_is_skipped(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        import relpipe.cli.commands.pipeline_cmd as pipeline_cmd

        ctx = _ctx(tmp_path)
        _patch_context(monkeypatch, pipeline_cmd, ctx)

        with pytest.raises(typer.Exit) as exc:
            pipeline_cmd.release(
                message="Fix typo",
                branch="master",
                event="push",
                strict_version=False,
                resume=False,
                target=None,
                dry_run=False,
            )

        assert exc.value.exit_code == int(ErrorCode.OK)
        assert _console(ctx).find("release skipped")

    def test_build_failure_exit_code(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        import relpipe.cli.commands.pipeline_cmd as pipeline_cmd

        ctx = _ctx(tmp_path)
        _patch_context(monkeypatch, pipeline_cmd, ctx)
        monkeypatch.setattr(
            pipeline_cmd,
            "_builder",
            lambda _ctx: FakeBuilder(tmp_path / "out", fail={Platform.WINDOWS}),
        )

        with pytest.raises(typer.Exit) as exc:
            pipeline_cmd.build(platform=None)

        assert exc.value.exit_code == int(ErrorCode.BUILD_ERROR)
        assert _console(ctx).find("1 of 3 builds failed")

    def test_unknown_event(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        import relpipe.cli.commands.pipeline_cmd as pipeline_cmd

        _patch_context(monkeypatch, pipeline_cmd, _ctx(tmp_path))

        with pytest.raises(typer.BadParameter):
            pipeline_cmd.release(
                message="[release]",
                branch=None,
                event="tag",
                strict_version=False,
                resume=False,
                target=None,
                dry_run=True,
            )


def _run_kwargs(**overrides: object) -> dict[str, object]:
    kwargs: dict[str, object] = {
        "message": "Bump [release]",
        "branch": "master",
        "event": "push",
        "platform": None,
        "strict_version": False,
        "resume": False,
        "target": None,
        "dry_run": False,
    }
    kwargs.update(overrides)
    return kwargs


class TestStoreLocation:
    @pytest.mark.parametrize("artifacts_dir", [".", ".."])
    def test_store_containing_workspace_is_refused(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, artifacts_dir: str
    ) -> None:
        import relpipe.cli.commands.pipeline_cmd as pipeline_cmd

        ctx = _ctx(tmp_path, config=Config(build=BuildConfig(artifacts_dir=artifacts_dir)))
        _patch_context(monkeypatch, pipeline_cmd, ctx)
        monkeypatch.setattr(pipeline_cmd, "_builder", lambda _ctx: FakeBuilder(tmp_path / "out"))

        with pytest.raises(typer.Exit) as exc:
            pipeline_cmd.run(**_run_kwargs(dry_run=True))  # type: ignore[arg-type]

        assert exc.value.exit_code == int(ErrorCode.ENV_ERROR)
        assert (ctx.root / "Cargo.toml").is_file()
        assert _console(ctx).find("contains the workspace")


class TestGhLookup:
    def test_build_failure_is_reported_before_missing_gh(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        import relpipe.cli.commands.pipeline_cmd as pipeline_cmd
        from relpipe.pipeline import hosting

        ctx = _ctx(tmp_path)
        _patch_context(monkeypatch, pipeline_cmd, ctx)
        monkeypatch.setattr(hosting.shutil, "which", lambda _name: None)
        monkeypatch.setattr(
            pipeline_cmd,
            "_builder",
            lambda _ctx: FakeBuilder(tmp_path / "out", fail={Platform.LINUX}),
        )

        with pytest.raises(typer.Exit) as exc:
            pipeline_cmd.run(**_run_kwargs())  # type: ignore[arg-type]

        assert exc.value.exit_code == int(ErrorCode.BUILD_ERROR)
        assert not _console(ctx).find("gh: missing")

    def test_missing_gh_fails_at_create(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        import relpipe.cli.commands.pipeline_cmd as pipeline_cmd
        from relpipe.pipeline import hosting

        ctx = _ctx(tmp_path)
        _patch_context(monkeypatch, pipeline_cmd, ctx)
        monkeypatch.setattr(hosting.shutil, "which", lambda _name: None)
        monkeypatch.setattr(pipeline_cmd, "_builder", lambda _ctx: FakeBuilder(tmp_path / "out"))

        with pytest.raises(typer.Exit) as exc:
            pipeline_cmd.run(**_run_kwargs())  # type: ignore[arg-type]

        assert exc.value.exit_code == int(ErrorCode.NETWORK_ERROR)
        assert _console(ctx).find("run failed at stage: create")
        assert _console(ctx).find("gh: missing")
