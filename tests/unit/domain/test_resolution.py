"""Unit tests for GitTargetResolver."""

from __future__ import annotations

from pathlib import Path

import pytest

from testbot.domain.resolution import (
    GitTargetResolver,
    MissingTapError,
    TargetResolutionError,
    UsageError,
    split_qualified_name,
)
from tests.fakes import FakeCommandRunner


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    (tmp_path / "repo" / ".git").mkdir(parents=True)
    return tmp_path / "repo"


@pytest.fixture
def taps_dir(tmp_path: Path) -> Path:
    return tmp_path / "Taps"


def make_resolver(
    runner: FakeCommandRunner,
    repo: Path | None,
    taps_dir: Path,
    default_package: str | None = None,
) -> GitTargetResolver:
    return GitTargetResolver(
        runner=runner,
        package_manager="brew",
        repository=repo,
        taps_dir=taps_dir,
        default_package=default_package,
    )


class TestSplitQualifiedName:
    def test_qualified(self) -> None:
        assert split_qualified_name("acme/tools/widget") == ("acme/tools", "widget")

    def test_unqualified(self) -> None:
        assert split_qualified_name("widget") == (None, "widget")


class TestRevisionTargets:
    def test_head_resolves_to_commit(self, repo: Path, taps_dir: Path) -> None:
        runner = FakeCommandRunner()
        runner.respond(("git", "-C", str(repo), "rev-parse"), output="abc123\n")

        resolved = make_resolver(runner, repo, taps_dir).resolve("HEAD")

        assert resolved.commit == "abc123"
        assert resolved.packages == ()
        assert runner.commands[0][-1] == "HEAD^{commit}"

    def test_default_package_tested_for_revisions(self, repo: Path, taps_dir: Path) -> None:
        runner = FakeCommandRunner()
        runner.respond(("git",), output="abc123\n")

        resolved = make_resolver(runner, repo, taps_dir, default_package="hello").resolve(
            "HEAD~1"
        )

        assert resolved.packages == ("hello",)

    def test_head_outside_git_checkout(self, tmp_path: Path, taps_dir: Path) -> None:
        runner = FakeCommandRunner(strict=True)

        resolved = make_resolver(runner, tmp_path, taps_dir).resolve("HEAD")

        assert resolved.identifier == "HEAD"
        assert resolved.commit is None
        assert runner.calls == []


class TestPackageTargets:
    def test_known_package(self, repo: Path, taps_dir: Path) -> None:
        runner = FakeCommandRunner()
        runner.respond(("git",), returncode=1)
        runner.respond(("brew", "info"), output="widget: stable 1.0")

        resolved = make_resolver(runner, repo, taps_dir).resolve("widget")

        assert resolved.packages == ("widget",)
        assert resolved.commit is None

    def test_unknown_package_raises(self, repo: Path, taps_dir: Path) -> None:
        runner = FakeCommandRunner()
        runner.respond(("git",), returncode=1)
        runner.respond(("brew", "info"), returncode=1)

        with pytest.raises(TargetResolutionError, match="neither a revision"):
            make_resolver(runner, repo, taps_dir).resolve("nope")

    def test_resolution_error_is_usage_error(self) -> None:
        assert issubclass(TargetResolutionError, UsageError)
        assert issubclass(MissingTapError, TargetResolutionError)


class TestMissingTapRetry:
    def test_taps_once_then_retries(self, repo: Path, taps_dir: Path) -> None:
        tap_path = taps_dir / "acme" / "homebrew-tools"

        class TappingRunner(FakeCommandRunner):
            def run(self, cmd, env=None, stream=False, cwd=None):  # type: ignore[no-untyped-def]
                result = super().run(cmd, env, stream, cwd)
                if tuple(cmd[:2]) == ("brew", "tap"):
                    tap_path.mkdir(parents=True)
                return result

        runner = TappingRunner()

        resolved = make_resolver(runner, None, taps_dir).resolve("acme/tools/widget")

        assert resolved.packages == ("acme/tools/widget",)
        assert runner.commands.count(("brew", "tap", "acme/tools")) == 1
        assert runner.ran("brew", "info", "acme/tools/widget")

    def test_gives_up_after_one_corrective_tap(self, taps_dir: Path) -> None:
        runner = FakeCommandRunner()

        with pytest.raises(TargetResolutionError, match="still missing") as exc_info:
            make_resolver(runner, None, taps_dir).resolve("acme/tools/widget")

        assert isinstance(exc_info.value.__cause__, MissingTapError)
        assert runner.commands.count(("brew", "tap", "acme/tools")) == 1
        assert not runner.ran("brew", "info")

    def test_installed_tap_needs_no_tapping(self, taps_dir: Path) -> None:
        (taps_dir / "acme" / "homebrew-tools").mkdir(parents=True)
        runner = FakeCommandRunner()

        make_resolver(runner, None, taps_dir).resolve("acme/tools/widget")

        assert not runner.ran("brew", "tap")
