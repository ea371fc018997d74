"""Pytest configuration for testbot tests."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest

from testbot.core.models import HostInfo, RunOptions, TargetFlags
from testbot.domain.config.config import PhaseCommands
from testbot.domain.target_run import TargetRun
from testbot.infra.io.config import TestBotConfig
from tests.fakes import FakeCommandRunner

# Variables that change testbot's behavior when inherited from the CI host
_ISOLATED_ENV = (
    "GITHUB_ACTIONS",
    "TESTBOT_PACKAGE_MANAGER",
    "TESTBOT_PREFIX",
    "TESTBOT_REPOSITORY",
    "TESTBOT_LIBRARY",
    "TESTBOT_REPORT_DIR",
    "HOMEBREW_PREFIX",
    "HOMEBREW_REPOSITORY",
    "HOMEBREW_LIBRARY",
)


def pytest_configure(config: pytest.Config) -> None:
    """Configure test environment before collection.

    Redirects debug logs to /tmp to avoid polluting the working tree.
    """
    os.environ["TESTBOT_LOGS_DIR"] = "/tmp/testbot-test-logs"


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Default unmarked tests to unit category."""
    for item in items:
        if any(marker in item.keywords for marker in ("unit", "integration")):
            continue
        item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ISOLATED_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def linux_host() -> HostInfo:
    return HostInfo(system="Linux", machine="x86_64")


@pytest.fixture
def mac_ci_host() -> HostInfo:
    return HostInfo(
        system="Darwin", machine="arm64", macos_version="14.4", github_actions=True
    )


@pytest.fixture
def config(tmp_path: Path, linux_host: HostInfo) -> TestBotConfig:
    """Configuration rooted in tmp_path."""
    prefix = tmp_path / "prefix"
    return TestBotConfig(
        host=linux_host,
        prefix=prefix,
        report_dir=tmp_path / "report",
        logs_dir=tmp_path / "logs",
        work_dir=tmp_path / "work",
    )


@pytest.fixture
def fake_runner() -> FakeCommandRunner:
    return FakeCommandRunner()


@pytest.fixture
def make_target_run(
    config: TestBotConfig, fake_runner: FakeCommandRunner
) -> Callable[..., TargetRun]:
    """Factory for TargetRun with sensible defaults."""

    def _make(
        target: str = "HEAD",
        flags: TargetFlags | None = None,
        options: RunOptions | None = None,
        commands: PhaseCommands | None = None,
        **kwargs: object,
    ) -> TargetRun:
        return TargetRun(
            target=target,
            flags=flags or TargetFlags(),
            options=options or RunOptions(),
            config=config,
            commands=commands or PhaseCommands(),
            runner=fake_runner,
            **kwargs,  # type: ignore[arg-type]
        )

    return _make
