"""Factory function for TestOrchestrator initialization.

create_orchestrator() wires the configuration, the phase commands and the
collaborators together. Tests pass fakes for the runner, resolver or phase
table; the CLI uses the defaults.

Usage:
    config = TestBotConfig.from_env()
    orchestrator = create_orchestrator(config, RunOptions(dry_run=True))
    test_run = orchestrator.run(["HEAD"])
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from testbot.domain.config import load_config
from testbot.domain.phases import default_phase_table
from testbot.domain.resolution import GitTargetResolver, UsageError
from testbot.infra.tools.command_runner import CommandRunner
from testbot.orchestration.orchestrator import TestOrchestrator
from testbot.orchestration.phase_runner import PhaseRunner

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from testbot.core.models import Phase, RunOptions
    from testbot.core.protocols import CommandRunnerPort, TargetResolver
    from testbot.domain.config.config import PhaseCommands
    from testbot.domain.phases import PhaseFunc
    from testbot.infra.io.config import TestBotConfig

logger = logging.getLogger(__name__)


def create_orchestrator(
    config: TestBotConfig,
    options: RunOptions,
    *,
    tap_name: str | None = None,
    config_path: Path | None = None,
    commands: PhaseCommands | None = None,
    runner: CommandRunnerPort | None = None,
    resolver: TargetResolver | None = None,
    phases: Mapping[Phase, PhaseFunc] | None = None,
) -> TestOrchestrator:
    """Build a TestOrchestrator.

    Args:
        config: Environment configuration.
        options: Run-wide switches.
        tap_name: user/repo name of the tap under test.
        config_path: Explicit testbot.yaml (--config).
        commands: Phase commands; loaded from testbot.yaml when None.
        runner: Command runner; a CommandRunner in the work directory by default.
        resolver: Target resolver; a GitTargetResolver by default.
        phases: Phase implementations; default_phase_table() by default.

    Raises:
        UsageError: If tap_name is not a valid tap name.
        ConfigError: If testbot.yaml or its preset is invalid.
    """
    tap = None
    if tap_name:
        try:
            tap = config.fetch_tap(tap_name)
        except ValueError as e:
            raise UsageError(str(e)) from e

    if commands is None:
        commands = load_config(tap.path if tap is not None else config.work_dir, config_path)

    if options.local:
        home, _ = config.local_dirs()
        if not options.dry_run:
            home.mkdir(parents=True, exist_ok=True)
        commands = dataclasses.replace(
            commands, env={**commands.env, **config.local_env()}
        )

    if runner is None:
        runner = CommandRunner(cwd=config.work_dir)

    if resolver is None:
        resolver = GitTargetResolver(
            runner=runner,
            package_manager=config.package_manager,
            repository=tap.path if tap is not None else config.repository,
            taps_dir=config.taps_dir,
            default_package=options.test_default_package,
        )

    logger.debug(
        "Orchestrator for tap=%s preset=%s options=%s",
        tap,
        commands.preset,
        options,
    )
    return TestOrchestrator(
        config=config,
        options=options,
        commands=commands,
        runner=runner,
        resolver=resolver,
        phase_runner=PhaseRunner(phases if phases is not None else default_phase_table()),
        tap=tap,
    )
