"""TestOrchestrator: runs every target of an invocation.

The orchestrator resolves each target, decides its skip flags, hands it to
the PhaseRunner and collects the results into a TestRun. Setup and
cleanup-before run for the first target that resolves; cleanup-after runs
for the last one.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from testbot.core.models import TargetFlags
from testbot.domain.resolution import DEFAULT_TARGET, TargetResolutionError
from testbot.domain.step import FailFastAbort
from testbot.domain.target_run import TargetRun, TestRun
from testbot.infra.io.console import Colors, log, truncate_text

if TYPE_CHECKING:
    from collections.abc import Sequence

    from testbot.core.models import RunOptions, Tap
    from testbot.core.protocols import CommandRunnerPort, TargetResolver
    from testbot.domain.config.config import PhaseCommands
    from testbot.infra.io.config import TestBotConfig
    from testbot.orchestration.phase_runner import PhaseRunner

logger = logging.getLogger(__name__)


def target_flags(first: bool, last: bool, skip_setup: bool) -> TargetFlags:
    """Skip flags for a target that reached the PhaseRunner.

    Args:
        first: No earlier target of the batch reached the PhaseRunner.
        last: The target is the last one of the batch.
        skip_setup: --skip-setup was given.
    """
    return TargetFlags(
        skip_setup=skip_setup if first else True,
        skip_cleanup_before=not first,
        skip_cleanup_after=not last,
    )


class TestOrchestrator:
    """Runs targets in order and aggregates the verdict.

    Args:
        config: Environment configuration.
        options: Run-wide switches.
        commands: Configured phase commands.
        runner: Runs step commands and queries.
        resolver: Resolves targets before their phases run.
        phase_runner: Runs the phases of each target.
        tap: Tap under test, if any.
    """

    # Not a test class, despite the name
    __test__ = False

    def __init__(
        self,
        config: TestBotConfig,
        options: RunOptions,
        commands: PhaseCommands,
        runner: CommandRunnerPort,
        resolver: TargetResolver,
        phase_runner: PhaseRunner,
        tap: Tap | None = None,
    ) -> None:
        self.config = config
        self.options = options
        self.commands = commands
        self.runner = runner
        self.resolver = resolver
        self.phase_runner = phase_runner
        self.tap = tap

    def run(self, targets: Sequence[str]) -> TestRun:
        """Run all targets, HEAD when none are given.

        Raises:
            FailFastAbort: With fail-fast on, when a step fails or a target
                cannot be resolved.
            InvariantViolation: If a step is built incorrectly.
        """
        targets = list(targets) or [DEFAULT_TARGET]
        test_run = TestRun()

        for index, target in enumerate(targets):
            try:
                resolved = self.resolver.resolve(target)
            except TargetResolutionError as e:
                message = f"Cannot test {target}: {e}"
                logger.error(message)
                log("✗", truncate_text(message, 200), Colors.RED)
                test_run.errors.append(message)
                if self.options.fail_fast:
                    raise FailFastAbort(reason=message) from e
                continue

            flags = target_flags(
                first=not test_run.runs,
                last=index == len(targets) - 1,
                skip_setup=self.options.skip_setup,
            )
            logger.debug("Target %s: %s", target, flags)
            target_run = TargetRun(
                target=target,
                flags=flags,
                options=self.options,
                config=self.config,
                commands=self.commands,
                runner=self.runner,
                tap=self.tap,
                resolved=resolved,
            )
            test_run.runs.append(target_run)
            passed = self.phase_runner.run(target_run)
            logger.info("Target %s %s", target, "passed" if passed else "failed")

        if test_run.runs and test_run.runs[-1].flags.skip_cleanup_after:
            last_run = test_run.runs[-1]
            logger.debug("Last target unresolved; cleaning up after %s", last_run.target)
            self.phase_runner.run_cleanup_after(last_run)

        return test_run
