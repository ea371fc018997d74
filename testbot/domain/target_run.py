"""Per-target and per-run state.

TargetRun is the context handed to every phase: it knows the target, the
tap, the skip flags and the run options, and collects the Steps created
for that target. TestRun aggregates target runs into the overall verdict.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from testbot.domain.step import Step

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from pathlib import Path

    from testbot.core.models import (
        Phase,
        ResolvedTarget,
        RunOptions,
        Tap,
        TargetFlags,
    )
    from testbot.core.protocols import CommandRunnerPort
    from testbot.domain.config.config import PhaseCommands
    from testbot.infra.io.config import TestBotConfig


@dataclass
class TargetRun:
    """Everything the phases of one target need.

    Attributes:
        target: Target identifier as given on the command line.
        flags: Skip flags decided by the orchestrator.
        options: Run-wide switches.
        config: Environment configuration.
        commands: Configured commands per phase.
        runner: Command runner shared by steps and queries.
        tap: Tap under test, if any.
        resolved: Resolution result, set before the functional tests.
        steps: Steps created for this target, in creation order.
        errors: Phase errors recorded for this target.
        completed_phases: Phases that ran to completion.
    """

    # Not a test class, despite the name
    __test__ = False

    target: str
    flags: TargetFlags
    options: RunOptions
    config: TestBotConfig
    commands: PhaseCommands
    runner: CommandRunnerPort
    tap: Tap | None = None
    resolved: ResolvedTarget | None = None
    steps: list[Step] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    completed_phases: list[Phase] = field(default_factory=list)

    @property
    def repository(self) -> Path | None:
        """Checkout under test: the tap if given, else the package repository."""
        if self.tap is not None:
            return self.tap.path
        return self.config.repository

    def test(
        self,
        *command: str,
        env: Mapping[str, str | None] | None = None,
        verbose: bool = False,
        named_args: str | Iterable[str] | None = None,
        ignore_failures: bool = False,
    ) -> Step:
        """Create a Step for command, record it and run it.

        Raises:
            FailFastAbort: If fail-fast is on and the step failed.
            InvariantViolation: If the command breaks a step invariant.
        """
        step = Step(
            command,
            host=self.config.host,
            prefixes=self.config.display_prefixes(self.repository),
            env={**self.commands.env, **(env or {})},
            verbose=verbose or self.options.verbose,
            named_args=named_args,
            ignore_failures=ignore_failures,
            repository=self.repository,
            runner=self.runner,
        )
        self.steps.append(step)
        step.run(dry_run=self.options.dry_run, fail_fast=self.options.fail_fast)
        return step

    def all_steps_passed(self) -> bool:
        return all(step.passed or step.ignored for step in self.steps)

    @property
    def passed(self) -> bool:
        return not self.errors and self.all_steps_passed()

    @property
    def failed_steps(self) -> list[Step]:
        return [step for step in self.steps if step.failed]


@dataclass
class TestRun:
    """Outcome of a whole invocation.

    Attributes:
        runs: Target runs in execution order.
        errors: Run-level errors, e.g. targets that could not be resolved.
    """

    __test__ = False

    runs: list[TargetRun] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def steps(self) -> list[Step]:
        return [step for run in self.runs for step in run.steps]

    @property
    def failed_steps(self) -> list[Step]:
        return [step for step in self.steps if step.failed]

    @property
    def passed(self) -> bool:
        return not self.errors and all(run.passed for run in self.runs)
