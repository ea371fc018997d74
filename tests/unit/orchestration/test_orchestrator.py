"""Unit tests for TestOrchestrator batch handling.

Uses FakeTargetResolver and FakeCommandRunner so no target is resolved
against a real git checkout and no command is spawned.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from testbot.core.models import Phase, RunOptions, TargetFlags
from testbot.domain.config.config import CommandConfig, PhaseCommands
from testbot.domain.phases import default_phase_table
from testbot.domain.step import FailFastAbort
from testbot.orchestration.orchestrator import TestOrchestrator, target_flags
from testbot.orchestration.phase_runner import PhaseRunner
from tests.fakes import FakeCommandRunner, FakeTargetResolver

if TYPE_CHECKING:
    from collections.abc import Callable

    from testbot.domain.phases import PhaseFunc
    from testbot.domain.target_run import TargetRun
    from testbot.infra.io.config import TestBotConfig


class PhaseLog:
    """Records (target, phase) for every phase that ran."""

    def __init__(self) -> None:
        self.entries: list[tuple[str, Phase]] = []

    def table(self) -> dict[Phase, PhaseFunc]:
        def make(phase: Phase) -> PhaseFunc:
            def run_phase(run: TargetRun) -> None:
                self.entries.append((run.target, phase))

            return run_phase

        return {phase: make(phase) for phase in Phase}

    def phases_for(self, target: str) -> list[Phase]:
        return [phase for name, phase in self.entries if name == target]


@pytest.fixture
def phase_log() -> PhaseLog:
    return PhaseLog()


@pytest.fixture
def make_orchestrator(
    config: TestBotConfig, fake_runner: FakeCommandRunner
) -> Callable[..., TestOrchestrator]:
    def _make(
        options: RunOptions | None = None,
        resolver: FakeTargetResolver | None = None,
        phases: dict[Phase, PhaseFunc] | None = None,
        commands: PhaseCommands | None = None,
    ) -> TestOrchestrator:
        return TestOrchestrator(
            config=config,
            options=options or RunOptions(),
            commands=commands or PhaseCommands(),
            runner=fake_runner,
            resolver=resolver or FakeTargetResolver(),
            phase_runner=PhaseRunner(phases or default_phase_table()),
        )

    return _make


class TestTargetFlags:
    def test_single_target_runs_everything(self) -> None:
        assert target_flags(first=True, last=True, skip_setup=False) == TargetFlags()

    def test_single_target_honors_skip_setup(self) -> None:
        flags = target_flags(first=True, last=True, skip_setup=True)
        assert flags == TargetFlags(skip_setup=True)

    def test_middle_target_skips_once_only_phases(self) -> None:
        assert target_flags(first=False, last=False, skip_setup=False) == TargetFlags(
            skip_setup=True, skip_cleanup_before=True, skip_cleanup_after=True
        )


class TestOrchestratorRun:
    def test_flags_propagated_across_batch(
        self, make_orchestrator: Callable[..., TestOrchestrator], phase_log: PhaseLog
    ) -> None:
        orchestrator = make_orchestrator(phases=phase_log.table())

        test_run = orchestrator.run(["A", "B", "C"])

        assert [run.target for run in test_run.runs] == ["A", "B", "C"]
        assert phase_log.phases_for("A") == [
            Phase.CLEANUP_BEFORE,
            Phase.SETUP,
            Phase.STATIC_CHECKS,
            Phase.FUNCTIONAL_TESTS,
        ]
        assert phase_log.phases_for("B") == [Phase.STATIC_CHECKS, Phase.FUNCTIONAL_TESTS]
        assert phase_log.phases_for("C") == [
            Phase.STATIC_CHECKS,
            Phase.FUNCTIONAL_TESTS,
            Phase.CLEANUP_AFTER,
        ]
        assert test_run.passed

    def test_defaults_to_head(
        self, make_orchestrator: Callable[..., TestOrchestrator]
    ) -> None:
        resolver = FakeTargetResolver()

        test_run = make_orchestrator(resolver=resolver).run([])

        assert resolver.resolved == ["HEAD"]
        assert test_run.runs[0].target == "HEAD"

    def test_resolved_packages_handed_to_phases(
        self,
        make_orchestrator: Callable[..., TestOrchestrator],
        fake_runner: FakeCommandRunner,
    ) -> None:
        commands = PhaseCommands(
            functional_tests=(CommandConfig(argv=("brew", "test")),)
        )
        orchestrator = make_orchestrator(
            resolver=FakeTargetResolver(packages=("foo",)), commands=commands
        )

        orchestrator.run(["foo"])

        assert fake_runner.commands == [("brew", "test", "foo")]

    def test_unresolvable_target_is_run_error(
        self, make_orchestrator: Callable[..., TestOrchestrator], phase_log: PhaseLog
    ) -> None:
        resolver = FakeTargetResolver(unresolvable={"bogus"})
        orchestrator = make_orchestrator(resolver=resolver, phases=phase_log.table())

        test_run = orchestrator.run(["bogus", "good"])

        assert [run.target for run in test_run.runs] == ["good"]
        assert test_run.errors == [
            "Cannot test bogus: bogus is neither a revision nor a known package"
        ]
        assert not test_run.passed
        assert phase_log.phases_for("bogus") == []

    def test_unresolvable_first_target_hands_setup_to_next(
        self, make_orchestrator: Callable[..., TestOrchestrator], phase_log: PhaseLog
    ) -> None:
        resolver = FakeTargetResolver(unresolvable={"bad"})
        orchestrator = make_orchestrator(resolver=resolver, phases=phase_log.table())

        orchestrator.run(["bad", "B", "C"])

        assert phase_log.phases_for("B") == [
            Phase.CLEANUP_BEFORE,
            Phase.SETUP,
            Phase.STATIC_CHECKS,
            Phase.FUNCTIONAL_TESTS,
        ]
        assert phase_log.phases_for("C") == [
            Phase.STATIC_CHECKS,
            Phase.FUNCTIONAL_TESTS,
            Phase.CLEANUP_AFTER,
        ]

    def test_unresolvable_last_target_still_cleans_up_after(
        self, make_orchestrator: Callable[..., TestOrchestrator], phase_log: PhaseLog
    ) -> None:
        resolver = FakeTargetResolver(unresolvable={"bad"})
        orchestrator = make_orchestrator(resolver=resolver, phases=phase_log.table())

        test_run = orchestrator.run(["A", "B", "bad"])

        assert phase_log.phases_for("A") == [
            Phase.CLEANUP_BEFORE,
            Phase.SETUP,
            Phase.STATIC_CHECKS,
            Phase.FUNCTIONAL_TESTS,
        ]
        assert phase_log.phases_for("B") == [
            Phase.STATIC_CHECKS,
            Phase.FUNCTIONAL_TESTS,
            Phase.CLEANUP_AFTER,
        ]
        assert [entry[1] for entry in phase_log.entries].count(Phase.CLEANUP_AFTER) == 1
        assert not test_run.passed

    def test_no_resolvable_target_runs_nothing(
        self, make_orchestrator: Callable[..., TestOrchestrator], phase_log: PhaseLog
    ) -> None:
        resolver = FakeTargetResolver(unresolvable={"bad", "worse"})
        orchestrator = make_orchestrator(resolver=resolver, phases=phase_log.table())

        test_run = orchestrator.run(["bad", "worse"])

        assert phase_log.entries == []
        assert len(test_run.errors) == 2

    def test_unresolvable_target_with_fail_fast_aborts(
        self, make_orchestrator: Callable[..., TestOrchestrator]
    ) -> None:
        orchestrator = make_orchestrator(
            options=RunOptions(fail_fast=True),
            resolver=FakeTargetResolver(unresolvable={"bogus"}),
        )

        with pytest.raises(FailFastAbort, match="Cannot test bogus"):
            orchestrator.run(["bogus"])

    def test_failing_step_with_fail_fast_stops_batch(
        self,
        make_orchestrator: Callable[..., TestOrchestrator],
        fake_runner: FakeCommandRunner,
    ) -> None:
        fake_runner.respond(("false",), returncode=1)
        commands = PhaseCommands(setup=(CommandConfig(argv=("false",)),))
        resolver = FakeTargetResolver()
        orchestrator = make_orchestrator(
            options=RunOptions(fail_fast=True), resolver=resolver, commands=commands
        )

        with pytest.raises(FailFastAbort) as exc_info:
            orchestrator.run(["A", "B"])

        assert resolver.resolved == ["A"]
        assert exc_info.value.step is not None
        assert exc_info.value.step.command == ("false",)

    def test_failed_step_fails_run(
        self,
        make_orchestrator: Callable[..., TestOrchestrator],
        fake_runner: FakeCommandRunner,
    ) -> None:
        fake_runner.respond(("false",), returncode=1)
        commands = PhaseCommands(setup=(CommandConfig(argv=("false",)),))

        test_run = make_orchestrator(commands=commands).run(["HEAD"])

        assert not test_run.passed
        assert [step.command for step in test_run.failed_steps] == [("false",)]
