"""Unit tests for PhaseRunner ordering, selection and error handling."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from testbot.core.models import PHASE_ORDER, Phase, RunOptions, TargetFlags
from testbot.domain.step import FailFastAbort, InvariantViolation
from testbot.orchestration.phase_runner import PhaseRunner

if TYPE_CHECKING:
    from collections.abc import Callable

    from testbot.domain.phases import PhaseFunc
    from testbot.domain.target_run import TargetRun
    from tests.fakes import FakeCommandRunner


class RecordingPhases:
    """Phase table whose callables record the order they were called in."""

    def __init__(self) -> None:
        self.called: list[Phase] = []
        self.behavior: dict[Phase, PhaseFunc] = {}

    def table(self) -> dict[Phase, PhaseFunc]:
        return {phase: self._make(phase) for phase in Phase}

    def _make(self, phase: Phase) -> PhaseFunc:
        def run_phase(run: TargetRun) -> None:
            self.called.append(phase)
            if phase in self.behavior:
                self.behavior[phase](run)

        return run_phase


def run_command(*command: str) -> PhaseFunc:
    def run_phase(run: TargetRun) -> None:
        run.test(*command)

    return run_phase


@pytest.fixture
def phases() -> RecordingPhases:
    return RecordingPhases()


def test_missing_phase_rejected() -> None:
    with pytest.raises(ValueError, match="cleanup_after"):
        PhaseRunner({phase: lambda run: None for phase in PHASE_ORDER[:-1]})


def test_runs_all_phases_in_order(
    phases: RecordingPhases, make_target_run: Callable[..., TargetRun]
) -> None:
    run = make_target_run()

    assert PhaseRunner(phases.table()).run(run) is True

    assert phases.called == list(PHASE_ORDER)
    assert run.completed_phases == list(PHASE_ORDER)


def test_only_phases_selects_subset(
    phases: RecordingPhases, make_target_run: Callable[..., TargetRun]
) -> None:
    options = RunOptions(only_phases=frozenset({Phase.FUNCTIONAL_TESTS, Phase.SETUP}))

    PhaseRunner(phases.table()).run(make_target_run(options=options))

    assert phases.called == [Phase.SETUP, Phase.FUNCTIONAL_TESTS]


@pytest.mark.parametrize(
    ("flags", "skipped"),
    [
        (TargetFlags(skip_setup=True), Phase.SETUP),
        (TargetFlags(skip_cleanup_before=True), Phase.CLEANUP_BEFORE),
        (TargetFlags(skip_cleanup_after=True), Phase.CLEANUP_AFTER),
    ],
)
def test_flags_skip_phases(
    phases: RecordingPhases,
    make_target_run: Callable[..., TargetRun],
    flags: TargetFlags,
    skipped: Phase,
) -> None:
    PhaseRunner(phases.table()).run(make_target_run(flags=flags))

    assert phases.called == [phase for phase in PHASE_ORDER if phase is not skipped]


def test_phase_error_recorded_and_cleanup_after_still_runs(
    phases: RecordingPhases, make_target_run: Callable[..., TargetRun]
) -> None:
    def explode(run: TargetRun) -> None:
        raise RuntimeError("disk full")

    phases.behavior[Phase.SETUP] = explode
    run = make_target_run(target="HEAD")

    assert PhaseRunner(phases.table()).run(run) is False

    assert phases.called == [Phase.CLEANUP_BEFORE, Phase.SETUP, Phase.CLEANUP_AFTER]
    assert run.errors == ["Setup failed for HEAD: disk full"]
    assert Phase.SETUP not in run.completed_phases
    assert Phase.CLEANUP_AFTER in run.completed_phases


def test_failed_step_fails_target_without_stopping_phases(
    phases: RecordingPhases,
    make_target_run: Callable[..., TargetRun],
    fake_runner: FakeCommandRunner,
) -> None:
    fake_runner.respond(("false",), returncode=1)
    phases.behavior[Phase.SETUP] = run_command("false")
    run = make_target_run()

    assert PhaseRunner(phases.table()).run(run) is False

    assert phases.called == list(PHASE_ORDER)
    assert run.errors == []
    assert [step.command for step in run.failed_steps] == [("false",)]


def test_fail_fast_skips_cleanup_after(
    phases: RecordingPhases,
    make_target_run: Callable[..., TargetRun],
    fake_runner: FakeCommandRunner,
) -> None:
    fake_runner.respond(("false",), returncode=1)
    phases.behavior[Phase.SETUP] = run_command("false")
    run = make_target_run(options=RunOptions(fail_fast=True))

    with pytest.raises(FailFastAbort):
        PhaseRunner(phases.table()).run(run)

    assert phases.called == [Phase.CLEANUP_BEFORE, Phase.SETUP]


def test_invariant_violation_propagates_after_cleanup_after(
    phases: RecordingPhases, make_target_run: Callable[..., TargetRun]
) -> None:
    phases.behavior[Phase.SETUP] = run_command("git", "status")
    run = make_target_run()

    with pytest.raises(InvariantViolation):
        PhaseRunner(phases.table()).run(run)

    assert phases.called == [Phase.CLEANUP_BEFORE, Phase.SETUP, Phase.CLEANUP_AFTER]
    assert Phase.CLEANUP_AFTER in run.completed_phases


def test_run_cleanup_after_ignores_skip_flag(
    phases: RecordingPhases, make_target_run: Callable[..., TargetRun]
) -> None:
    run = make_target_run(flags=TargetFlags(skip_cleanup_after=True))

    PhaseRunner(phases.table()).run_cleanup_after(run)

    assert phases.called == [Phase.CLEANUP_AFTER]


def test_run_cleanup_after_respects_phase_selection(
    phases: RecordingPhases, make_target_run: Callable[..., TargetRun]
) -> None:
    options = RunOptions(only_phases=frozenset({Phase.SETUP}))
    run = make_target_run(flags=TargetFlags(skip_cleanup_after=True), options=options)

    PhaseRunner(phases.table()).run_cleanup_after(run)

    assert phases.called == []


def test_should_run_respects_options_and_flags(
    phases: RecordingPhases, make_target_run: Callable[..., TargetRun]
) -> None:
    runner = PhaseRunner(phases.table())
    run = make_target_run(
        flags=TargetFlags(skip_setup=True),
        options=RunOptions(only_phases=frozenset({Phase.SETUP, Phase.STATIC_CHECKS})),
    )

    assert runner.should_run(run, Phase.SETUP) is False
    assert runner.should_run(run, Phase.STATIC_CHECKS) is True
    assert runner.should_run(run, Phase.CLEANUP_AFTER) is False
