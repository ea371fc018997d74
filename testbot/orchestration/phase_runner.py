"""PhaseRunner: runs the fixed phase sequence for one target.

Phases run in PHASE_ORDER. cleanup_after sits in a finally block so it runs
even when an earlier phase raised; the only thing that prevents it is a
fail-fast abort, which must stop the process without further steps.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from testbot.core.models import PHASE_ORDER, Phase
from testbot.domain.step import FailFastAbort, InvariantViolation
from testbot.infra.io.console import Colors, log, truncate_text

if TYPE_CHECKING:
    from collections.abc import Mapping

    from testbot.domain.phases import PhaseFunc
    from testbot.domain.target_run import TargetRun

logger = logging.getLogger(__name__)


class PhaseRunner:
    """Runs the phases of a TargetRun.

    Args:
        phases: Callable for every Phase, usually default_phase_table().
    """

    def __init__(self, phases: Mapping[Phase, PhaseFunc]) -> None:
        missing = [phase for phase in PHASE_ORDER if phase not in phases]
        if missing:
            raise ValueError(
                "Missing phase implementations: "
                + ", ".join(phase.value for phase in missing)
            )
        self.phases = dict(phases)

    def should_run(self, run: TargetRun, phase: Phase) -> bool:
        """Whether phase runs for this target, given its flags and options."""
        if not run.options.phase_selected(phase):
            return False
        if phase is Phase.CLEANUP_BEFORE:
            return not run.flags.skip_cleanup_before
        if phase is Phase.SETUP:
            return not run.flags.skip_setup
        if phase is Phase.CLEANUP_AFTER:
            return not run.flags.skip_cleanup_after
        return True

    def run(self, run: TargetRun) -> bool:
        """Run every selected phase for the target.

        Returns:
            Whether the target passed: no phase error and no failed step.

        Raises:
            FailFastAbort: A step failed with fail-fast on. cleanup_after
                does not run.
            InvariantViolation: A step was built incorrectly. Raised after
                cleanup_after has run.
        """
        aborted = False
        try:
            for phase in PHASE_ORDER[:-1]:
                if self.should_run(run, phase) and not self._run_phase(run, phase):
                    break
        except FailFastAbort:
            aborted = True
            raise
        finally:
            if not aborted and self.should_run(run, Phase.CLEANUP_AFTER):
                self._run_phase(run, Phase.CLEANUP_AFTER)

        return run.passed

    def run_cleanup_after(self, run: TargetRun) -> None:
        """Run cleanup_after alone for a target whose flags skipped it.

        The orchestrator calls this when the last target of a batch could
        not be resolved, so the batch still gets its one teardown.
        """
        if run.options.phase_selected(Phase.CLEANUP_AFTER):
            self._run_phase(run, Phase.CLEANUP_AFTER)

    def _run_phase(self, run: TargetRun, phase: Phase) -> bool:
        """Run one phase, recording an error instead of raising.

        Returns:
            Whether the phase completed.
        """
        logger.debug("Target %s: starting %s", run.target, phase.value)
        try:
            self.phases[phase](run)
        except (FailFastAbort, InvariantViolation):
            raise
        except Exception as e:
            message = f"{phase.title} failed for {run.target}: {e}"
            logger.exception("Phase %s raised for %s", phase.value, run.target)
            log("✗", truncate_text(message, 200), Colors.RED)
            run.errors.append(message)
            return False
        run.completed_phases.append(phase)
        return True
