"""The phases run for every target, in Phase order.

Each phase is a plain callable taking the TargetRun; it creates Steps
through TargetRun.test().
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from testbot.core.models import Phase
from testbot.domain.phases.cleanup_after import cleanup_after
from testbot.domain.phases.cleanup_before import cleanup_before
from testbot.domain.phases.package_tests import package_tests
from testbot.domain.phases.setup import setup
from testbot.domain.phases.tap_syntax import tap_syntax

if TYPE_CHECKING:
    from testbot.domain.target_run import TargetRun

PhaseFunc = Callable[["TargetRun"], None]


def default_phase_table() -> dict[Phase, PhaseFunc]:
    """Map every Phase to the callable implementing it."""
    return {
        Phase.CLEANUP_BEFORE: cleanup_before,
        Phase.SETUP: setup,
        Phase.STATIC_CHECKS: tap_syntax,
        Phase.FUNCTIONAL_TESTS: package_tests,
        Phase.CLEANUP_AFTER: cleanup_after,
    }


__all__ = ["PhaseFunc", "default_phase_table"]
