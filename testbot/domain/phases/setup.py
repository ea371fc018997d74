"""Setup phase: check that the package manager is healthy."""

from __future__ import annotations

from typing import TYPE_CHECKING

from testbot.core.models import Phase
from testbot.domain.phases.commands import phase_header, run_configured_commands

if TYPE_CHECKING:
    from testbot.domain.target_run import TargetRun


def setup(run: TargetRun) -> None:
    phase_header(Phase.SETUP)
    run_configured_commands(run, Phase.SETUP)
