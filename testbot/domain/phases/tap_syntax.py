"""Static checks phase ("tap syntax"): style, readall and audit of a tap."""

from __future__ import annotations

from typing import TYPE_CHECKING

from testbot.core.models import Phase
from testbot.domain.phases.commands import phase_header, run_configured_commands
from testbot.infra.io.console import Colors, log

if TYPE_CHECKING:
    from testbot.domain.target_run import TargetRun


def tap_syntax(run: TargetRun) -> None:
    """Run the static checks configured for the tap under test.

    Skipped with a notice when no tap was given.
    """
    phase_header(Phase.STATIC_CHECKS)
    if run.tap is None:
        log("○", "No tap given; skipping static checks", Colors.GRAY, dim=True)
        return
    run_configured_commands(run, Phase.STATIC_CHECKS)
