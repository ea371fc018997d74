"""Cleanup-before phase."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from testbot.core.models import Phase
from testbot.domain.phases.cleanup import cleanup_repository, remove_stale_bottles
from testbot.domain.phases.commands import phase_header, run_configured_commands

if TYPE_CHECKING:
    from testbot.domain.target_run import TargetRun


def cleanup_before(run: TargetRun) -> None:
    """Reset leftovers from earlier runs before anything is tested.

    Destructive cleanup only happens with --cleanup.
    """
    phase_header(Phase.CLEANUP_BEFORE)
    if run.options.cleanup:
        remove_stale_bottles(Path.cwd(), dry_run=run.options.dry_run)
        cleanup_repository(run)
    run_configured_commands(run, Phase.CLEANUP_BEFORE)
