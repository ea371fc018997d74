"""Cleanup-after phase."""

from __future__ import annotations

import logging
import shutil
from typing import TYPE_CHECKING

from testbot.core.models import Phase
from testbot.domain.phases.cleanup import cleanup_repository
from testbot.domain.phases.commands import phase_header, run_configured_commands

if TYPE_CHECKING:
    from testbot.domain.target_run import TargetRun

logger = logging.getLogger(__name__)


def cleanup_after(run: TargetRun) -> None:
    """Leave the machine the way the next run expects it.

    With --local, the per-run home and logs directories are removed too.
    """
    phase_header(Phase.CLEANUP_AFTER)
    if run.options.cleanup:
        cleanup_repository(run)
    run_configured_commands(run, Phase.CLEANUP_AFTER)

    if run.options.local and not run.options.dry_run:
        for directory in run.config.local_dirs():
            logger.debug("Removing local directory %s", directory)
            shutil.rmtree(directory, ignore_errors=True)
