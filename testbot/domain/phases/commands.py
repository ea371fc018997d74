"""Running configured phase commands as steps."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from testbot.infra.io.console import Colors, log

if TYPE_CHECKING:
    from testbot.core.models import Phase
    from testbot.domain.target_run import TargetRun

logger = logging.getLogger(__name__)


def phase_header(phase: Phase) -> None:
    """Print the banner that opens a phase."""
    print()
    log("▶", f"Running {phase.title}", Colors.CYAN)


def placeholder_context(run: TargetRun) -> dict[str, str]:
    """Values for {tap}, {repository}, {target} and {prefix}."""
    repository = run.repository
    return {
        "tap": run.tap.name if run.tap is not None else "",
        "repository": str(repository) if repository is not None else "",
        "target": run.target,
        "prefix": str(run.config.prefix),
    }


def run_configured_commands(
    run: TargetRun, phase: Phase, named_args: str | None = None
) -> None:
    """Run every command configured for phase as a step.

    Args:
        run: Target being tested.
        phase: Phase whose commands to run.
        named_args: Package appended to each command, if any.
    """
    context = placeholder_context(run)
    commands = run.commands.for_phase(phase)
    logger.debug("%s: %d configured commands", phase.value, len(commands))
    for command in commands:
        argv = command.render(context)
        if not argv:
            continue
        run.test(
            *argv,
            env=command.env,
            verbose=command.verbose,
            named_args=named_args,
            ignore_failures=command.ignore_failures,
        )
