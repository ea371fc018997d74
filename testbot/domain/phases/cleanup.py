"""Repository cleanup shared by the cleanup-before and cleanup-after phases.

Queries (stash list, diff, clean --dry-run, gc) run directly through the
command runner; anything that changes the checkout runs as a Step so it
shows up in the report and honors dry runs.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from testbot.domain.target_run import TargetRun

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "master"
STALE_BOTTLE_GLOB = "*.bottle*.*"

CLEAN_EXCLUDES = (
    f"--exclude={STALE_BOTTLE_GLOB}",
    "--exclude=Library/Taps",
    "--exclude=Library/Homebrew/vendor",
)


def _git(repository: Path, *args: str) -> list[str]:
    return ["git", "-C", str(repository), *args]


def _query(run: TargetRun, repository: Path, *args: str) -> str:
    return run.runner.run(_git(repository, *args)).text().strip()


def remove_stale_bottles(directory: Path, dry_run: bool = False) -> list[Path]:
    """Delete bottle artifacts left in directory by an earlier run."""
    stale = sorted(directory.glob(STALE_BOTTLE_GLOB))
    for path in stale:
        logger.debug("Removing stale bottle %s", path)
        if not dry_run and path.is_file():
            path.unlink()
    return stale


def current_branch(run: TargetRun, repository: Path) -> str:
    branch = _query(run, repository, "symbolic-ref", "--short", "HEAD")
    return branch or DEFAULT_BRANCH


def clear_stash_if_needed(run: TargetRun, repository: Path) -> None:
    if not _query(run, repository, "stash", "list"):
        return
    run.test(*_git(repository, "stash", "clear"))


def reset_if_needed(run: TargetRun, repository: Path) -> None:
    upstream = f"origin/{current_branch(run, repository)}"
    if run.runner.run(_git(repository, "diff", "--quiet", upstream)).ok:
        return
    run.test(*_git(repository, "reset", "--hard", upstream))


def clean_if_needed(run: TargetRun, repository: Path) -> None:
    if repository == run.config.prefix:
        return
    clean_args = ("-dx", *CLEAN_EXCLUDES)
    if not _query(run, repository, "clean", "--dry-run", *clean_args):
        return
    run.test(*_git(repository, "clean", "-ff", *clean_args))


def prune_if_needed(run: TargetRun, repository: Path) -> None:
    output = _query(run, repository, "-c", "gc.autoDetach=false", "gc", "--auto")
    if "git prune" not in output:
        return
    run.test(*_git(repository, "prune"))


def cleanup_repository(run: TargetRun) -> None:
    """Bring the repository under test back to its upstream state.

    Does nothing when the repository is not a git checkout.
    """
    repository = run.repository
    if repository is None or not (repository / ".git").exists():
        logger.debug("Skipping repository cleanup: %s is not a git checkout", repository)
        return

    clear_stash_if_needed(run, repository)
    reset_if_needed(run, repository)
    clean_if_needed(run, repository)
    prune_if_needed(run, repository)
