"""Target resolution: turning command-line targets into testable units.

A target is either a git revision of the repository under test (HEAD by
default) or a package name. Package names qualified with their tap
(user/repo/name) may need the tap installed first; that gets exactly one
corrective attempt.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from testbot.core.models import TAP_NAME_PATTERN, ResolvedTarget, Tap
from testbot.infra.io.console import Colors, log

if TYPE_CHECKING:
    from pathlib import Path

    from testbot.core.protocols import CommandRunnerPort

logger = logging.getLogger(__name__)

DEFAULT_TARGET = "HEAD"

# Corrective tap attempts before giving up on a package target
MAX_TAP_ATTEMPTS = 1


class UsageError(Exception):
    """The command line asks for something that cannot be done."""


class TargetResolutionError(UsageError):
    """A target could not be resolved to a revision or a package."""


class MissingTapError(TargetResolutionError):
    """A fully-qualified package's tap is not installed.

    Attributes:
        tap_name: The user/repo name of the missing tap.
    """

    def __init__(self, tap_name: str, target: str) -> None:
        self.tap_name = tap_name
        super().__init__(f"Tap {tap_name} for {target} is not installed")


def split_qualified_name(name: str) -> tuple[str | None, str]:
    """Split "user/repo/package" into ("user/repo", "package").

    Unqualified names return (None, name).
    """
    parts = name.split("/")
    if len(parts) == 3 and TAP_NAME_PATTERN.match(f"{parts[0]}/{parts[1]}"):
        return f"{parts[0]}/{parts[1]}", parts[2]
    return None, name


class GitTargetResolver:
    """Resolves revisions with git and packages with the package manager.

    Args:
        runner: Runs git and package manager queries.
        package_manager: Package manager executable.
        repository: Checkout in which revisions are looked up.
        taps_dir: Directory holding installed taps.
        default_package: Package tested for revision targets, if any.
    """

    def __init__(
        self,
        runner: CommandRunnerPort,
        package_manager: str,
        repository: Path | None,
        taps_dir: Path,
        default_package: str | None = None,
    ) -> None:
        self.runner = runner
        self.package_manager = package_manager
        self.repository = repository
        self.taps_dir = taps_dir
        self.default_package = default_package

    def resolve(self, target: str) -> ResolvedTarget:
        """Resolve target, installing a missing tap at most once.

        Raises:
            TargetResolutionError: If the target is neither a revision nor
                a known package, or its tap stays missing.
        """
        attempts = 0
        while True:
            try:
                return self._resolve_once(target)
            except MissingTapError as e:
                if attempts >= MAX_TAP_ATTEMPTS:
                    raise TargetResolutionError(
                        f"{e} (still missing after `{self.package_manager} tap {e.tap_name}`)"
                    ) from e
                attempts += 1
                self._tap(e.tap_name)

    def _resolve_once(self, target: str) -> ResolvedTarget:
        commit = self._rev_parse(target)
        if commit is not None:
            return self._revision_target(target, commit)
        if target == DEFAULT_TARGET:
            # Nothing to look up outside a git checkout
            logger.debug("%s is not a git checkout; testing HEAD as is", self.repository)
            return self._revision_target(target, None)
        return self._package_target(target)

    def _revision_target(self, target: str, commit: str | None) -> ResolvedTarget:
        packages = (self.default_package,) if self.default_package else ()
        return ResolvedTarget(identifier=target, commit=commit, packages=packages)

    def _rev_parse(self, target: str) -> str | None:
        if self.repository is None or not (self.repository / ".git").exists():
            return None
        result = self.runner.run(
            [
                "git",
                "-C",
                str(self.repository),
                "rev-parse",
                "--verify",
                "--quiet",
                f"{target}^{{commit}}",
            ]
        )
        if not result.ok:
            return None
        return result.text().strip() or None

    def _package_target(self, target: str) -> ResolvedTarget:
        tap_name, _ = split_qualified_name(target)
        if tap_name is not None and not Tap.fetch(tap_name, self.taps_dir).installed:
            raise MissingTapError(tap_name, target)

        result = self.runner.run([self.package_manager, "info", target])
        if not result.ok:
            raise TargetResolutionError(
                f"{target} is neither a revision nor a known package"
            )
        return ResolvedTarget(identifier=target, packages=(target,))

    def _tap(self, tap_name: str) -> None:
        log("↻", f"Tapping {tap_name} to resolve its packages", Colors.YELLOW)
        logger.info("Running corrective `%s tap %s`", self.package_manager, tap_name)
        result = self.runner.run([self.package_manager, "tap", tap_name])
        if not result.ok:
            logger.warning("`%s tap %s` failed: %s", self.package_manager, tap_name, result.text())
