"""Shared value types for testbot.

Types:
- StepStatus: lifecycle state of a single step
- Phase: the closed set of phases run for each target
- HostInfo: facts about the machine the run happens on
- Tap: handle to the package repository under test
- TargetFlags: per-target skip flags set by the orchestrator
- RunOptions: run-wide switches taken from the command line
- ResolvedTarget: a target after resolution
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# user/repo tap names, e.g. "homebrew/core"
TAP_NAME_PATTERN = re.compile(r"^([\w-]+)/([\w-]+)$")


class StepStatus(Enum):
    """Status of a step. RUNNING is the only non-terminal value."""

    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    IGNORED = "ignored"

    @property
    def terminal(self) -> bool:
        return self is not StepStatus.RUNNING


class Phase(Enum):
    """Phases in execution order."""

    CLEANUP_BEFORE = "cleanup_before"
    SETUP = "setup"
    STATIC_CHECKS = "static_checks"
    FUNCTIONAL_TESTS = "functional_tests"
    CLEANUP_AFTER = "cleanup_after"

    @property
    def title(self) -> str:
        return self.value.replace("_", " ").title().replace(" ", "")


# Fixed total order of phases.
PHASE_ORDER: tuple[Phase, ...] = (
    Phase.CLEANUP_BEFORE,
    Phase.SETUP,
    Phase.STATIC_CHECKS,
    Phase.FUNCTIONAL_TESTS,
    Phase.CLEANUP_AFTER,
)


@dataclass(frozen=True)
class HostInfo:
    """Facts about the host, captured once at startup.

    Attributes:
        system: Operating system name as reported by platform.system().
        machine: CPU architecture as reported by platform.machine().
        macos_version: macOS product version ("14.4"), empty elsewhere.
        github_actions: Whether the run happens inside GitHub Actions.
    """

    system: str
    machine: str
    macos_version: str = ""
    github_actions: bool = False

    @property
    def is_linux(self) -> bool:
        return self.system == "Linux"

    @property
    def is_macos(self) -> bool:
        return self.system == "Darwin"

    @property
    def is_arm(self) -> bool:
        return self.machine.lower() in ("arm64", "aarch64")

    def os_description(self) -> str:
        """Human readable OS name used in annotation titles."""
        if self.is_linux:
            return "Linux"
        if self.is_macos:
            version = f"macOS {self.macos_version}".rstrip()
            if self.is_arm:
                return f"{version} on Apple Silicon"
            return version
        return self.system or "unknown OS"

    def environment_tag(self) -> str:
        """Short identifier for this execution environment.

        Examples: "x86_64_linux", "arm64_macos14", "macos13".
        """
        machine = self.machine.lower() or "unknown"
        if self.is_macos:
            major = self.macos_version.split(".")[0] if self.macos_version else ""
            name = f"macos{major}"
            return f"arm64_{name}" if self.is_arm else name
        system = self.system.lower() or "unknown"
        return f"{machine}_{system}"


@dataclass(frozen=True)
class Tap:
    """Handle to a package repository ("tap").

    Attributes:
        name: Short "user/repo" name.
        path: Checkout location of the tap's git repository.
    """

    name: str
    path: Path

    @classmethod
    def fetch(cls, name: str, taps_dir: Path) -> Tap:
        """Build a Tap from its "user/repo" name.

        Raises:
            ValueError: If the name is not of the form user/repo.
        """
        match = TAP_NAME_PATTERN.match(name.strip().lower())
        if match is None:
            raise ValueError(f"Invalid tap name '{name}' (expected user/repo)")
        user, repo = match.groups()
        repo = repo.removeprefix("homebrew-")
        return cls(name=f"{user}/{repo}", path=taps_dir / user / f"homebrew-{repo}")

    @property
    def installed(self) -> bool:
        return self.path.is_dir()

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class TargetFlags:
    """Skip flags for one target, decided by the orchestrator."""

    skip_setup: bool = False
    skip_cleanup_before: bool = False
    skip_cleanup_after: bool = False


@dataclass(frozen=True)
class RunOptions:
    """Run-wide switches.

    Attributes:
        dry_run: Print steps instead of running them.
        fail_fast: Abort on the first failed (not ignored) step.
        verbose: Stream step output live.
        cleanup: Allow destructive repository cleanup in cleanup phases.
        local: Use and remove a local home/logs directory.
        skip_setup: Skip the setup phase for the first target too.
        junit: Write the JUnit XML report.
        only_phases: When non-empty, run only these phases.
        test_default_package: Package to test for commit targets.
    """

    dry_run: bool = False
    fail_fast: bool = False
    verbose: bool = False
    cleanup: bool = False
    local: bool = False
    skip_setup: bool = False
    junit: bool = False
    only_phases: frozenset[Phase] = field(default_factory=frozenset)
    test_default_package: str | None = None

    def phase_selected(self, phase: Phase) -> bool:
        return not self.only_phases or phase in self.only_phases


@dataclass(frozen=True)
class ResolvedTarget:
    """A target after resolution.

    Attributes:
        identifier: The target as given on the command line.
        commit: Resolved commit hash for revision targets, None for packages.
        packages: Packages the functional tests run against.
    """

    identifier: str
    commit: str | None = None
    packages: tuple[str, ...] = ()
