"""Protocol definitions for testbot's injected collaborators.

Design principles:
- Protocols use structural typing (typing.Protocol) for flexibility
- Methods match exactly what the domain and orchestration layers call
- The infra layer provides the canonical implementations

Usage:
    These protocols enable fake implementations in unit tests (no real
    subprocesses) and keep the domain layer free of infra imports.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from testbot.core.models import ResolvedTarget


@runtime_checkable
class CommandResultProtocol(Protocol):
    """Result of running a command with merged stdout/stderr."""

    command: list[str]
    returncode: int
    output: bytes
    duration_seconds: float

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        ...

    def text(self) -> str:
        """Merged output decoded as UTF-8 with replacement."""
        ...


@runtime_checkable
class CommandRunnerPort(Protocol):
    """Protocol for abstracting command execution.

    The canonical implementation is CommandRunner in
    testbot/infra/tools/command_runner.py.
    """

    def run(
        self,
        cmd: Sequence[str],
        env: Mapping[str, str | None] | None = None,
        stream: bool = False,
        cwd: Path | None = None,
    ) -> CommandResultProtocol:
        """Run a command synchronously and capture merged output.

        Args:
            cmd: Program and arguments.
            env: Overrides merged over os.environ; None values unset a variable.
            stream: Also copy output to stdout while it is captured.
            cwd: Working directory for this command.

        Returns:
            CommandResultProtocol with execution details.
        """
        ...


class SourceLocator(Protocol):
    """Finds the source file defining a named argument, for annotations."""

    def locate(self, name: str, method: str | None) -> tuple[Path, int | None] | None:
        """Return (path, line) for name, or None when nothing is found."""
        ...


class TargetResolver(Protocol):
    """Resolves a command-line target to something the phases can test."""

    def resolve(self, target: str) -> ResolvedTarget:
        """Resolve target.

        Raises:
            TargetResolutionError: If the target cannot be resolved.
        """
        ...
