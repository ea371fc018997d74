"""Step: a single external command run by testbot.

A Step is created for one command, run once, and then only read. It owns
the console output for its command (headline, FAILED marker, full output
for failures) and the GitHub Actions annotations for the packages it was
run against.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from testbot.core.models import StepStatus
from testbot.domain.annotations import (
    Annotation,
    AnnotationType,
    RepositorySourceLocator,
    annotation_message,
    github_group,
    print_annotation,
)
from testbot.domain.command_display import command_short, command_trimmed
from testbot.infra.io.console import Colors, error_text, headline
from testbot.infra.tools.command_runner import CommandRunner

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from testbot.core.models import HostInfo
    from testbot.core.protocols import CommandRunnerPort, SourceLocator
    from testbot.domain.command_display import DisplayPrefixes

logger = logging.getLogger(__name__)

# Arguments git must start with so it never acts on the wrong checkout
GIT_ALLOWED_FIRST_ARGS = ("-C", "clone")


class InvariantViolation(RuntimeError):
    """A programming error in how a step was built; never absorbed."""


class FailFastAbort(Exception):
    """A step failed while fail-fast was requested; the run must stop.

    Attributes:
        step: The step that failed, or None when the run stopped for
            another reason (e.g. an unresolvable target).
    """

    def __init__(self, step: Step | None = None, reason: str | None = None) -> None:
        self.step = step
        if reason is None:
            reason = f"`{step.command_trimmed}` failed" if step is not None else "aborted"
        super().__init__(f"Fail-fast: {reason}")


def _normalize_named_args(named_args: str | Iterable[str] | None) -> tuple[str, ...]:
    if named_args is None:
        return ()
    if isinstance(named_args, str):
        return (named_args,)
    return tuple(str(arg) for arg in named_args if arg is not None)


class Step:
    """One command, its status and its captured output.

    Args:
        command: Program and arguments. Must not be empty.
        host: Host facts, used for annotations.
        prefixes: Path prefixes stripped from displayed command lines.
        env: Environment overrides for this command only; None unsets.
        verbose: Stream output live instead of replaying it on failure.
        named_args: Package names appended to the command and annotated.
        ignore_failures: Record a non-zero exit as IGNORED instead of FAILED.
        repository: Checkout searched for annotated source files.
        runner: Command runner; a CommandRunner by default.
        locator: Source locator; defaults to searching repository.

    Raises:
        ValueError: If command is empty.
    """

    def __init__(
        self,
        command: Sequence[str],
        *,
        host: HostInfo,
        prefixes: DisplayPrefixes,
        env: Mapping[str, str | None] | None = None,
        verbose: bool = False,
        named_args: str | Iterable[str] | None = None,
        ignore_failures: bool = False,
        repository: Path | None = None,
        runner: CommandRunnerPort | None = None,
        locator: SourceLocator | None = None,
    ) -> None:
        if not command:
            raise ValueError("Step command must not be empty")

        self.named_args = _normalize_named_args(named_args)
        self.command: tuple[str, ...] = tuple(str(arg) for arg in command) + self.named_args
        self.env: dict[str, str | None] = dict(env or {})
        self.verbose = verbose
        self.ignore_failures = ignore_failures
        self.repository = repository
        self.host = host
        self.prefixes = prefixes
        self._runner = runner if runner is not None else CommandRunner()
        if locator is None and repository is not None:
            locator = RepositorySourceLocator(repository)
        self._locator = locator

        self.status = StepStatus.RUNNING
        self.output: str | None = None
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None
        self._ran = False

    def __repr__(self) -> str:
        return f"Step({self.command_trimmed!r}, status={self.status.value})"

    @property
    def name(self) -> str:
        """Subcommand name without dashes ("install"), or the program."""
        if len(self.command) > 1:
            return self.command[1].replace("-", "")
        return self.command[0]

    @property
    def command_trimmed(self) -> str:
        return command_trimmed(self.command, self.prefixes)

    @property
    def command_short(self) -> str:
        return command_short(self.command, self.prefixes)

    @property
    def passed(self) -> bool:
        return self.status is StepStatus.PASSED

    @property
    def failed(self) -> bool:
        return self.status is StepStatus.FAILED

    @property
    def ignored(self) -> bool:
        return self.status is StepStatus.IGNORED

    @property
    def has_output(self) -> bool:
        return bool(self.output)

    @property
    def duration(self) -> float:
        """Execution time in seconds.

        Raises:
            RuntimeError: If the step has not run yet.
        """
        if self.start_time is None or self.end_time is None:
            raise RuntimeError("Step duration is only known after run()")
        return (self.end_time - self.start_time).total_seconds()

    def run(self, dry_run: bool = False, fail_fast: bool = False) -> StepStatus:
        """Execute the command once and record the outcome.

        Args:
            dry_run: Print the command and record PASSED without running it.
            fail_fast: Raise FailFastAbort if the step FAILED.

        Returns:
            The terminal status.

        Raises:
            InvariantViolation: If the step already ran, or git is called
                without -C or clone.
            FailFastAbort: If fail_fast and the step failed.
        """
        if self._ran:
            raise InvariantViolation(f"{self!r} has already run")
        self._check_git_invocation()
        self._ran = True

        self.start_time = datetime.now()
        headline(self.command_trimmed, color=Colors.BLUE)

        if dry_run:
            self.status = StepStatus.PASSED
            self.end_time = datetime.now()
            return self.status

        result = self._runner.run(self.command, env=self.env, stream=self.verbose)
        self.end_time = datetime.now()

        if result.ok:
            self.status = StepStatus.PASSED
        elif self.ignore_failures:
            self.status = StepStatus.IGNORED
        else:
            self.status = StepStatus.FAILED
        logger.debug(
            "Step %s %s (exit %d)", self.command_short, self.status.value, result.returncode
        )

        self._print_result()

        text = result.text()
        if text.strip():
            self.output = text
            self._report_output()

        if fail_fast and self.failed:
            raise FailFastAbort(self)
        return self.status

    def _check_git_invocation(self) -> None:
        if Path(self.command[0]).name != "git":
            return
        first = self.command[1] if len(self.command) > 1 else None
        if first not in GIT_ALLOWED_FIRST_ARGS:
            raise InvariantViolation(
                f"git must be called with -C or clone: {' '.join(self.command)}"
            )

    def _print_result(self) -> None:
        if not self.passed:
            headline(error_text("FAILED"), color=Colors.RED)

    def _report_output(self) -> None:
        assert self.output is not None
        if self.verbose:
            print()
            return
        if self.passed:
            return

        with github_group(f"Full {self.command_short} output", self.host.github_actions):
            print(self.output, end="" if self.output.endswith("\n") else "\n")

        if self.host.github_actions:
            self._annotate()
        print()

    def _annotate(self) -> None:
        assert self.output is not None
        if self._locator is None:
            return

        annotation_type = AnnotationType.ERROR if self.failed else AnnotationType.WARNING
        message = annotation_message(self.output)
        title = f"`{self.command_trimmed}` failed on {self.host.os_description()}!"
        method = self.command[1] if len(self.command) > 1 else None

        for name in self.named_args:
            if not name.strip():
                continue
            located = self._locator.locate(name, method)
            if located is None:
                continue
            path, line = located
            file = str(path)
            if self.repository is not None:
                file = file.removeprefix(f"{self.repository}/")
            with github_group(f"Truncated {self.command_short} output", True):
                print_annotation(
                    self.host,
                    Annotation(
                        type=annotation_type,
                        message=message,
                        title=title,
                        file=file,
                        line=line,
                    ),
                )
