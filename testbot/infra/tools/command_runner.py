"""Standardized subprocess execution for testbot.

Commands run with stdout and stderr merged into one byte stream, the way a
CI log shows them. Output is kept as raw bytes; callers decide how to
decode it.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)

# Exit code reported when the executable cannot be started (shell convention)
NOT_FOUND_EXIT_CODE = 127

# Read size for merged output
_CHUNK_SIZE = 64 * 1024


@dataclass
class CommandResult:
    """Result of a command execution.

    Attributes:
        command: The command that was run.
        returncode: Exit code of the process.
        output: Merged stdout and stderr bytes.
        duration_seconds: Wall-clock time spent waiting for the process.
    """

    command: list[str]
    returncode: int
    output: bytes = b""
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        return self.returncode == 0

    def text(self) -> str:
        """Merged output decoded as UTF-8, replacing invalid sequences."""
        return self.output.decode("utf-8", errors="replace")


def build_env(overrides: Mapping[str, str | None] | None) -> dict[str, str]:
    """Merge overrides over the process environment.

    A None value removes the variable for the child process.
    """
    env = dict(os.environ)
    for key, value in (overrides or {}).items():
        if value is None:
            env.pop(key, None)
        else:
            env[key] = value
    return env


def _echo(chunk: bytes) -> None:
    buffer = getattr(sys.stdout, "buffer", None)
    if buffer is not None:
        sys.stdout.flush()
        buffer.write(chunk)
        buffer.flush()
    else:
        sys.stdout.write(chunk.decode("utf-8", errors="replace"))
        sys.stdout.flush()


class CommandRunner:
    """Runs commands and captures their merged output.

    Example:
        runner = CommandRunner(cwd=repo_path)
        result = runner.run(["git", "-C", str(repo_path), "status"])
        if not result.ok:
            print(result.text())
    """

    def __init__(self, cwd: Path | None = None) -> None:
        self.cwd = cwd

    def run(
        self,
        cmd: Sequence[str],
        env: Mapping[str, str | None] | None = None,
        stream: bool = False,
        cwd: Path | None = None,
    ) -> CommandResult:
        """Run a command to completion.

        There is no timeout: a hung process blocks until it exits.

        Args:
            cmd: Program and arguments.
            env: Environment overrides merged over os.environ.
            stream: Copy output to stdout as it arrives.
            cwd: Working directory override for this command.

        Returns:
            CommandResult with the exit code and merged output.
        """
        command = [str(arg) for arg in cmd]
        effective_cwd = cwd if cwd is not None else self.cwd
        logger.debug("Running %s (cwd=%s)", command, effective_cwd)

        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                command,
                cwd=effective_cwd,
                env=build_env(env),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as e:
            logger.debug("Failed to start %s: %s", command[0], e)
            message = f"{command[0]}: {e.strerror or e}\n".encode()
            if stream:
                _echo(message)
            return CommandResult(
                command=command,
                returncode=NOT_FOUND_EXIT_CODE,
                output=message,
                duration_seconds=time.monotonic() - start,
            )

        chunks: list[bytes] = []
        assert proc.stdout is not None
        with proc.stdout:
            while True:
                chunk = proc.stdout.read1(_CHUNK_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
                if stream:
                    _echo(chunk)
        returncode = proc.wait()
        duration = time.monotonic() - start
        logger.debug("Exited %d after %.2fs: %s", returncode, duration, command)

        return CommandResult(
            command=command,
            returncode=returncode,
            output=b"".join(chunks),
            duration_seconds=duration,
        )
