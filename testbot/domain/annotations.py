"""GitHub Actions workflow commands for step results.

Annotations point a failed step at the source file of the package it ran
against; groups fold long output in the job log. Both are only printed
inside GitHub Actions, and annotations are additionally suppressed on Linux
runners.
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from testbot.core.models import HostInfo

logger = logging.getLogger(__name__)

# Annotation bodies are capped by GitHub at 64 KiB
MAX_ANNOTATION_CHARS = 24 * 1024
MAX_ANNOTATION_LINES = 256


class AnnotationType(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTICE = "notice"


def escape_data(value: str) -> str:
    """Escape a workflow command message."""
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: str) -> str:
    """Escape a workflow command property value."""
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


@dataclass(frozen=True)
class Annotation:
    """A single ::error / ::warning workflow command.

    Attributes:
        type: Annotation severity.
        message: Annotation body.
        title: Short title shown above the body.
        file: Path relative to the repository root.
        line: Line within file, if known.
    """

    type: AnnotationType
    message: str
    title: str | None = None
    file: str | None = None
    line: int | None = None

    def __str__(self) -> str:
        properties = []
        if self.file:
            properties.append(f"file={escape_property(self.file)}")
            if self.line is not None:
                properties.append(f"line={self.line}")
        if self.title:
            properties.append(f"title={escape_property(self.title)}")
        head = f"::{self.type.value}"
        if properties:
            head = f"{head} {','.join(properties)}"
        return f"{head}::{escape_data(self.message)}"


def annotation_message(output: str) -> str:
    """Tail of step output small enough for an annotation body.

    Keeps the last MAX_ANNOTATION_CHARS characters, then at most the last
    MAX_ANNOTATION_LINES lines of those.
    """
    tail = output[-MAX_ANNOTATION_CHARS:]
    lines = tail.splitlines(keepends=True)
    return "".join(lines[-MAX_ANNOTATION_LINES:])


def annotations_enabled(host: HostInfo) -> bool:
    """Annotations are printed under GitHub Actions, except on Linux."""
    return host.github_actions and not host.is_linux


def print_annotation(host: HostInfo, annotation: Annotation) -> bool:
    """Print annotation if the host supports it.

    Returns:
        True if the annotation was printed.
    """
    if not annotations_enabled(host):
        logger.debug("Annotation suppressed on %s", host.os_description())
        return False
    print(annotation, flush=True)
    return True


@contextmanager
def github_group(title: str, enabled: bool) -> Iterator[None]:
    """Fold everything printed inside the block under title.

    Prints nothing extra when enabled is False.
    """
    if enabled:
        print(f"::group::{title}", flush=True)
    try:
        yield
    finally:
        if enabled:
            print("::endgroup::", flush=True)


class RepositorySourceLocator:
    """Finds the file that defines a package inside a repository checkout.

    The file is the first path matching **/<name>* below the repository
    root. When a method name is given, the line of its definition
    (`def <method>` or a `<method> do` block) is looked up too.
    """

    def __init__(self, repository: Path) -> None:
        self.repository = repository

    def locate(self, name: str, method: str | None) -> tuple[Path, int | None] | None:
        if not self.repository.is_dir():
            return None
        matches = sorted(
            path for path in self.repository.glob(f"**/{name}*") if path.is_file()
        )
        if not matches:
            logger.debug("No source file for %s in %s", name, self.repository)
            return None
        path = matches[0]
        return path, self._find_line(path, method) if method else None

    @staticmethod
    def _find_line(path: Path, method: str) -> int | None:
        pattern = re.compile(rf"^\s*(def\s+{re.escape(method)}\b|{re.escape(method)}\s+do\b)")
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None
        for number, line in enumerate(text.splitlines(), start=1):
            if pattern.match(line):
                return number
        return None
