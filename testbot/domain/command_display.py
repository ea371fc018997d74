"""Display forms of step command lines.

Two pure normalizations keep long CI command lines readable:
- command_trimmed: the command with exclude flags and leading install
  prefixes removed; used in headlines, annotation titles and the summary.
- command_short: the command without the package manager executable,
  repository paths and noise flags; used as JUnit test case names.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

# Flags dropped from short command lines
NOISE_FLAGS = ("-C", "--force", "--retry", "--verbose", "--json")


@dataclass(frozen=True)
class DisplayPrefixes:
    """Known path prefixes and names stripped from displayed commands.

    Attributes:
        executable: Package manager executable name (e.g. "brew").
        prefix: Package manager installation prefix.
        package_repository: Package manager's own repository path.
        library: Library directory containing Taps/.
        repository: Repository under test ("" when there is none).
        cwd: Working directory of the run.
    """

    executable: str = ""
    prefix: str = ""
    package_repository: str = ""
    library: str = ""
    repository: str = ""
    cwd: str = ""

    def paths(self) -> list[str]:
        """Path prefixes, longest first, skipping blanks and the root."""
        candidates = {
            self.prefix,
            self.package_repository,
            self.repository,
            self.cwd,
        }
        return sorted(
            (path for path in candidates if len(path) > 1),
            key=len,
            reverse=True,
        )


def command_trimmed(command: Sequence[str], prefixes: DisplayPrefixes) -> str:
    """Command line without --exclude flags and leading install prefixes.

    Example:
        >>> prefixes = DisplayPrefixes(prefix="/usr/local")
        >>> command_trimmed(["/usr/local/bin/brew", "audit", "foo"], prefixes)
        'bin/brew audit foo'
    """
    text = " ".join(arg for arg in command if not arg.startswith("--exclude"))
    leading = []
    if prefixes.library:
        leading.append(f"{prefixes.library}/Taps/")
    if prefixes.prefix:
        leading.append(f"{prefixes.prefix}/")
    leading.append("/usr/bin/")
    for prefix in leading:
        text = text.removeprefix(prefix)
    return text


def command_short(command: Sequence[str], prefixes: DisplayPrefixes) -> str:
    """Compact command line used to name test cases.

    Example:
        >>> prefixes = DisplayPrefixes(executable="brew", prefix="/usr/local")
        >>> command_short(["brew", "install", "--verbose", "foo"], prefixes)
        'install foo'
    """
    dropped = set(NOISE_FLAGS)
    if prefixes.executable:
        dropped.add(prefixes.executable)
    dropped.update(path for path in prefixes.paths())

    text = " ".join(arg for arg in command if arg not in dropped)
    for path in prefixes.paths():
        text = text.replace(path, "")
    return text
