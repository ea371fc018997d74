"""Configuration dataclass for testbot.

Provides TestBotConfig, the one place the ambient environment is read.
from_env() runs once at startup; everything downstream receives the
resulting value instead of looking at os.environ again.

Environment Variables:
    GITHUB_ACTIONS: Set inside GitHub Actions; enables annotations and groups
    TESTBOT_PACKAGE_MANAGER: Package manager executable (default: brew)
    TESTBOT_PREFIX: Package manager prefix (fallback HOMEBREW_PREFIX, default /usr/local)
    TESTBOT_REPOSITORY: Package manager repository (fallback HOMEBREW_REPOSITORY, default prefix)
    TESTBOT_LIBRARY: Library directory holding Taps/ (fallback HOMEBREW_LIBRARY,
        default <repository>/Library)
    TESTBOT_REPORT_DIR: Directory for test-bot.xml and steps_output.txt (default: cwd)
    TESTBOT_LOGS_DIR: Directory for debug logs (default: ~/.config/testbot/logs)
"""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path

from testbot.core.models import HostInfo, Tap
from testbot.domain.command_display import DisplayPrefixes
from testbot.infra.tools.env import USER_CONFIG_DIR, get_logs_dir, get_report_dir

DEFAULT_PREFIX = "/usr/local"
DEFAULT_PACKAGE_MANAGER = "brew"


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        message = "Configuration validation failed:\n" + "\n".join(
            f"  - {e}" for e in errors
        )
        super().__init__(message)


def _env_path(*names: str, default: str) -> Path:
    """First non-empty variable among names, as a Path."""
    for name in names:
        value = os.environ.get(name)
        if value:
            return Path(value)
    return Path(default)


def detect_host() -> HostInfo:
    """Capture operating system facts and the CI context."""
    return HostInfo(
        system=platform.system(),
        machine=platform.machine(),
        macos_version=platform.mac_ver()[0],
        github_actions=bool(os.environ.get("GITHUB_ACTIONS")),
    )


@dataclass(frozen=True)
class TestBotConfig:
    """Centralized configuration for a testbot run.

    Attributes:
        host: Operating system facts and CI context.
        package_manager: Executable name of the package manager.
        prefix: Package manager installation prefix.
        repository: Package manager's own git repository.
        library: Directory containing the Taps/ checkout tree.
        report_dir: Where report files are written.
        logs_dir: Where per-run debug logs are written.
        work_dir: Working directory of the run; --local directories live here.

    Example:
        # Programmatic construction (no env vars needed):
        config = TestBotConfig(
            host=HostInfo(system="Linux", machine="x86_64"),
            prefix=Path("/home/linuxbrew/.linuxbrew"),
        )

        # Load from environment:
        config = TestBotConfig.from_env()
    """

    # Not a test class, despite the name
    __test__ = False

    host: HostInfo = field(default_factory=detect_host)
    package_manager: str = DEFAULT_PACKAGE_MANAGER
    prefix: Path = field(default_factory=lambda: Path(DEFAULT_PREFIX))
    repository: Path | None = None
    library: Path | None = None
    report_dir: Path = field(default_factory=Path.cwd)
    logs_dir: Path = field(default_factory=lambda: USER_CONFIG_DIR / "logs")
    work_dir: Path = field(default_factory=Path.cwd)

    def __post_init__(self) -> None:
        """Derive repository and library from the prefix when not given."""
        if self.repository is None:
            object.__setattr__(self, "repository", self.prefix)
        if self.library is None:
            assert self.repository is not None
            object.__setattr__(self, "library", self.repository / "Library")

    @property
    def taps_dir(self) -> Path:
        assert self.library is not None
        return self.library / "Taps"

    @classmethod
    def from_env(cls, *, validate: bool = True) -> TestBotConfig:
        """Create TestBotConfig from environment variables.

        Args:
            validate: If True (default), raise ConfigurationError when the
                resulting configuration is invalid.

        Raises:
            ConfigurationError: If validate=True and configuration is invalid.
        """
        prefix = _env_path("TESTBOT_PREFIX", "HOMEBREW_PREFIX", default=DEFAULT_PREFIX)
        repository = _env_path(
            "TESTBOT_REPOSITORY", "HOMEBREW_REPOSITORY", default=str(prefix)
        )
        library = _env_path(
            "TESTBOT_LIBRARY", "HOMEBREW_LIBRARY", default=str(repository / "Library")
        )
        package_manager = (
            os.environ.get("TESTBOT_PACKAGE_MANAGER") or DEFAULT_PACKAGE_MANAGER
        )

        config = cls(
            host=detect_host(),
            package_manager=package_manager,
            prefix=prefix,
            repository=repository,
            library=library,
            report_dir=get_report_dir(),
            logs_dir=get_logs_dir(),
        )

        if validate:
            errors = config.validate()
            if errors:
                raise ConfigurationError(errors)

        return config

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors.

        Checks:
            - Prefix, repository and library paths are absolute
            - Package manager executable is set
        """
        errors: list[str] = []
        for name, path in (
            ("prefix", self.prefix),
            ("repository", self.repository),
            ("library", self.library),
        ):
            if path is not None and not path.is_absolute():
                errors.append(f"{name} must be an absolute path, got '{path}'")
        if not self.package_manager.strip():
            errors.append("package manager executable must not be empty")
        return errors

    def local_dirs(self) -> tuple[Path, Path]:
        """Home and logs directories used by --local runs."""
        return self.work_dir / "home", self.work_dir / "logs"

    def local_env(self) -> dict[str, str | None]:
        """Environment pointing the package manager at the --local directories."""
        home, logs = self.local_dirs()
        return {"HOME": str(home), "HOMEBREW_HOME": str(home), "HOMEBREW_LOGS": str(logs)}

    def fetch_tap(self, name: str) -> Tap:
        """Build a Tap handle under this configuration's Taps directory."""
        return Tap.fetch(name, self.taps_dir)

    def display_prefixes(
        self, repository: Path | None, cwd: Path | None = None
    ) -> DisplayPrefixes:
        """Known prefixes stripped from command lines for display."""
        assert self.repository is not None and self.library is not None
        return DisplayPrefixes(
            executable=Path(self.package_manager).name,
            prefix=str(self.prefix),
            package_repository=str(self.repository),
            library=str(self.library),
            repository=str(repository) if repository is not None else "",
            cwd=str(cwd if cwd is not None else self.work_dir),
        )
