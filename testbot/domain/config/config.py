"""Phase command configuration types for testbot.

This module defines the dataclasses that hold the commands each phase runs,
as loaded from testbot.yaml and the bundled presets.

Key types:
- CommandConfig: One configured command and its step options
- PhaseCommands: Commands for every phase plus shared environment
- ConfigError / PresetNotFoundError: Configuration failures
"""

from __future__ import annotations

import shlex
import string
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from testbot.core.models import Phase

if TYPE_CHECKING:
    from collections.abc import Mapping

# Placeholders commands may reference
PLACEHOLDERS = frozenset({"tap", "repository", "target", "prefix"})

# Keys of a command written in mapping form
_COMMAND_FIELDS = frozenset({"command", "ignore_failures", "verbose", "env"})


class ConfigError(Exception):
    """Raised when testbot.yaml or a preset has invalid content."""


class PresetNotFoundError(ConfigError):
    """Raised when a referenced preset does not exist.

    Example:
        >>> raise PresetNotFoundError("linuxbrew", ["homebrew", "none"])
        PresetNotFoundError: Unknown preset 'linuxbrew'. Available presets: homebrew, none
    """

    def __init__(self, preset_name: str, available: list[str] | None = None) -> None:
        self.preset_name = preset_name
        self.available = available or []
        if self.available:
            available_str = ", ".join(sorted(self.available))
            message = (
                f"Unknown preset '{preset_name}'. Available presets: {available_str}"
            )
        else:
            message = f"Unknown preset '{preset_name}'"
        super().__init__(message)


def _placeholders_in(arg: str) -> set[str]:
    try:
        return {
            name
            for _, name, _, _ in string.Formatter().parse(arg)
            if name is not None
        }
    except ValueError as e:
        raise ConfigError(f"Malformed placeholder in '{arg}': {e}") from e


def parse_env(value: Any, where: str) -> dict[str, str | None]:
    """Validate an env mapping; null values unset a variable.

    Raises:
        ConfigError: If value is not a mapping of names to scalars.
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{where}: env must be a mapping, got {type(value).__name__}")
    env: dict[str, str | None] = {}
    for key, item in value.items():
        if not isinstance(key, str) or not key:
            raise ConfigError(f"{where}: env keys must be non-empty strings")
        if item is None:
            env[key] = None
        elif isinstance(item, (str, int, float, bool)):
            env[key] = str(item).lower() if isinstance(item, bool) else str(item)
        else:
            raise ConfigError(
                f"{where}: env value for '{key}' must be a scalar, "
                f"got {type(item).__name__}"
            )
    return env


@dataclass(frozen=True)
class CommandConfig:
    """A command configured for a phase.

    Commands can be specified in two forms in testbot.yaml:
    - String shorthand: "brew style {tap}" (split like a shell would)
    - Object form: {command: [brew, doctor], ignore_failures: true}

    Attributes:
        argv: Program and arguments, possibly containing placeholders.
        ignore_failures: Record failures as ignored.
        verbose: Always stream the command's output.
        env: Extra environment for this command only.
    """

    argv: tuple[str, ...]
    ignore_failures: bool = False
    verbose: bool = False
    env: Mapping[str, str | None] = field(default_factory=dict)

    @classmethod
    def from_value(cls, value: str | list[Any] | dict[str, Any], where: str) -> CommandConfig:
        """Create CommandConfig from a YAML value.

        Args:
            value: Command string, argument list, or mapping with a
                'command' key and optional step options.
            where: Location used in error messages (e.g. "setup[0]").

        Raises:
            ConfigError: If the value is empty, malformed, or uses an
                unknown placeholder.

        Examples:
            >>> CommandConfig.from_value("brew doctor", "setup[1]").argv
            ('brew', 'doctor')
        """
        if isinstance(value, dict):
            unknown = sorted(str(k) for k in set(value) - _COMMAND_FIELDS)
            if unknown:
                raise ConfigError(f"{where}: unknown field '{unknown[0]}'")
            if "command" not in value:
                raise ConfigError(f"{where}: command object must have a 'command' field")
            argv = cls._parse_argv(value["command"], where)
            flags = {}
            for key in ("ignore_failures", "verbose"):
                flag = value.get(key, False)
                if not isinstance(flag, bool):
                    raise ConfigError(
                        f"{where}: {key} must be a boolean, got {type(flag).__name__}"
                    )
                flags[key] = flag
            env = parse_env(value.get("env"), where)
            return cls(argv=argv, env=env, **flags)

        return cls(argv=cls._parse_argv(value, where))

    @staticmethod
    def _parse_argv(value: Any, where: str) -> tuple[str, ...]:
        if isinstance(value, str):
            try:
                argv = tuple(shlex.split(value))
            except ValueError as e:
                raise ConfigError(f"{where}: cannot parse command '{value}': {e}") from e
        elif isinstance(value, list):
            if not all(isinstance(arg, (str, int, float)) for arg in value):
                raise ConfigError(f"{where}: command list must contain only strings")
            argv = tuple(str(arg) for arg in value)
        else:
            raise ConfigError(
                f"{where}: command must be a string or list, got {type(value).__name__}"
            )

        if not argv or not argv[0]:
            raise ConfigError(f"{where}: command cannot be empty")

        for arg in argv:
            unknown = _placeholders_in(arg) - PLACEHOLDERS
            if unknown:
                raise ConfigError(
                    f"{where}: unknown placeholder '{{{sorted(unknown)[0]}}}' in '{arg}'"
                )
        return argv

    def render(self, context: Mapping[str, str]) -> tuple[str, ...]:
        """Substitute placeholders.

        Placeholders missing from context render as empty strings, and
        arguments that end up empty are dropped.
        """
        values = {name: context.get(name, "") for name in PLACEHOLDERS}
        rendered = (arg.format_map(values) for arg in self.argv)
        return tuple(arg for arg in rendered if arg)


@dataclass(frozen=True)
class PhaseCommands:
    """Configured commands for every phase.

    Attributes:
        preset: Name of the preset the configuration started from.
        cleanup_before: Commands run at the end of the cleanup-before phase.
        setup: Commands run in the setup phase.
        static_checks: Commands run once per tap in the static checks phase.
        functional_tests: Commands run once per resolved package.
        cleanup_after: Commands run in the cleanup-after phase.
        env: Environment applied to every step.
    """

    preset: str | None = None
    cleanup_before: tuple[CommandConfig, ...] = ()
    setup: tuple[CommandConfig, ...] = ()
    static_checks: tuple[CommandConfig, ...] = ()
    functional_tests: tuple[CommandConfig, ...] = ()
    cleanup_after: tuple[CommandConfig, ...] = ()
    env: Mapping[str, str | None] = field(default_factory=dict)

    def for_phase(self, phase: Phase) -> tuple[CommandConfig, ...]:
        return getattr(self, phase.value)


# Keys of testbot.yaml holding command lists
COMMAND_LIST_KEYS = tuple(phase.value for phase in Phase)
