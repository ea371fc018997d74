"""YAML configuration loader for testbot.yaml.

This module loads, parses, and validates testbot.yaml, then merges it over
the preset it names. Validation is strict so that a typo in a key or a
placeholder fails the run up front instead of silently skipping commands.

Key functions:
- load_config: Load testbot.yaml (or the default preset) for a repository
- parse_config_data: Validate a parsed mapping and build PhaseCommands
- merge_config_data: Lay user keys over preset keys
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import yaml

from testbot.domain.config.config import (
    COMMAND_LIST_KEYS,
    CommandConfig,
    ConfigError,
    PhaseCommands,
    parse_env,
)

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "testbot.yaml"
DEFAULT_PRESET = "homebrew"

# Fields allowed at the top level of testbot.yaml
_ALLOWED_TOP_LEVEL_FIELDS = frozenset({"preset", "env", *COMMAND_LIST_KEYS})


class ConfigMissingError(ConfigError):
    """Raised when an explicitly requested configuration file does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Configuration file {path} not found")


def load_config(repo_path: Path | None, config_path: Path | None = None) -> PhaseCommands:
    """Load the phase commands for a run.

    Reads config_path if given, else testbot.yaml at repo_path. Without a
    file, the default preset is used as is.

    Args:
        repo_path: Repository root searched for testbot.yaml.
        config_path: Explicit configuration file (--config).

    Returns:
        PhaseCommands with the preset merged in.

    Raises:
        ConfigMissingError: If config_path is given but does not exist.
        ConfigError: If the file or its preset is invalid.
    """
    from testbot.domain.config.preset_registry import PresetRegistry

    registry = PresetRegistry()

    if config_path is not None:
        if not config_path.is_file():
            raise ConfigMissingError(config_path)
        config_file: Path | None = config_path
    elif repo_path is not None and (repo_path / CONFIG_FILENAME).is_file():
        config_file = repo_path / CONFIG_FILENAME
    else:
        config_file = None

    if config_file is None:
        logger.debug("No %s found, using preset %s", CONFIG_FILENAME, DEFAULT_PRESET)
        return parse_config_data(registry.get_data(DEFAULT_PRESET), DEFAULT_PRESET)

    try:
        content = config_file.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read {config_file}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"Failed to decode {config_file}: {e}") from e

    user_data = parse_yaml(content, config_file.name)
    validate_schema(user_data, config_file.name)

    preset_name = user_data.get("preset", DEFAULT_PRESET)
    if not isinstance(preset_name, str):
        raise ConfigError(
            f"preset must be a string, got {type(preset_name).__name__}"
        )
    logger.debug("Loaded %s (preset %s)", config_file, preset_name)
    merged = merge_config_data(registry.get_data(preset_name), user_data)
    return parse_config_data(merged, preset_name)


def parse_yaml(content: str, source: str = CONFIG_FILENAME) -> dict[str, Any]:
    """Parse YAML content into a dictionary.

    Returns:
        Parsed dictionary. Returns empty dict for empty/null YAML.

    Raises:
        ConfigError: If YAML syntax is invalid or the top level is not a mapping.
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {source}: {e}") from e

    # Handle empty file or file with only comments
    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"{source} must be a YAML mapping, got {type(data).__name__}")

    return data


def validate_schema(data: dict[str, Any], source: str = CONFIG_FILENAME) -> None:
    """Reject unknown top-level fields.

    Raises:
        ConfigError: If unknown fields are present.
    """
    unknown_fields = set(data.keys()) - _ALLOWED_TOP_LEVEL_FIELDS
    if unknown_fields:
        # Non-string YAML keys (null, integers) are compared as strings
        first_unknown = sorted(str(k) for k in unknown_fields)[0]
        raise ConfigError(f"Unknown field '{first_unknown}' in {source}")


def merge_config_data(preset: dict[str, Any], user: dict[str, Any]) -> dict[str, Any]:
    """Lay user configuration over a preset.

    Command lists given by the user replace the preset's list for that key
    (an explicit empty list disables the preset's commands). env maps are
    merged, user values winning.
    """
    merged = {key: value for key, value in preset.items() if key != "preset"}
    for key in COMMAND_LIST_KEYS:
        if key in user:
            merged[key] = user[key]
    if "env" in user:
        user_env = user["env"]
        if isinstance(user_env, dict):
            merged["env"] = {**(preset.get("env") or {}), **user_env}
        else:
            # null keeps the preset env; other non-mappings fail in parse_env
            merged["env"] = user_env or preset.get("env")
    return merged


def parse_config_data(data: dict[str, Any], preset: str | None = None) -> PhaseCommands:
    """Build PhaseCommands from a validated mapping.

    Raises:
        ConfigError: If a command list or env map is malformed.
    """
    validate_schema(data)
    lists: dict[str, tuple[CommandConfig, ...]] = {}
    for key in COMMAND_LIST_KEYS:
        value = data.get(key)
        if value is None:
            lists[key] = ()
            continue
        if not isinstance(value, list):
            raise ConfigError(f"{key} must be a list, got {type(value).__name__}")
        lists[key] = tuple(
            CommandConfig.from_value(item, f"{key}[{index}]")
            for index, item in enumerate(value)
        )
    return PhaseCommands(preset=preset, env=parse_env(data.get("env"), "env"), **lists)
