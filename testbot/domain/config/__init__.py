"""Phase command configuration: testbot.yaml loading and bundled presets."""

from testbot.domain.config.config import (
    CommandConfig,
    ConfigError,
    PhaseCommands,
    PresetNotFoundError,
)
from testbot.domain.config.config_loader import ConfigMissingError, load_config
from testbot.domain.config.preset_registry import PresetRegistry

__all__ = [
    "CommandConfig",
    "ConfigError",
    "ConfigMissingError",
    "PhaseCommands",
    "PresetNotFoundError",
    "PresetRegistry",
    "load_config",
]
