"""Preset registry for built-in phase command presets.

Presets are YAML files bundled with the package and discovered via
importlib.resources.
"""

from __future__ import annotations

from importlib import resources
from typing import Any, ClassVar

from testbot.domain.config.config import ConfigError, PhaseCommands, PresetNotFoundError
from testbot.domain.config.config_loader import parse_config_data, parse_yaml, validate_schema


class PresetRegistry:
    """Registry for built-in presets.

    Example:
        >>> registry = PresetRegistry()
        >>> registry.get("homebrew").setup[1].argv
        ('brew', 'doctor')
    """

    # Package containing preset YAML files
    _PRESETS_PACKAGE: ClassVar[str] = "testbot.domain.config.presets"

    # Mapping of preset names to YAML filenames
    _PRESET_FILES: ClassVar[dict[str, str]] = {
        "homebrew": "homebrew.yaml",
        "none": "none.yaml",
    }

    def get(self, name: str) -> PhaseCommands:
        """Load a preset as PhaseCommands.

        Raises:
            PresetNotFoundError: If the preset name is not recognized.
            ConfigError: If the preset file is invalid.
        """
        return parse_config_data(self.get_data(name), name)

    def get_data(self, name: str) -> dict[str, Any]:
        """Load a preset's raw, schema-checked mapping.

        Raises:
            PresetNotFoundError: If the preset name is not recognized.
            ConfigError: If the preset sets a preset of its own.
        """
        if name not in self._PRESET_FILES:
            raise PresetNotFoundError(name, self.list_presets())

        data = self._load_preset_yaml(name)
        validate_schema(data, f"preset '{name}'")
        if "preset" in data:
            raise ConfigError("presets cannot reference another preset")
        return data

    def list_presets(self) -> list[str]:
        """Return a sorted list of available preset names."""
        return sorted(self._PRESET_FILES.keys())

    def _load_preset_yaml(self, name: str) -> dict[str, Any]:
        filename = self._PRESET_FILES[name]
        try:
            package_files = resources.files(self._PRESETS_PACKAGE)
            content = package_files.joinpath(filename).read_text(encoding="utf-8")
        except (ModuleNotFoundError, FileNotFoundError, TypeError) as e:
            raise PresetNotFoundError(name, self.list_presets()) from e
        return parse_yaml(content, filename)
