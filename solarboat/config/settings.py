"""
Settings management for Solar Boat.

Handles loading, saving, and accessing application configuration.
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

from ..core.terraform_parser import ParserMarkers
from .defaults import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)


class Settings:
    """
    Application settings manager.

    Settings are stored as JSON and merged over the defaults.

    Path:
        Linux/macOS: ~/.config/solarboat/settings.json
        Windows: %APPDATA%\\solarboat\\settings.json
    """

    CONFIG_FILENAME = "settings.json"

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            config_dir: Directory holding settings.json (platform default if None)
        """
        self.config_dir = Path(config_dir) if config_dir else self._get_config_dir()
        self.config_file = self.config_dir / self.CONFIG_FILENAME
        self._settings: Dict[str, Any] = {}
        self.load()

    @staticmethod
    def _get_config_dir() -> Path:
        """
        Get platform-specific configuration directory.

        Returns:
            Path to configuration directory
        """
        if os.name == 'nt':  # Windows
            base = os.environ.get('APPDATA', os.path.expanduser('~'))
        else:  # Linux/macOS
            base = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))

        return Path(base) / 'solarboat'

    def load(self):
        """
        Load settings from file.

        If file doesn't exist or is invalid, uses default settings.
        """
        self._settings = copy.deepcopy(DEFAULT_SETTINGS)

        if not self.config_file.exists():
            logger.debug("No config file found, using defaults")
            return

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded_settings = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Failed to load settings: {e}, using defaults")
            return

        if not isinstance(loaded_settings, dict):
            logger.error(f"Ignoring {self.config_file}: top level must be an object")
            return

        # Merge with defaults (in case new settings were added)
        self._deep_update(self._settings, loaded_settings)
        logger.debug(f"Loaded settings from {self.config_file}")

    def save(self):
        """
        Save current settings to file.

        Creates parent directories if needed.

        Raises:
            IOError: If the file cannot be written
        """
        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self._settings, f, indent=2)

        logger.info(f"Saved settings to {self.config_file}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get setting value.

        Supports nested keys with dot notation: "markers.backend"

        Args:
            key: Setting key (use dots for nested values)
            default: Default value if key not found

        Returns:
            Setting value or default
        """
        value = self._settings

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any):
        """
        Set setting value.

        Supports nested keys with dot notation: "markers.backend"

        Args:
            key: Setting key (use dots for nested values)
            value: Value to set
        """
        keys = key.split('.')
        target = self._settings

        # Navigate to parent of target key
        for k in keys[:-1]:
            if k not in target or not isinstance(target[k], dict):
                target[k] = {}
            target = target[k]

        target[keys[-1]] = value

    def as_dict(self) -> Dict[str, Any]:
        """Return a copy of all current settings."""
        return copy.deepcopy(self._settings)

    def markers(self) -> ParserMarkers:
        """
        Build parser markers from the "markers" section.

        A section that is not an object, or an entry that is not a
        non-empty string, falls back to the default marker.
        """
        defaults = ParserMarkers()
        section = self.get("markers", {})
        if not isinstance(section, dict):
            logger.error("Ignoring 'markers' setting: must be an object, using defaults")
            section = {}

        def _marker(name: str) -> str:
            value = section.get(name)
            if value is None:
                return getattr(defaults, name)
            if not isinstance(value, str) or not value:
                logger.error(f"Ignoring 'markers.{name}' setting: must be a non-empty string")
                return getattr(defaults, name)
            return value

        return ParserMarkers(
            file_suffix=_marker("file_suffix"),
            module_block=_marker("module_block"),
            source=_marker("source"),
            config_block=_marker("config_block"),
            backend=_marker("backend"),
        )

    def ignored_dirs(self) -> List[str]:
        """
        Directory names discovery never descends into.

        Anything other than a list of strings falls back to the default.
        """
        value = self.get("ignored_dirs")
        if isinstance(value, list) and all(isinstance(name, str) for name in value):
            return list(value)
        if value is not None:
            logger.error("Ignoring 'ignored_dirs' setting: must be a list of names, using defaults")
        return list(DEFAULT_SETTINGS["ignored_dirs"])

    @staticmethod
    def _deep_update(base: dict, updates: dict):
        """
        Recursively update base dict with values from updates dict.

        Args:
            base: Dictionary to update
            updates: Dictionary with new values
        """
        for key, value in updates.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                Settings._deep_update(base[key], value)
            else:
                base[key] = value
