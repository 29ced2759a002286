"""
Persistent settings for catchwalk.

Runtime overrides of the engine defaults, stored in a JSON file that
survives restarts. Keys use dot notation:

    tracking.voxel_size     walking cell size (m)
    elevation.cell_size     elevation raster spacing (m)
    elevation.index         "linear" or "kdtree"
    gps.port                serial device of the GPS receiver

Settings file location: ~/.catchwalk_settings.json, or the path in the
CATCHWALK_SETTINGS environment variable.

A corrupt settings file (invalid JSON) is deleted and defaults are used,
with a warning on startup.
"""

import json
import logging
import os
import threading
from typing import Any, Optional

logger = logging.getLogger('catchwalk.settings')

SETTINGS_FILE = os.environ.get(
    "CATCHWALK_SETTINGS",
    os.path.expanduser("~/.catchwalk_settings.json"),
)


class SettingsManager:
    """
    Process-wide settings store (singleton).

    Loaded once from JSON, written back atomically on every set().
    Thread-safe for concurrent get/set.
    """

    _instance: Optional['SettingsManager'] = None
    _lock = threading.Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._initialised = False
                cls._instance = instance
        return cls._instance

    def __init__(self):
        if self._initialised:
            return

        self._settings = {}
        self._file_path = SETTINGS_FILE
        self._save_lock = threading.Lock()
        self._load()
        self._initialised = True

    def _load(self):
        """Read the settings file, falling back to empty settings."""
        if not os.path.exists(self._file_path):
            logger.debug("No settings file at %s, using defaults", self._file_path)
            self._settings = {}
            return

        try:
            with open(self._file_path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Corrupt settings file deleted, using defaults: %s", e)
            self._delete_corrupt_file()
            loaded = {}
        except OSError as e:
            logger.warning("Could not read settings: %s", e)
            loaded = {}

        if not isinstance(loaded, dict):
            logger.warning("Settings file does not hold an object, using defaults")
            loaded = {}

        self._settings = loaded
        if loaded:
            logger.info("Settings loaded from %s", self._file_path)

    def _delete_corrupt_file(self):
        try:
            os.remove(self._file_path)
            logger.info("Removed corrupt settings file: %s", self._file_path)
        except OSError as e:
            logger.error("Failed to remove corrupt settings file: %s", e)

    def _save(self):
        """Write settings via a temp file and rename."""
        with self._save_lock:
            temp_path = self._file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(self._settings, f, indent=2)
                os.replace(temp_path, self._file_path)
            except OSError as e:
                logger.warning("Could not save settings: %s", e)
                if os.path.exists(temp_path):
                    os.remove(temp_path)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value.

        Args:
            key: Dot-notation key, e.g. "elevation.cell_size"
            default: Returned when any part of the key is missing

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

    def set(self, key: str, value: Any, save: bool = True):
        """
        Set a setting value, creating intermediate sections as needed.

        Args:
            key: Dot-notation key
            value: JSON-serialisable value
            save: Write the file immediately (default True)
        """
        keys = key.split('.')
        section = self._settings
        for k in keys[:-1]:
            if not isinstance(section.get(k), dict):
                section[k] = {}
            section = section[k]
        section[keys[-1]] = value

        if save:
            self._save()

    def get_all(self) -> dict:
        return self._settings.copy()

    def reset(self):
        """Drop every setting and save."""
        self._settings = {}
        self._save()


def get_settings() -> SettingsManager:
    """Get the settings manager singleton."""
    return SettingsManager()
