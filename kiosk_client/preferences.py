"""Local display preferences.

The kiosk keeps its unit and screensaver choices in a small string-keyed
JSON file, the same way a browser keeps them in local storage: every value is
stored as a plain string and parsed back on load.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from .conversions import CLOCK_TIMES, LENGTH_UNITS, SPEED_UNITS, TEMP_UNITS

LOGGER = logging.getLogger(__name__)

TEMP_UNIT_STORAGE_KEY = "tempUnit"
SPEED_UNIT_STORAGE_KEY = "speedUnit"
LENGTH_UNIT_STORAGE_KEY = "lengthUnit"
CLOCK_UNIT_STORAGE_KEY = "clockTime"
MOUSE_HIDE_STORAGE_KEY = "mouseHide"
SCREENSAVER_ENABLED_KEY = "screensaverEnabled"
SCREENSAVER_TIMEOUT_KEY = "screensaverTimeout"
SCREENSAVER_DURATION_KEY = "screensaverDuration"
SCREENSAVER_TYPE_KEY = "screensaverType"

SCREENSAVER_TYPES = ("images", "video", "animation")

DEFAULT_PREFERENCES_FILE = os.path.join('data', 'preferences.json')


@dataclass
class Preferences:
    temp_unit: str = "f"
    speed_unit: str = "mph"
    length_unit: str = "in"
    clock_time: str = "12"
    mouse_hide: bool = False
    screensaver_enabled: bool = True
    screensaver_timeout: int = 60  # minutes
    screensaver_duration: int = 3  # minutes
    screensaver_type: str = "images"


class PreferenceStore:
    """String key/value store persisted as one JSON object"""

    def __init__(self, path: str = DEFAULT_PREFERENCES_FILE):
        self.path = path
        self._lock = threading.Lock()
        self._items: Dict[str, str] = self._read()

    def _read(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            LOGGER.error("Failed to read preferences file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            LOGGER.warning("Ignoring preferences file %s: not a JSON object", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write(self, items: Dict[str, str]) -> None:
        # caller holds self._lock
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp = self.path + '.tmp'
        with open(tmp, 'w') as f:
            json.dump(items, f, indent=2)
        os.replace(tmp, self.path)
        self._items = items

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value) -> None:
        with self._lock:
            items = dict(self._items)
            items[key] = str(value)
            self._write(items)

    def remove_item(self, key: str) -> None:
        with self._lock:
            if key in self._items:
                items = dict(self._items)
                del items[key]
                self._write(items)


def bool_to_storage(value: bool) -> str:
    return "true" if value else "false"


def parse_bool(raw: Optional[str]) -> Optional[bool]:
    """Parse a stored boolean; None when absent, ValueError when malformed"""
    if raw is None:
        return None
    value = json.loads(raw)
    if not isinstance(value, bool):
        raise ValueError(f"not a boolean: {raw!r}")
    return value


def _parse_choice(raw: Optional[str], choices, default):
    if raw and raw in choices:
        return raw
    if raw:
        LOGGER.warning("Ignoring stored value %r, expected one of %s", raw, choices)
    return default


def _parse_minutes(key: str, raw: Optional[str], default: int) -> int:
    if not raw:
        return default
    try:
        minutes = int(raw)
    except ValueError:
        LOGGER.warning("Ignoring unparseable %s value %r", key, raw)
        return default
    if minutes < 1:
        LOGGER.warning("Ignoring non-positive %s value %r", key, raw)
        return default
    return minutes


def load_preferences(store: PreferenceStore) -> Preferences:
    """Read every stored preference once, falling back to defaults.

    Parse errors are logged and never raised.
    """
    prefs = Preferences()
    prefs.temp_unit = _parse_choice(store.get_item(TEMP_UNIT_STORAGE_KEY), TEMP_UNITS, prefs.temp_unit)
    prefs.speed_unit = _parse_choice(store.get_item(SPEED_UNIT_STORAGE_KEY), SPEED_UNITS, prefs.speed_unit)
    prefs.length_unit = _parse_choice(store.get_item(LENGTH_UNIT_STORAGE_KEY), LENGTH_UNITS, prefs.length_unit)
    prefs.clock_time = _parse_choice(store.get_item(CLOCK_UNIT_STORAGE_KEY), CLOCK_TIMES, prefs.clock_time)
    prefs.screensaver_type = _parse_choice(
        store.get_item(SCREENSAVER_TYPE_KEY), SCREENSAVER_TYPES, prefs.screensaver_type
    )

    try:
        prefs.mouse_hide = bool(parse_bool(store.get_item(MOUSE_HIDE_STORAGE_KEY)))
    except ValueError as e:
        LOGGER.warning("mouseHide: %s", e)

    try:
        enabled = parse_bool(store.get_item(SCREENSAVER_ENABLED_KEY))
        if enabled is not None:
            prefs.screensaver_enabled = enabled
    except ValueError as e:
        LOGGER.warning("screensaverEnabled: %s", e)

    prefs.screensaver_timeout = _parse_minutes(
        SCREENSAVER_TIMEOUT_KEY, store.get_item(SCREENSAVER_TIMEOUT_KEY), prefs.screensaver_timeout
    )
    prefs.screensaver_duration = _parse_minutes(
        SCREENSAVER_DURATION_KEY, store.get_item(SCREENSAVER_DURATION_KEY), prefs.screensaver_duration
    )
    return prefs
