"""File-backed settings document for the kiosk settings server.

The whole document lives in one JSON file. Writes go through a temp file and
``os.replace`` so a reader never sees a half-written document.
"""
import json
import logging
import os
from typing import Any, Dict, Tuple

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = os.path.join('data', 'settings.json')

SETTINGS_KEYS = ('weatherApiKey', 'mapApiKey', 'reverseGeoApiKey', 'startingLat', 'startingLon')


def default_settings() -> Dict[str, Any]:
    return {key: None for key in SETTINGS_KEYS}


def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the known keys; missing ones become None"""
    return {key: data.get(key) for key in SETTINGS_KEYS}


def save_settings(path: str, settings: Dict[str, Any]) -> Dict[str, Any]:
    """Atomically save the settings document to ``path``"""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    document = _normalize(settings)
    tmp = path + '.tmp'
    try:
        with open(tmp, 'w') as sf:
            json.dump(document, sf, indent=2)
        # atomic replace
        os.replace(tmp, path)
    except OSError as e:
        logger.exception('Failed to save settings file %s: %s', path, e)
        raise  # callers report the failure to the client
    logger.debug("Saved settings to %s", path)
    return document


def create_settings_file(path: str) -> Tuple[Dict[str, Any], bool]:
    """Create the default document if absent; returns (document, created)"""
    if os.path.exists(path):
        return load_settings(path), False
    logger.info("Creating settings file %s", path)
    return save_settings(path, default_settings()), True


def load_settings(path: str) -> Dict[str, Any]:
    """Load the settings document, creating the default one when the file is missing.

    A corrupt or unreadable file is logged and treated as the default document.
    """
    if not os.path.exists(path):
        document, _ = create_settings_file(path)
        return document
    try:
        with open(path, 'r') as sf:
            data = json.load(sf)
    except (OSError, ValueError) as e:
        logger.error("Failed to load settings file %s: %s", path, e)
        return default_settings()
    if not isinstance(data, dict):
        logger.warning("Settings file %s does not hold a JSON object, using defaults", path)
        return default_settings()
    return _normalize(data)


def replace_settings(path: str, settings: Dict[str, Any]) -> Dict[str, Any]:
    return save_settings(path, settings)


def set_setting(path: str, key: str, value: Any) -> Dict[str, Any]:
    if key not in SETTINGS_KEYS:
        raise KeyError(key)
    document = load_settings(path)
    document[key] = value
    return save_settings(path, document)


def delete_setting(path: str, key: str) -> Dict[str, Any]:
    """Reset one known key back to null"""
    if key not in SETTINGS_KEYS:
        raise KeyError(key)
    document = load_settings(path)
    document[key] = None
    return save_settings(path, document)
