"""Saved CLI settings for appint-toolkit.

Kept as JSON in ~/.config/appint-toolkit/preferences.json. Holds the config
file location and a default project and region, used when neither a flag nor
an environment variable names them.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

PREFERENCES_DIR = Path.home() / ".config" / "appint-toolkit"
PREFERENCES_FILE = PREFERENCES_DIR / "preferences.json"

CONFIG_PATH = "config_path"
DEFAULT_PROJECT = "default_project"
DEFAULT_REGION = "default_region"
KNOWN_KEYS = (CONFIG_PATH, DEFAULT_PROJECT, DEFAULT_REGION)


def _read() -> Dict[str, Any]:
    try:
        with open(PREFERENCES_FILE, 'r') as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable preferences file {PREFERENCES_FILE}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring preferences file {PREFERENCES_FILE}: not a JSON object")
        return {}
    return data


def _write(preferences: Dict[str, Any]) -> None:
    PREFERENCES_DIR.mkdir(parents=True, exist_ok=True)
    with open(PREFERENCES_FILE, 'w') as f:
        json.dump(preferences, f, indent=2, sort_keys=True)


def get_preference(key: str) -> Optional[str]:
    return _read().get(key)


def set_preference(key: str, value: str) -> None:
    """
    Persist one setting.

    Raises:
        ValueError: If key is not one of KNOWN_KEYS
        OSError: If the preferences file cannot be written
    """
    if key not in KNOWN_KEYS:
        raise ValueError(f"Unknown preference '{key}', expected one of: {', '.join(KNOWN_KEYS)}")
    preferences = _read()
    preferences[key] = value
    _write(preferences)
    logger.debug(f"Preference '{key}' set to {value}")


def clear_preference(key: str) -> bool:
    """Remove a setting. Returns False if it was not set."""
    preferences = _read()
    if preferences.pop(key, None) is None:
        return False
    _write(preferences)
    return True


def target_defaults() -> Tuple[Optional[str], Optional[str]]:
    """Saved (project, region) defaults; either may be None."""
    preferences = _read()
    return preferences.get(DEFAULT_PROJECT), preferences.get(DEFAULT_REGION)
