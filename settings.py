"""
Settings loading for the Vue School downloader.

Settings live in a JSON file that is read once at startup:

    {
        "email": "me@example.com",
        "password": "secret",
        "downloadPath": "downloads",
        "downloadCourses": ["https://vueschool.io/courses/..."]
    }

Optional keys tune timeouts and behaviour; see DEFAULTS.
"""
import json
import os

import logger
log = logger

DEFAULT_SETTINGS_FILE = "settings.json"

REQUIRED_KEYS = ("email", "password", "downloadPath", "downloadCourses")

DEFAULTS = {
    "headless": True,
    "elementTimeout": 30,
    "playbackTimeout": 120,
    "pollInterval": 1.0,
    "skipExisting": True,
    "concurrentDownloads": False,
}


class SettingsError(Exception):
    """Raised when the settings file is missing, unreadable or incomplete."""


def load_settings(settings_path=None):
    """
    Load and validate the settings file.

    Args:
        settings_path (str, optional): Path to the JSON settings file.
                                       Defaults to settings.json in the working directory.

    Returns:
        dict: Settings with optional keys filled from DEFAULTS

    Raises:
        SettingsError: If the file cannot be read or parsed, or a required key is missing
    """
    if settings_path is None:
        settings_path = DEFAULT_SETTINGS_FILE

    log.info(f"Loading settings file: {settings_path}")

    if not os.path.exists(settings_path):
        raise SettingsError(f"Settings file not found: {settings_path}")

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise SettingsError(f"Could not read settings file {settings_path}: {e}") from e

    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {settings_path} must contain a JSON object")

    return validate_settings(data)


def validate_settings(data):
    """
    Check required keys and apply defaults.

    Args:
        data (dict): Raw settings

    Returns:
        dict: A new settings dict

    Raises:
        SettingsError: If a required key is missing or has the wrong shape
    """
    missing = [key for key in REQUIRED_KEYS if not data.get(key)]
    if missing:
        raise SettingsError(f"Missing required settings: {', '.join(missing)}")

    courses = data["downloadCourses"]
    if isinstance(courses, str):
        courses = [courses]
    if not isinstance(courses, list) or not all(isinstance(c, str) and c for c in courses):
        raise SettingsError("downloadCourses must be a list of course URLs")

    settings = dict(DEFAULTS)
    settings.update(data)
    settings["downloadCourses"] = list(courses)

    for key in ("elementTimeout", "playbackTimeout", "pollInterval"):
        try:
            settings[key] = float(settings[key])
        except (TypeError, ValueError):
            raise SettingsError(f"{key} must be a number, got {settings[key]!r}")
        if settings[key] <= 0:
            raise SettingsError(f"{key} must be positive, got {settings[key]}")

    return settings
