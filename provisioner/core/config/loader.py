"""
Configuration loader — reads provisioner.yml into Settings.

The settings file is optional. It is looked up from the working
directory upwards, then in ~/.config/provisioner/. Without one, the
defaults provision the full workstation.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from provisioner.core.errors import ConfigError
from provisioner.core.models.settings import Settings

logger = logging.getLogger(__name__)

# Default config filename
SETTINGS_FILE = "provisioner.yml"
USER_CONFIG_DIR = Path("~/.config/provisioner")


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for provisioner.yml starting from the given directory, walking up.

    Falls back to ~/.config/provisioner/provisioner.yml.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to the settings file, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    user_file = USER_CONFIG_DIR.expanduser() / SETTINGS_FILE
    if user_file.is_file():
        return user_file

    return None


def load_settings(path: Path | None = None, search: bool = True) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit settings file. Must exist if given.
        search: When no path is given, look for one with find_settings_file.

    Returns:
        Validated Settings (defaults if no file was found).

    Raises:
        ConfigError: If the file is missing (explicit path) or invalid.
    """
    if path is None:
        path = find_settings_file() if search else None
        if path is None:
            logger.debug("No %s found — using defaults", SETTINGS_FILE)
            return Settings()
    elif not path.is_file():
        raise ConfigError(f"Settings file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s (profiles: %s)", path, ", ".join(settings.profiles))
    return settings
