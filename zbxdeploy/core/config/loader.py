"""
Settings loader — reads zbxdeploy.yml into ``DeployerSettings``.

Lookup order: explicit path, ``ZBXD_CONFIG`` env var, ``./zbxdeploy.yml``,
``/etc/zbxdeploy/zbxdeploy.yml``. No file at all means built-in defaults.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from zbxdeploy.core.config.settings import DeployerSettings

logger = logging.getLogger(__name__)

SETTINGS_FILE = "zbxdeploy.yml"
SYSTEM_SETTINGS = Path("/etc/zbxdeploy") / SETTINGS_FILE


class ConfigError(Exception):
    """Raised when the settings file is invalid or unreadable."""


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Locate a settings file without an explicit path.

    Returns:
        Path to the first candidate that exists, or None.
    """
    env_path = os.environ.get("ZBXD_CONFIG")
    if env_path:
        return Path(env_path)

    for candidate in ((start_dir or Path.cwd()) / SETTINGS_FILE, SYSTEM_SETTINGS):
        if candidate.is_file():
            return candidate
    return None


def load_settings(path: Path | None = None) -> DeployerSettings:
    """Load and validate deployer settings.

    Args:
        path: Explicit settings file. If None, searches the default places.

    Raises:
        ConfigError: If an explicitly named file is missing, or any file
            is not valid YAML or does not match the schema.
    """
    if path is None:
        path = find_settings_file()
        if path is None:
            logger.debug("No %s found, using built-in defaults", SETTINGS_FILE)
            return DeployerSettings()

    if not path.is_file():
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

    # Settings may sit under a top-level "zbxdeploy" key
    data = data.get("zbxdeploy", data)

    try:
        settings = DeployerSettings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s", path)
    return settings
