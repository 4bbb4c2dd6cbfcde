"""Configuration — deployer settings."""

from zbxdeploy.core.config.loader import ConfigError, load_settings  # noqa: F401
from zbxdeploy.core.config.settings import DeployerSettings  # noqa: F401
