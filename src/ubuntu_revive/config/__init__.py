"""Configuration system for ubuntu-revive.

This module provides TOML-based configuration loading, validation,
and schema definitions. Without a config file the built-in defaults apply.
"""

from .loader import ConfigError, find_config_file, load_config, resolve_config
from .schema import (
    BackupConfig,
    Config,
    GlobalConfig,
    IsoConfig,
    ShareConfig,
)

__all__ = [
    "BackupConfig",
    "Config",
    "GlobalConfig",
    "IsoConfig",
    "ShareConfig",
    "load_config",
    "find_config_file",
    "resolve_config",
    "ConfigError",
]
