"""TOML configuration loading and validation.

Handles config file discovery, parsing, and validation with helpful error messages.
"""

import dataclasses
import tomllib
from pathlib import Path
from typing import Any

from .schema import BackupConfig, Config, GlobalConfig, IsoConfig, ShareConfig


class ConfigError(Exception):
    """Configuration loading or validation error."""

    pass


# Config file search paths in priority order
CONFIG_PATHS = [
    Path.home() / ".config" / "ubuntu-revive" / "config.toml",
    Path("/etc/ubuntu-revive/config.toml"),
]


def find_config_file(explicit_path: str | None = None) -> Path | None:
    """Find configuration file.

    Args:
        explicit_path: Explicitly specified config path (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        raise ConfigError(f"Config file not found: {explicit_path}")

    for path in CONFIG_PATHS:
        if path.exists():
            return path

    return None


def _parse_section(
    name: str, cls: type, data: dict[str, Any], warnings: list[str]
) -> Any:
    """Build a schema dataclass from one TOML table.

    Values must have the type of the corresponding default; unknown keys are
    reported as warnings and otherwise ignored.
    """
    if not isinstance(data, dict):
        raise ConfigError(f"[{name}] must be a table")

    defaults = cls()
    known = {f.name for f in dataclasses.fields(cls)}
    values = {}
    for key, value in data.items():
        if key not in known:
            warnings.append(f"Unknown key '{key}' in [{name}]")
            continue
        default = getattr(defaults, key)
        # optional settings default to None and take a string
        expected = str if default is None else type(default)
        if not isinstance(value, expected) or (
            isinstance(value, bool) and expected is not bool
        ):
            raise ConfigError(
                f"[{name}] {key} must be of type {expected.__name__}, "
                f"got {type(value).__name__}"
            )
        if isinstance(default, list) and not all(isinstance(v, str) for v in value):
            raise ConfigError(f"[{name}] {key} must be a list of strings")
        values[key] = value
    return cls(**values)


def _validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of warnings."""
    warnings = []

    if not config.backup.system_dirs and not config.backup.home_dirs:
        warnings.append("No directories configured for archiving")

    for path in config.backup.system_dirs + config.backup.home_dirs:
        if not path.startswith("/"):
            warnings.append(f"Archive path '{path}' is not absolute")

    if config.backup.id_threshold <= 0:
        warnings.append("id_threshold <= 0 captures system accounts")

    if not config.share.path.startswith("/"):
        warnings.append(f"Share path '{config.share.path}' is not absolute")

    if "%" not in config.global_config.date_format:
        warnings.append("date_format contains no strftime directive")

    return warnings


def load_config(path: Path | str) -> tuple[Config, list[str]]:
    """Load and validate configuration from TOML file.

    Args:
        path: Path to configuration file

    Returns:
        Tuple of (Config object, list of warnings)

    Raises:
        ConfigError: If config is invalid or cannot be parsed
    """
    path = Path(path)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}")

    warnings: list[str] = []
    sections = {
        "global": GlobalConfig,
        "share": ShareConfig,
        "backup": BackupConfig,
        "iso": IsoConfig,
    }
    for key in data:
        if key not in sections:
            warnings.append(f"Unknown section [{key}]")

    config = Config(
        global_config=_parse_section(
            "global", GlobalConfig, data.get("global", {}), warnings
        ),
        share=_parse_section("share", ShareConfig, data.get("share", {}), warnings),
        backup=_parse_section(
            "backup", BackupConfig, data.get("backup", {}), warnings
        ),
        iso=_parse_section("iso", IsoConfig, data.get("iso", {}), warnings),
    )

    warnings.extend(_validate_config(config))

    return config, warnings


def resolve_config(explicit_path: str | None = None) -> tuple[Config, list[str]]:
    """Load the config file in effect, or the defaults when there is none."""
    path = find_config_file(explicit_path)
    if path is None:
        return Config(), []
    return load_config(path)
