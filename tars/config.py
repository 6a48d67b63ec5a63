"""Settings for the tars CLI.

Resolved once per invocation, lowest precedence first:

1. Built-in defaults (data directory ``~/.tars``)
2. ``<data_dir>/config.yaml``
3. Environment: ``TARS_DATA_DIR``, ``TARS_LOG_LEVEL``, ``TARS_CHECK_GIT``
4. Explicit arguments (CLI options)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from tars.errors import ConfigError

CONFIG_FILE = "config.yaml"
DEFAULT_DATA_DIR = Path.home() / ".tars"
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class Settings:
    data_dir: Path = DEFAULT_DATA_DIR
    log_level: str = "WARNING"
    check_git: bool = True

    @property
    def backup_dir(self) -> Path:
        return self.data_dir / "backups"

    @property
    def log_level_number(self) -> int:
        return getattr(logging, self.log_level)


def load_settings(
    data_dir: str | Path | None = None,
    log_level: str | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Resolve settings from defaults, config file, environment and arguments.

    Raises:
        ConfigError: The config file is unparsable or a value is invalid.
    """
    env = os.environ if environ is None else environ

    resolved_dir = Path(data_dir or env.get("TARS_DATA_DIR") or DEFAULT_DATA_DIR).expanduser()
    settings = Settings(data_dir=resolved_dir)

    file_values = _read_config_file(resolved_dir / CONFIG_FILE)
    if "log_level" in file_values:
        settings.log_level = _parse_log_level(file_values["log_level"])
    if "check_git" in file_values:
        settings.check_git = _parse_bool(file_values["check_git"], "check_git")

    if env.get("TARS_LOG_LEVEL"):
        settings.log_level = _parse_log_level(env["TARS_LOG_LEVEL"])
    if env.get("TARS_CHECK_GIT"):
        settings.check_git = _parse_bool(env["TARS_CHECK_GIT"], "TARS_CHECK_GIT")

    if log_level:
        settings.log_level = _parse_log_level(log_level)

    return settings


def _read_config_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _parse_log_level(value) -> str:
    level = str(value).upper()
    if level not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid log level '{value}'. Must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )
    return level


def _parse_bool(value, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {value}")
