"""
Configuration loader — reads lxguest.yml into a typed config model.

The file is optional. Lookup order: explicit path (``--config``),
``LXG_CONFIG`` env var, ``/etc/lxguest.yml``. With none present the
defaults apply.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

CONFIG_FILE = "lxguest.yml"
SYSTEM_CONFIG_PATH = Path("/etc") / CONFIG_FILE
CONFIG_ENV_VAR = "LXG_CONFIG"

# Asset bundle shipped with the package.
DEFAULT_ASSETS_DIR = Path(__file__).resolve().parents[2] / "assets"


class ConfigError(Exception):
    """Raised when the configuration file is invalid or unreadable."""


class ToolingConfig(BaseModel):
    """Installer settings."""

    model_config = ConfigDict(extra="forbid")

    assets_dir: Path = DEFAULT_ASSETS_DIR
    audit_log: Path | None = None


def find_config_file(explicit: Path | None = None) -> Path | None:
    """Locate the config file to use, or None for built-in defaults."""
    if explicit is not None:
        return explicit

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    if SYSTEM_CONFIG_PATH.is_file():
        return SYSTEM_CONFIG_PATH

    return None


def load_config(path: Path | None = None) -> ToolingConfig:
    """Load and validate installer configuration.

    Args:
        path: Explicit config path. If None, uses ``find_config_file``.

    Returns:
        Validated ToolingConfig.

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid.
    """
    path = find_config_file(path)
    if path is None:
        logger.debug("No config file, using defaults")
        return ToolingConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

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
        config = ToolingConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    # Relative paths in the file are relative to the file itself.
    base = path.parent.resolve()
    if not config.assets_dir.is_absolute():
        config.assets_dir = base / config.assets_dir
    if config.audit_log is not None and not config.audit_log.is_absolute():
        config.audit_log = base / config.audit_log

    logger.info("Loaded config from %s (assets=%s)", path, config.assets_dir)
    return config
