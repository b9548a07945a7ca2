"""Configuration management for pv-migrate."""

import os
from pathlib import Path
from typing import Any

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from ..constants import DEFAULT_RSYNC_IMAGE, DEFAULT_SSHD_IMAGE
from .exceptions import ConfigurationError
from .settings import MigrationSettings

logger = structlog.get_logger()


class ImageConfig(BaseModel):
    """Images used by ephemeral pods."""

    rsync: str = DEFAULT_RSYNC_IMAGE
    sshd: str = DEFAULT_SSHD_IMAGE


class PVMigrateConfig(BaseModel):
    """Resolved configuration."""

    settings: MigrationSettings
    images: ImageConfig
    config_file: str | None = None


def default_config_path() -> Path:
    """Config file location (PV_MIGRATE_CONFIG or ~/.config/pv-migrate/config.yml)."""
    env_path = os.getenv("PV_MIGRATE_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".config" / "pv-migrate" / "config.yml"


def load_config(config_path: str | None = None) -> PVMigrateConfig:
    """Load configuration from .env, an optional YAML file and the environment.

    YAML values are used as defaults; ``PV_MIGRATE_*`` environment variables
    win over them.

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If the file is unreadable or invalid
    """
    load_dotenv()

    path = Path(config_path).expanduser() if config_path else default_config_path()
    if config_path and not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    yaml_config = _load_yaml_config(path) if path.exists() else {}

    settings_data = yaml_config.get("settings") or {}
    images_data = yaml_config.get("images") or {}
    if not isinstance(settings_data, dict) or not isinstance(images_data, dict):
        raise ConfigurationError(f"Invalid config file {path}: 'settings' and 'images' must be mappings")

    try:
        settings = _apply_env_overrides(MigrationSettings(**settings_data))
        images = ImageConfig(**images_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    logger.debug("Configuration loaded", config_file=str(path) if path.exists() else None)
    return PVMigrateConfig(
        settings=settings,
        images=images,
        config_file=str(path) if path.exists() else None,
    )


def _load_yaml_config(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse config file {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def _apply_env_overrides(settings: MigrationSettings) -> MigrationSettings:
    """Re-apply environment variables on top of file values."""
    env_settings = MigrationSettings()
    overrides = {
        name: getattr(env_settings, name)
        for name in MigrationSettings.model_fields
        if f"PV_MIGRATE_{name.upper()}" in os.environ
    }
    return settings.model_copy(update=overrides) if overrides else settings
