"""Configuration loader and settings helpers for the mass importer."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..exceptions import ConfigurationError
from ..schemas.run_config import ImportRunConfig


logger = logging.getLogger(__name__)

ENV_PREFIX = "MASS_IMPORT_"


def load_yaml_config(config_path: str | Path) -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If file not found or invalid YAML
    """
    try:
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration in {config_path} must be a mapping")
    return config


def apply_env_overrides(
    config: dict[str, Any],
    prefix: str = f"{ENV_PREFIX}RUN__",
) -> dict[str, Any]:
    """
    Override configuration values with environment variables.

    Environment variables should be prefixed (default: MASS_IMPORT_RUN__) and use __ for
    nesting. Example: MASS_IMPORT_RUN__MATCHING__HIGH_THRESHOLD overrides
    config['matching']['high_threshold'].

    Args:
        config: Base configuration dictionary
        prefix: Environment variable prefix

    Returns:
        Configuration with environment overrides applied
    """
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        config_key = key[len(prefix) :].lower()
        keys = config_key.split("__")

        current = config
        for k in keys[:-1]:
            if not isinstance(current.get(k), dict):
                current[k] = {}
            current = current[k]

        current[keys[-1]] = value

    return config


def validate_config(config: dict[str, Any], model: type[BaseModel]) -> BaseModel:
    """
    Validate configuration against Pydantic model.

    Args:
        config: Configuration dictionary
        model: Pydantic model class for validation

    Returns:
        Validated configuration model instance

    Raises:
        ConfigurationError: If validation fails
    """
    try:
        return model.model_validate(config)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Configuration validation failed: {e}")


def load_run_config(
    config_path: str | Path | None = None,
    *,
    overrides: dict[str, Any] | None = None,
) -> ImportRunConfig:
    """Load the per-run import configuration.

    The YAML file (when given) is merged with ``MASS_IMPORT_RUN__*`` environment
    variables and then with explicit ``overrides`` (CLI flags), in that order.
    """

    config: dict[str, Any] = {}
    if config_path is not None:
        config = load_yaml_config(config_path)
    config = apply_env_overrides(config)
    if overrides:
        config = _deep_merge_dicts(config, overrides)

    validated = validate_config(config, ImportRunConfig)
    assert isinstance(validated, ImportRunConfig)
    return validated


def _deep_merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries without mutating the inputs."""

    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


class GlobalSettings(BaseSettings):
    """Global application settings sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "development"
    log_level: str = "INFO"
    api_base_url: str = "http://localhost:8787"
    api_token: str | None = None
    geocoder_url: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "public-art-mass-import/1.0"
    checkpoint_dir: Path = Path(".mass-import/checkpoints")
    report_dir: Path = Path("import-reports")
    photo_cache_dir: Path = Path(".mass-import/photos")
    location_cache_path: Path = Path(".mass-import/location-cache.json")
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        """Ensure log level values are uppercase for logging config."""

        return value.upper()

    @field_validator(
        "checkpoint_dir",
        "report_dir",
        "photo_cache_dir",
        "location_cache_path",
        mode="before",
    )
    @classmethod
    def _expand_paths(cls, value: Any) -> Any:
        """Allow string paths and expand user markers."""

        if isinstance(value, Path):
            return value
        if isinstance(value, str):
            return Path(value).expanduser()
        return value

    @field_validator("api_base_url", "geocoder_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache(maxsize=1)
def _get_settings_cached() -> GlobalSettings:
    return GlobalSettings()


def get_settings(*, reload: bool = False) -> GlobalSettings:
    """Return cached settings, optionally forcing a reload."""

    if reload:
        _get_settings_cached.cache_clear()
    return _get_settings_cached()

