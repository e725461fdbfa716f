"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``PAYNYM_``, nested via ``__``)
2. YAML config file (``PAYNYM_CONFIG_PATH`` env var or ``from_yaml``)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class CacheEngine(enum.StrEnum):
    """Supported key-value store backends."""

    MEMORY = "memory"
    REDIS = "redis"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class DirectoryConfig(BaseSettings):
    """Paynym directory client settings."""

    model_config = SettingsConfigDict(
        env_prefix="PAYNYM_DIRECTORY__",
        case_sensitive=False,
    )

    base_url: str = "https://paynym.rs/api/v1"
    timeout: float = 30.0
    user_agent: str = "paynym-wallet/0.1"
    cache_ttl_seconds: int = Field(default=24 * 60 * 60, ge=0)
    cache_prefix: str = "paynym_dir_"
    retry_max_attempts: int = Field(default=2, ge=1)
    retry_default_wait: float = Field(default=5.0, ge=0)
    retry_max_wait: float = Field(default=60.0, ge=0)


class CacheConfig(BaseSettings):
    """Key-value store settings."""

    model_config = SettingsConfigDict(
        env_prefix="PAYNYM_CACHE__",
        case_sensitive=False,
    )

    engine: CacheEngine = Field(
        default=CacheEngine.MEMORY,
        description="Store backend: memory or redis",
    )
    url: str = "redis://localhost:6379/0"
    max_connections: int = 10


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = SettingsConfigDict(
        env_prefix="PAYNYM_METRICS__",
        case_sensitive=False,
    )

    enabled: bool = True


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level configuration.

    Loads settings from environment variables (``PAYNYM_`` prefix), an
    optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="PAYNYM_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    testnet: bool = False
    config_path: str = ""

    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        for key, val in _load_yaml(config_path).items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                # YAML fills in nested keys the environment left unset
                values[key] = {**val, **values[key]}
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
