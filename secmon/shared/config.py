"""
secmon - Configuration Loader

Pydantic-based configuration management with:
- Environment-based configuration (dev/prod)
- YAML file loading with inheritance
- Environment variable overrides for secrets
- Type validation via Pydantic

Usage:
    from secmon.shared.config import get_config

    config = get_config()  # Uses SECMON_ENVIRONMENT env var
    config = get_config("prod")  # Explicit environment

    # Access config values
    log_file = config.alerting.log_file
    jobs = config.scheduling.jobs
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from secmon.scheduling.cadence import Cadence

# =============================================================================
# Configuration Models
# =============================================================================


class ProjectConfig(BaseModel):
    """Project metadata configuration."""

    name: str = "secmon"
    version: str = "0.1.0"
    description: str = "Continuous security monitor for a DEX API"


class AlertChannelsConfig(BaseModel):
    """Delivery channel switches and endpoints. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    console_enabled: bool = True
    log_enabled: bool = True
    slack_enabled: bool = False
    webhook_enabled: bool = False
    email_enabled: bool = False

    slack_webhook_url: str | None = None
    webhook_url: str | None = None

    slack_footer: str = "Security Monitor"
    slack_footer_icon: str = "\U0001f512"
    request_timeout_seconds: float = 5.0


class ThrottleWindowsConfig(BaseModel):
    """Suppression window per severity, in seconds."""

    critical: int = 5 * 60
    high: int = 30 * 60
    medium: int = 60 * 60
    low: int = 24 * 60 * 60


class ThresholdsConfig(BaseModel):
    """Occurrences required before a finding is eligible for alerting."""

    enabled: bool = False
    critical: int = 0
    high: int = 3
    medium: int = 10
    low: int = 10


class AlertingConfig(BaseModel):
    """Alerting configuration."""

    log_file: str = "security-alerts.log"
    recent_limit: int = 10
    channels: AlertChannelsConfig = Field(default_factory=AlertChannelsConfig)
    throttle_windows: ThrottleWindowsConfig = Field(default_factory=ThrottleWindowsConfig)
    thresholds: ThresholdsConfig = Field(default_factory=ThresholdsConfig)


class JobConfig(BaseModel):
    """A single entry of the job cadence table."""

    cadence: Cadence
    check: str | None = None
    description: str = ""

    @field_validator("cadence", mode="before")
    @classmethod
    def parse_cadence(cls, v: Any) -> Any:
        """Accept shorthand strings such as "30s" or "2h"."""
        if isinstance(v, str):
            return Cadence.parse(v)
        return v


class SchedulingConfig(BaseModel):
    """Scheduler configuration."""

    timezone: str = "UTC"
    stats_interval_minutes: int = 10
    critical_job: str = "Critical"
    jobs: dict[str, JobConfig] = Field(default_factory=dict)


class StorageConfig(BaseModel):
    """Raw result storage configuration."""

    results_dir: str = "security-results"
    enabled: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# =============================================================================
# Main Settings Class
# =============================================================================


class Settings(BaseSettings):
    """
    Main configuration class for secmon.

    Loads configuration from:
    1. YAML files in configs/environments/
    2. Environment variables (for secrets)

    Environment variables take precedence over YAML values.
    """

    model_config = SettingsConfigDict(
        env_prefix="SECMON_",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: Literal["dev", "prod"] = "dev"

    # Configuration sections
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    alerting: AlertingConfig = Field(default_factory=AlertingConfig)
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Secrets (from environment variables only)
    slack_webhook_url: str | None = Field(default=None, alias="SLACK_WEBHOOK_URL")
    alert_webhook_url: str | None = Field(default=None, alias="ALERT_WEBHOOK_URL")

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"dev", "prod"}
        if v not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _get_config_dir() -> Path:
    """Get the configuration directory path."""
    override = os.getenv("SECMON_CONFIG_DIR")
    if override:
        return Path(override)

    # Try relative path from the repository root
    config_dir = Path(__file__).parent.parent.parent / "configs"
    if config_dir.exists():
        return config_dir

    # Try from current working directory
    config_dir = Path.cwd() / "configs"
    if config_dir.exists():
        return config_dir

    raise FileNotFoundError(
        "Could not find configs directory. "
        "Ensure you're running from the project root or set SECMON_CONFIG_DIR."
    )


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_config_for_environment(environment: str) -> dict[str, Any]:
    """Load and merge configuration for a specific environment."""
    env_dir = _get_config_dir() / "environments"

    base_config = _load_yaml_file(env_dir / "base.yaml")
    env_config = _load_yaml_file(env_dir / f"{environment}.yaml")

    # Remove inheritance marker if present
    env_config.pop("_inherit", None)

    merged = _deep_merge(base_config, env_config)
    merged["environment"] = environment

    return merged


@lru_cache(maxsize=4)
def get_config(environment: str | None = None) -> Settings:
    """
    Get configuration for the specified environment.

    Args:
        environment: Environment name (dev, prod).
                    If None, uses SECMON_ENVIRONMENT env var, defaulting to "dev".

    Returns:
        Settings: Validated configuration object.
    """
    if environment is None:
        environment = os.getenv("SECMON_ENVIRONMENT", "dev")

    yaml_config = _load_config_for_environment(environment)

    # Create Settings object (also loads env vars)
    return Settings(**yaml_config)


def reload_config(environment: str | None = None) -> Settings:
    """
    Reload configuration, clearing the cache.

    Useful for testing or when config files have changed.
    """
    get_config.cache_clear()
    return get_config(environment)


# =============================================================================
# Convenience Functions
# =============================================================================


def resolve_slack_url(config: Settings) -> str | None:
    """Slack webhook endpoint, preferring the channel config over the env secret."""
    return config.alerting.channels.slack_webhook_url or config.slack_webhook_url


def resolve_webhook_url(config: Settings) -> str | None:
    """Generic webhook endpoint, preferring the channel config over the env secret."""
    return config.alerting.channels.webhook_url or config.alert_webhook_url
