"""Application Settings.

This module provides application-wide settings that combine storage
configuration from the configuration manager with environment overrides and
defaults for the identifier time window, logging and redaction auditing.

Security Impact:
    - The identifier time window is configured in one place, so the field
      validator and the row converter cannot disagree about it
    - Defaults are safe for development
"""

import os
from datetime import timedelta
from typing import Optional

from src.domain.identifiers import DEFAULT_SKEW_ALLOWANCE, REFERENCE_INSTANT
from src.infrastructure.config_manager import ENV_PREFIX, ConfigManager, DatabaseConfig, get_database_config

# Application metadata
APP_NAME = "Comment-Sieve"
APP_VERSION = "1.0.0"

DEFAULT_CLOCK_SKEW_SECONDS = int(DEFAULT_SKEW_ALLOWANCE.total_seconds())


def _env(name: str, default: str) -> str:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def _env_flag(name: str, default: str) -> bool:
    return _env(name, default).lower() == "true"


class Settings:
    """Application settings loaded from configuration manager and environment.

    Environment Variables:
        - CS_APP_NAME
        - CS_LOG_LEVEL (default INFO), CS_LOG_JSON (default false)
        - CS_UUID_REFERENCE_INSTANT: earliest acceptable identifier time,
          seconds since the Unix epoch
        - CS_UUID_CLOCK_SKEW_SECONDS: how far ahead of now an identifier may be
        - CS_REDACTION_LOGGING_ENABLED (default true)
    """

    def __init__(self):
        self._db_config: Optional[DatabaseConfig] = None
        self._config_manager: Optional[ConfigManager] = None

        self.app_name = _env("APP_NAME", APP_NAME)

        self.log_level = _env("LOG_LEVEL", "INFO")
        self.log_json = _env_flag("LOG_JSON", "false")

        self.uuid_reference_instant = int(_env("UUID_REFERENCE_INSTANT", str(REFERENCE_INSTANT)))
        self.uuid_clock_skew_seconds = int(_env("UUID_CLOCK_SKEW_SECONDS", str(DEFAULT_CLOCK_SKEW_SECONDS)))
        if self.uuid_clock_skew_seconds < 0:
            raise ValueError(f"{ENV_PREFIX}UUID_CLOCK_SKEW_SECONDS must not be negative")

        self.redaction_logging_enabled = _env_flag("REDACTION_LOGGING_ENABLED", "true")

    @property
    def clock_skew_allowance(self) -> timedelta:
        return timedelta(seconds=self.uuid_clock_skew_seconds)

    @property
    def db_config(self) -> DatabaseConfig:
        """Storage configuration, loaded lazily on first access."""
        if self._db_config is None:
            self._db_config = get_database_config()
        return self._db_config

    @property
    def config_manager(self) -> ConfigManager:
        if self._config_manager is None:
            self._config_manager = ConfigManager.from_environment()
        return self._config_manager


# Global settings instance
settings = Settings()
