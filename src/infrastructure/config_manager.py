"""Configuration Manager.

This module loads storage configuration for the comment service from the
environment (optionally via a ``.env`` file) or from a JSON file, and
validates it before any adapter is built.

Security Impact:
    - Configuration is validated before use (fail-fast)
    - Database paths are checked so a typo cannot silently create a database
      in an unexpected directory
    - Overly permissive configuration files are reported

Architecture:
    - Follows Hexagonal Architecture: Infrastructure layer isolated from domain
    - Type-safe configuration using Pydantic models
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

SUPPORTED_DB_TYPES = ("duckdb", "memory")

ENV_PREFIX = "CS_"


class DatabaseConfig(BaseModel):
    """Comment storage configuration.

    Parameters:
        db_type: ``duckdb`` for a DuckDB database, ``memory`` for the
                 dictionary-backed adapter
        db_path: Path to the DuckDB file, or ':memory:' (DuckDB only)
    """

    db_type: str = Field(..., description="Storage type (duckdb, memory)")
    db_path: Optional[str] = Field(None, description="Path to database file (for DuckDB)")

    @field_validator("db_type")
    @classmethod
    def validate_db_type(cls, v: str) -> str:
        """Validate storage type."""
        if v.lower() not in SUPPORTED_DB_TYPES:
            raise ValueError(f"Unsupported database type: {v}. Supported: {list(SUPPORTED_DB_TYPES)}")
        return v.lower()

    @field_validator("db_path")
    @classmethod
    def validate_db_path(cls, v: Optional[str]) -> Optional[str]:
        """Validate that the database directory exists (the file may not yet)."""
        if v is None or v == ":memory:":
            return v

        db_path_obj = Path(v)
        if not db_path_obj.parent.exists():
            raise ValueError(f"Database directory does not exist: {db_path_obj.parent}")

        return str(db_path_obj)


class ConfigManager:
    """Loads and validates configuration from the environment or a file.

    Example Usage:
        ```python
        config = ConfigManager.from_environment()
        db_config = config.get_database_config()

        config = ConfigManager.from_file("config.json")
        config.get("database.db_type")
        ```
    """

    def __init__(self, config_data: Dict[str, Any]):
        self._config_data = config_data
        self._database_config: Optional[DatabaseConfig] = None

    @classmethod
    def from_environment(cls, env_file: Optional[Path] = None) -> 'ConfigManager':
        """Load configuration from environment variables.

        Environment Variables:
            - CS_DB_TYPE: Storage type (duckdb, memory); defaults to memory
            - CS_DB_PATH: Path to database file (for DuckDB)

        Parameters:
            env_file: ``.env`` file to load first; defaults to the one at the
                      project root, if present. Existing variables win.

        Returns:
            ConfigManager instance
        """
        env_path = env_file or Path(__file__).parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded environment variables from {env_path}")

        config_data = {
            "database": {
                "db_type": os.getenv(f"{ENV_PREFIX}DB_TYPE", "memory"),
                "db_path": os.getenv(f"{ENV_PREFIX}DB_PATH"),
            }
        }

        return cls(config_data)

    @classmethod
    def from_file(cls, config_path: str) -> 'ConfigManager':
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is not valid JSON
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_file.stat().st_mode & 0o077 != 0:
            logger.warning(
                f"Configuration file has overly permissive permissions: {config_path}. "
                "Consider setting to 600."
            )

        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {str(e)}") from e

        return cls(config_data)

    def get_database_config(self) -> DatabaseConfig:
        """Get the validated storage configuration (cached after first call)."""
        if self._database_config is None:
            db_config_data = dict(self._config_data.get("database", {}))
            db_config_data.setdefault("db_type", "memory")
            self._database_config = DatabaseConfig(**db_config_data)

        return self._database_config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Parameters:
            key: Configuration key (supports dot notation, e.g., "database.db_path")
            default: Default value if key not found
        """
        value = self._config_data

        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default


def get_database_config() -> DatabaseConfig:
    """Load storage configuration from the environment.

    Defaults to the in-memory adapter when nothing is configured.
    """
    return ConfigManager.from_environment().get_database_config()
