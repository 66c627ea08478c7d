"""Configuration manager for persistent settings stored as JSON."""

import json
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError, InvalidConfigError, MailCacheError
from .logging import get_logger
from .paths import CONFIG_PATH, DATABASE_PATH

logger = get_logger(__name__)


class DatabaseSettings(BaseModel):
    """Pydantic model for database settings."""

    database_path: str = str(DATABASE_PATH)


class LoggingSettings(BaseModel):
    """Pydantic model for logging settings."""

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {value}")
        return level


class SyncSettings(BaseModel):
    """Pydantic model for sync behaviour."""

    # Only used when the local database has never recorded an offline flag
    start_offline: bool = False


class AppConfig(BaseModel):
    """Pydantic model for overall application configuration."""

    version: str = "0.1.0"
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)


class ConfigManager:
    """Loads and persists the application configuration file."""

    def __init__(self, config_path: Optional[Path] = None):
        self.path = Path(config_path) if config_path else CONFIG_PATH
        self.config = self._load_or_create_config()
        logger.info(f"Configuration loaded from {self.path}")

    def _load_or_create_config(self) -> AppConfig:
        """Load configuration from file or create default if not present."""

        if not self.path.exists():
            logger.info("No config file found, creating default configuration.")
            config = AppConfig()
            self._save_config(config)
            return config

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            config = AppConfig(**data)
            logger.debug("Configuration successfully loaded and validated.")
            return config

        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse config file: {e}")
            raise InvalidConfigError(f"Configuration file is not valid JSON: {str(e)}") from e
        except PydanticValidationError as e:
            logger.error(f"Failed to validate config file: {e}")
            raise InvalidConfigError(f"Configuration data does not match expected schema: {str(e)}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {str(e)}") from e

    def _save_config(self, config: Optional[AppConfig] = None) -> None:
        """Save the current configuration to file."""

        config = config or self.config

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(config.model_dump(), f, indent=2, ensure_ascii=False)
            logger.debug("Configuration successfully saved.")
        except OSError as e:
            raise ConfigurationError(f"Failed to write configuration file: {str(e)}") from e

    @property
    def database_path(self) -> Path:
        """Resolved database file path."""
        return Path(self.config.database.database_path).expanduser()

    def set_config(self, key_path: str, value: Any, persist: bool = True) -> None:
        """Set a configuration value using dot-separated key path."""

        keys = key_path.split(".")
        data = self.config.model_dump()
        node = data

        for key in keys[:-1]:
            if not isinstance(node.get(key), dict):
                raise InvalidConfigError(f"Configuration path '{key_path}' is invalid: '{key}' not found")
            node = node[key]

        if keys[-1] not in node:
            raise InvalidConfigError(f"Configuration key '{keys[-1]}' does not exist in path '{key_path}'")

        node[keys[-1]] = value

        try:
            # Validate a copy so a bad value never replaces the live config
            self.config = AppConfig(**data)
        except PydanticValidationError as e:
            raise InvalidConfigError(f"Invalid value for '{key_path}': {str(e)}") from e

        if persist:
            self._save_config()

        logger.info(f"Config key '{key_path}' updated.")

    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""

        try:
            logger.warning("Resetting configuration to default values.")
            self.config = AppConfig()
            self._save_config()
        except MailCacheError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to reset configuration to defaults: {str(e)}") from e
