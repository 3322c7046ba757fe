# src/eventsocket/utils/config.py
"""
Configuration management for the Event Socket library.
Handles loading and validating configuration from YAML files and environment variables.
Provides type-safe access to configuration values with comprehensive error checking.
"""

import os
import yaml
import logging
from typing import Any, Dict, Optional, Union
from dataclasses import dataclass
from pathlib import Path

from .logger import LoggerConfig

# Configure module logger
logger = logging.getLogger(__name__)

# Packaged defaults, merged under any custom configuration file
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "default.yml"

@dataclass
class ClientConfig:
    """Inbound (client) connection parameters"""
    host: str = "127.0.0.1"
    port: int = 8021
    password: str = "ClueCon"

    def __repr__(self) -> str:
        return f"ClientConfig(host={self.host!r}, port={self.port!r}, password='***')"

@dataclass
class ServerConfig:
    """Outbound (server) listener parameters"""
    host: str = "0.0.0.0"
    port: int = 9090

@dataclass
class ConnectionConfig:
    """Per-connection buffer sizes and channel capacities"""
    read_buffer_size: int = 65536
    events_buffer: int = 16
    replies_buffer: int = 1

    def __post_init__(self) -> None:
        for name in ("read_buffer_size", "events_buffer", "replies_buffer"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"connection.{name} must be positive")

@dataclass
class LogConfig:
    """Logging configuration parameters"""
    level: str = "INFO"
    format: str = "json"
    output: Optional[str] = None
    max_bytes: int = 10_485_760
    backup_count: int = 5

class ConfigurationError(Exception):
    """Custom exception for configuration errors"""
    pass

class Config:
    """
    Central configuration management for the Event Socket library.
    Handles loading, validation, and access to configuration values.
    """
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self.client = ClientConfig()
            self.server = ServerConfig()
            self.connection = ConnectionConfig()
            self.logging = LogConfig()
            self._config_path = None
            self._raw_config = {}
            self._initialized = True
            logger.debug("Configuration manager initialized")

    def load(self, config_path: Optional[Union[str, Path]] = None) -> None:
        """
        Load configuration from YAML file with environment variable overrides.

        The packaged default.yml is always loaded first; a custom file is
        merged over it when given.

        Args:
            config_path: Optional path to YAML configuration file

        Raises:
            ConfigurationError: If configuration loading or validation fails
        """
        try:
            self._config_path = Path(config_path) if config_path is not None else None
            self._raw_config = self._read_yaml(DEFAULT_CONFIG_PATH)
            logger.debug("Loaded default configuration from default.yml")

            if self._config_path is not None:
                logger.info(f"Loading configuration from {config_path}")
                if not self._config_path.exists():
                    raise ConfigurationError(f"Configuration file not found: {config_path}")
                custom_config = self._read_yaml(self._config_path)
                if custom_config:
                    self._merge_configs(custom_config)
                    logger.debug(f"Merged configuration from {self._config_path}")

            # Apply environment variable overrides
            self._apply_env_overrides()

            # Validate and create configuration objects
            self._validate_and_create_configs()

            logger.info("Configuration loaded successfully")

        except ConfigurationError:
            logger.error("Failed to load configuration", exc_info=True)
            raise
        except Exception as e:
            logger.error(f"Failed to load configuration: {str(e)}", exc_info=True)
            raise ConfigurationError(f"Configuration loading failed: {str(e)}") from e

    @staticmethod
    def _read_yaml(path: Path) -> Dict[str, Any]:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {path}")
        return data

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to configuration"""
        env_mapping = {
            "ESL_HOST": ("client", "host"),
            "ESL_PORT": ("client", "port", int),
            "ESL_PASSWORD": ("client", "password"),
            "ESL_LISTEN_HOST": ("server", "host"),
            "ESL_LISTEN_PORT": ("server", "port", int),
            "ESL_READ_BUFFER_SIZE": ("connection", "read_buffer_size", int),
            "ESL_EVENTS_BUFFER": ("connection", "events_buffer", int),
            "LOG_LEVEL": ("logging", "level"),
            "LOG_FORMAT": ("logging", "format"),
            "LOG_OUTPUT": ("logging", "output"),
        }

        for env_var, config_path in env_mapping.items():
            if env_var in os.environ:
                section, key = config_path[0], config_path[1]
                value = os.environ[env_var]

                # Apply type conversion if specified
                if len(config_path) > 2:
                    try:
                        value = config_path[2](value)
                    except ValueError as e:
                        raise ConfigurationError(
                            f"Invalid environment variable {env_var}: {str(e)}"
                        )

                # Ensure section exists
                if not isinstance(self._raw_config.get(section), dict):
                    self._raw_config[section] = {}

                self._raw_config[section][key] = value
                if env_var == "ESL_PASSWORD":
                    logger.debug("Applied environment override: ESL_PASSWORD=***")
                else:
                    logger.debug(f"Applied environment override: {env_var}={value}")

    def _validate_and_create_configs(self) -> None:
        """Validate configuration and create typed configuration objects"""
        self.client = ClientConfig(
            host=self._get_config_value("client", "host", str, "127.0.0.1"),
            port=self._get_config_value("client", "port", int, 8021),
            password=self._get_config_value("client", "password", str, "ClueCon")
        )

        self.server = ServerConfig(
            host=self._get_config_value("server", "host", str, "0.0.0.0"),
            port=self._get_config_value("server", "port", int, 9090)
        )

        self.connection = ConnectionConfig(
            read_buffer_size=self._get_config_value("connection", "read_buffer_size", int, 65536),
            events_buffer=self._get_config_value("connection", "events_buffer", int, 16),
            replies_buffer=self._get_config_value("connection", "replies_buffer", int, 1)
        )

        output = self._raw_config.get("logging", {}).get("output")
        self.logging = LogConfig(
            level=self._get_config_value("logging", "level", str, "INFO"),
            format=self._get_config_value("logging", "format", str, "json"),
            output=str(output) if output else None,
            max_bytes=self._get_config_value("logging", "max_bytes", int, 10_485_760),
            backup_count=self._get_config_value("logging", "backup_count", int, 5)
        )
        if self.logging.format not in ("json", "console"):
            raise ConfigurationError(f"Invalid logging.format: {self.logging.format}")

        logger.debug("Configuration validation completed successfully")

    def _get_config_value(
        self,
        section: str,
        key: str,
        value_type: type,
        default: Any = None
    ) -> Any:
        """
        Get typed configuration value with validation.

        Args:
            section: Configuration section name
            key: Configuration key
            value_type: Expected value type
            default: Optional default value

        Returns:
            Typed configuration value

        Raises:
            ConfigurationError: If value is missing or invalid type
        """
        config = self._raw_config.get(section) or {}
        value = config.get(key)

        if value is None:
            if default is None:
                raise ConfigurationError(f"Required configuration missing: {section}.{key}")
            value = default
            logger.debug(f"Using default value for {section}.{key}")

        try:
            if value_type is int and isinstance(value, bool):
                raise TypeError("boolean is not an integer")
            if not isinstance(value, value_type):
                value = value_type(value)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(
                f"Invalid type for {section}.{key}: expected {value_type.__name__}, got {type(value).__name__}"
            ) from e

        return value

    def _merge_configs(self, custom_config: Dict[str, Any]) -> None:
        """Deep merge custom configuration with existing config"""
        def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
            for key, value in override.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    deep_merge(base[key], value)
                else:
                    base[key] = value

        deep_merge(self._raw_config, custom_config)

    def logger_config(self) -> LoggerConfig:
        """Logging section as a LoggerConfig for ESLLogger.configure()"""
        return LoggerConfig(
            level=self.logging.level,
            format=self.logging.format,
            output_file=self.logging.output,
            max_bytes=self.logging.max_bytes,
            backup_count=self.logging.backup_count,
        )

    def reload(self) -> None:
        """Reload configuration from file"""
        logger.info("Reloading configuration")
        self.load(self._config_path)
