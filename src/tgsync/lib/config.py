"""
Configuration management and validation for tgsync.

Loads YAML configuration, applies environment overrides and validates the
result with pydantic models.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError


class TransportConfig(BaseModel):
    """Configuration for the daemon transport binding."""
    request_timeout: Optional[float] = Field(default=None, gt=0)


class RefreshConfig(BaseModel):
    """Configuration for session refreshes."""
    chat_info_failure_policy: str = Field(default="omit", pattern="^(omit|fail)$")


class LoggingConfig(BaseModel):
    """Configuration for logging settings."""
    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="structured", pattern="^(structured|simple)$")
    directory: Optional[str] = None
    max_file_size: int = Field(default=10 * 1024 * 1024, gt=0)  # 10MB
    backup_count: int = Field(default=5, ge=1)
    include_trace: bool = True
    environment: str = "development"


class ObservabilityConfig(BaseModel):
    """Configuration for OpenTelemetry export."""
    enabled: bool = False
    service_name: str = "tgsync"
    service_version: str = "0.1.0"
    environment: str = "development"
    otlp_endpoint: str = "http://localhost:4317"
    trace_sampling_ratio: float = Field(default=1.0, ge=0.0, le=1.0)
    export_timeout: int = Field(default=30, gt=0)
    resource_attributes: Dict[str, str] = Field(default_factory=dict)


class TGSyncConfig(BaseModel):
    """Main tgsync configuration."""
    transport: TransportConfig = Field(default_factory=TransportConfig)
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    debug: bool = False
    config_file_path: Optional[str] = None


class ConfigurationManager:
    """Manages tgsync configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._get_default_config_path()
        self.config: Optional[TGSyncConfig] = None

    def _get_default_config_path(self) -> str:
        """Get the default configuration file path."""
        if "TGSYNC_CONFIG_PATH" in os.environ:
            return os.environ["TGSYNC_CONFIG_PATH"]

        candidates = [
            "~/.tgsync/config.yaml",
            "./config/tgsync.yaml",
            "./tgsync.yaml"
        ]

        for candidate in candidates:
            path = Path(candidate).expanduser()
            if path.exists():
                return str(path)

        return "~/.tgsync/config.yaml"

    def load_config(self, config_path: Optional[str] = None) -> TGSyncConfig:
        """Load and validate configuration; a missing file yields defaults."""
        if config_path:
            self.config_path = config_path

        config_file = Path(self.config_path).expanduser()

        try:
            config_data: Dict[str, Any] = {}
            if config_file.exists():
                with open(config_file, 'r') as f:
                    config_data = yaml.safe_load(f) or {}

            if not isinstance(config_data, dict):
                raise ConfigurationError(f"Config file {config_file} must contain a mapping")

            config_data = self._merge_environment_config(config_data)

            self.config = TGSyncConfig(**config_data)
            if config_file.exists():
                self.config.config_file_path = str(config_file)

            return self.config

        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file {config_file}: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}")
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Error loading configuration: {e}")

    def _merge_environment_config(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Merge configuration with environment variables."""
        env_mappings = {
            "TGSYNC_LOG_LEVEL": ["logging", "level"],
            "TGSYNC_REQUEST_TIMEOUT": ["transport", "request_timeout"],
            "TGSYNC_CHAT_INFO_FAILURE_POLICY": ["refresh", "chat_info_failure_policy"],
            "TGSYNC_DEBUG": ["debug"],
            "OTEL_EXPORTER_OTLP_ENDPOINT": ["observability", "otlp_endpoint"]
        }

        for env_var, config_path in env_mappings.items():
            if env_var in os.environ:
                value: Any = os.environ[env_var]

                if env_var == "TGSYNC_REQUEST_TIMEOUT":
                    value = float(value)
                elif env_var == "TGSYNC_DEBUG":
                    value = value.lower() in ("true", "1", "yes")
                elif env_var == "TGSYNC_LOG_LEVEL":
                    value = value.upper()

                current = config_data
                for key in config_path[:-1]:
                    current = current.setdefault(key, {})
                current[config_path[-1]] = value

        return config_data

    def get_config(self) -> TGSyncConfig:
        """Get the loaded configuration."""
        if self.config is None:
            raise ConfigurationError("Configuration not loaded. Call load_config() first.")
        return self.config

    def validate_config(self) -> List[str]:
        """Validate the current configuration and return any warnings."""
        warnings = []
        config = self.get_config()

        if config.debug and config.observability.environment == "production":
            warnings.append("Debug mode enabled in production environment")

        if config.transport.request_timeout is None:
            warnings.append("No request timeout configured; a lost reply stalls the refresh forever")

        if config.refresh.chat_info_failure_policy == "omit":
            warnings.append("Group chats whose chat_info request fails are omitted from the chat list")

        if config.observability.enabled and config.observability.trace_sampling_ratio == 0.0:
            warnings.append("Observability enabled with a trace sampling ratio of 0")

        return warnings


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""
    pass


_config_manager: Optional[ConfigurationManager] = None


def initialize_config(config_path: Optional[str] = None) -> ConfigurationManager:
    """Initialize global configuration manager."""
    global _config_manager
    _config_manager = ConfigurationManager(config_path)
    _config_manager.load_config()
    return _config_manager


def get_config_manager() -> ConfigurationManager:
    """Get the global configuration manager instance."""
    if _config_manager is None:
        raise ConfigurationError("Configuration not initialized. Call initialize_config() first.")
    return _config_manager


def get_config() -> TGSyncConfig:
    """Get the global configuration."""
    return get_config_manager().get_config()
