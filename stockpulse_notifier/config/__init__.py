"""Configuration management for the wishlist notifier."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, validate_config_file
from .models import (
    AdvancedConfig,
    AppConfig,
    DeadLetterConfig,
    EmailConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    PipelineConfig,
    QueueConfig,
    QueueSourceType,
    TransportType,
)

__all__ = [
    # Loader functions
    "load_config",
    "validate_config_file",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "QueueConfig",
    "EmailConfig",
    "PipelineConfig",
    "DeadLetterConfig",
    "LoggingConfig",
    "AdvancedConfig",
    "EnvironmentConfig",
    # Enums
    "QueueSourceType",
    "TransportType",
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
