"""Configuration management for the signal intake pipeline."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_app_config
from .models import (
    DEFAULT_EXCLUSION_KEYWORDS,
    AdvancedConfig,
    AppConfig,
    EvaluationConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    PipelineConfig,
    SourceConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "parse_app_config",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "SourceConfig",
    "EvaluationConfig",
    "PipelineConfig",
    "LoggingConfig",
    "AdvancedConfig",
    "EnvironmentConfig",
    "DEFAULT_EXCLUSION_KEYWORDS",
    # Enums
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
