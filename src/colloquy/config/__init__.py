"""Configuration management for colloquy.

This module provides configuration loading, validation and the factories that
build a router and orchestrator from a configuration.
"""

from .config import (
    Config,
    ConfigError,
    LoggingConfig,
    MetricsConfig,
    RouterConfig,
    TracingConfig,
    build_orchestrator,
    build_router,
    load_config,
    load_config_from_env,
    load_config_from_file,
    validate_config,
)
from .environment import Environment, get_config_file_path, get_environment

__all__ = [
    "Config",
    "ConfigError",
    "Environment",
    "LoggingConfig",
    "MetricsConfig",
    "RouterConfig",
    "TracingConfig",
    "build_orchestrator",
    "build_router",
    "get_config_file_path",
    "get_environment",
    "load_config",
    "load_config_from_env",
    "load_config_from_file",
    "validate_config",
]
