"""Core configuration management for colloquy.

This module provides the configuration model, YAML and environment variable
loading, validation, and factories that turn a configuration into a wired
router and orchestrator.
"""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
)

from colloquy.adapters.router import BaseRouter, NetworkedRouter, SimulatedRouter
from colloquy.core.orchestrator import Orchestrator, OrchestratorConfig
from colloquy.utils.timing import Clock


class ConfigError(Exception):
    """Configuration-related errors."""

    pass


class RouterConfig(BaseModel):
    """Transport configuration."""

    mode: Literal["simulated", "networked"] = "simulated"
    url: str | None = None
    max_turns: int = 4
    open_timeout_s: float = 10.0
    typing_interval_ms: float = 40.0
    message_pause_ms: float = 1200.0
    start_delay_ms: float = 500.0


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "json"
    enable_pii_redaction: bool = True


class MetricsConfig(BaseModel):
    """Metrics configuration."""

    enabled: bool = False
    port: int = 8000


class TracingConfig(BaseModel):
    """Tracing configuration."""

    enabled: bool = False
    service_name: str = "colloquy"
    otlp_endpoint: str | None = None


class Config(BaseModel):
    """Main configuration class for colloquy.

    This class combines all configuration sections and provides
    validation and environment variable loading.
    """

    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)

    router: RouterConfig = Field(default_factory=RouterConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    tracing: TracingConfig = Field(default_factory=TracingConfig)

    environment: Literal["development", "staging", "production", "testing"] = (
        "development"
    )
    debug: bool = False

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator("orchestrator", mode="before")
    @classmethod
    def validate_orchestrator_config(cls, v):
        """Build the orchestrator section from a mapping."""
        if isinstance(v, dict):
            try:
                return OrchestratorConfig(**v)
            except TypeError as e:
                raise ValueError(f"Unknown orchestrator setting: {e}") from e
        return v

    @field_serializer("orchestrator")
    def serialize_orchestrator(self, v: OrchestratorConfig) -> dict[str, Any]:
        return v.to_dict()


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_file_data(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path) as f:
            config_data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e

    if config_data is None:
        return {}
    if not isinstance(config_data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {config_path}")
    return config_data


def _build(config_data: dict[str, Any], source: str) -> Config:
    try:
        return Config(**config_data)
    except ValidationError as e:
        raise ConfigError(f"{source} validation failed: {e}") from e


def load_config_from_file(config_path: Path) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Loaded configuration

    Raises:
        ConfigError: If configuration is invalid or file cannot be read
    """
    return _build(_read_file_data(config_path), "Configuration")


# (environment variable, section, key, parser)
ENV_SETTINGS: list[tuple[str, str | None, str, type]] = [
    ("COLLOQUY_ENVIRONMENT", None, "environment", str),
    ("COLLOQUY_DEBUG", None, "debug", bool),
    ("COLLOQUY_LOG_LEVEL", "logging", "level", str),
    ("COLLOQUY_LOG_FORMAT", "logging", "format", str),
    ("COLLOQUY_METRICS_ENABLED", "metrics", "enabled", bool),
    ("COLLOQUY_METRICS_PORT", "metrics", "port", int),
    ("COLLOQUY_TRACING_ENABLED", "tracing", "enabled", bool),
    ("COLLOQUY_OTLP_ENDPOINT", "tracing", "otlp_endpoint", str),
    ("COLLOQUY_ROUTER_MODE", "router", "mode", str),
    ("COLLOQUY_ROUTER_URL", "router", "url", str),
    ("COLLOQUY_MAX_TURNS", "router", "max_turns", int),
    ("COLLOQUY_MAX_CONCURRENT_CONVERSATIONS", "orchestrator", "max_concurrent_conversations", int),
    ("COLLOQUY_MAX_CONVERSATIONS_PER_AGENT", "orchestrator", "max_conversations_per_agent", int),
    ("COLLOQUY_CONVERSATION_TIMEOUT_MS", "orchestrator", "conversation_timeout_ms", float),
    ("COLLOQUY_PROCESS_INTERVAL_MS", "orchestrator", "process_interval_ms", float),
    ("COLLOQUY_RETENTION_MS", "orchestrator", "retention_ms", float),
]


def _read_env_data() -> dict[str, Any]:
    config_data: dict[str, Any] = {}

    for env_var, section, key, parser in ENV_SETTINGS:
        env_val = os.getenv(env_var)
        if not env_val:
            continue

        if parser is bool:
            value: Any = env_val.lower() in ("true", "1", "yes", "on")
        elif parser is str:
            value = env_val.upper() if key == "level" else env_val
        else:
            try:
                value = parser(env_val)
            except ValueError as e:
                raise ConfigError(f"Invalid {env_var}: {env_val}") from e

        target = config_data if section is None else config_data.setdefault(section, {})
        target[key] = value

    return config_data


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Environment variables are mapped as follows:
    - COLLOQUY_ENVIRONMENT: Environment name
    - COLLOQUY_DEBUG: Enable debug mode (true/false)
    - COLLOQUY_LOG_LEVEL / COLLOQUY_LOG_FORMAT: Logging level and format
    - COLLOQUY_METRICS_ENABLED / COLLOQUY_METRICS_PORT: Prometheus exporter
    - COLLOQUY_TRACING_ENABLED / COLLOQUY_OTLP_ENDPOINT: Tracing exporter
    - COLLOQUY_ROUTER_MODE / COLLOQUY_ROUTER_URL: Transport selection
    - COLLOQUY_MAX_TURNS: Turns per networked conversation
    - COLLOQUY_MAX_CONCURRENT_CONVERSATIONS, COLLOQUY_MAX_CONVERSATIONS_PER_AGENT,
      COLLOQUY_CONVERSATION_TIMEOUT_MS, COLLOQUY_PROCESS_INTERVAL_MS,
      COLLOQUY_RETENTION_MS: Scheduler limits

    Returns:
        Configuration loaded from environment variables

    Raises:
        ConfigError: If a variable cannot be parsed or validated
    """
    return _build(_read_env_data(), "Environment configuration")


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded in the following order (later sources override earlier):
    1. Default values
    2. Configuration file (if provided)
    3. Environment variables

    Sections are merged key by key, so an environment variable only replaces
    the setting it names.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Merged configuration
    """
    config_data: dict[str, Any] = {}

    if config_path and config_path.exists():
        config_data = _read_file_data(config_path)

    config_data = _deep_merge(config_data, _read_env_data())
    return _build(config_data, "Configuration")


def validate_config(config: Config) -> None:
    """Validate configuration for consistency and correctness.

    Args:
        config: Configuration to validate

    Raises:
        ConfigError: If configuration is invalid
    """
    orchestrator = config.orchestrator

    if orchestrator.max_concurrent_conversations <= 0:
        raise ConfigError("max_concurrent_conversations must be positive")

    if orchestrator.max_conversations_per_agent <= 0:
        raise ConfigError("max_conversations_per_agent must be positive")

    if orchestrator.conversation_timeout_ms <= 0:
        raise ConfigError("conversation_timeout_ms must be positive")

    if orchestrator.process_interval_ms <= 0:
        raise ConfigError("process_interval_ms must be positive")

    if orchestrator.retention_ms < 0:
        raise ConfigError("retention_ms must be non-negative")

    if orchestrator.transcript_limit <= 0:
        raise ConfigError("transcript_limit must be positive")

    # Router configuration
    if config.router.mode == "networked" and not config.router.url:
        raise ConfigError("router.url is required in networked mode")

    if not 1 <= config.router.max_turns <= 100:
        raise ConfigError("router.max_turns must be between 1 and 100")

    if min(
        config.router.typing_interval_ms,
        config.router.message_pause_ms,
        config.router.start_delay_ms,
    ) < 0:
        raise ConfigError("router timings must be non-negative")

    if config.router.mode == "simulated" and not orchestrator.enable_simulated_mode:
        raise ConfigError("simulated router selected but simulated mode is disabled")

    # Metrics configuration
    if config.metrics.port <= 0 or config.metrics.port > 65535:
        raise ConfigError("metrics.port must be between 1 and 65535")

    # Environment-specific validations
    if config.environment == "production":
        if config.debug:
            raise ConfigError("Debug mode should not be enabled in production")

        if config.logging.level == "DEBUG":
            raise ConfigError("DEBUG logging should not be used in production")

        if not config.logging.enable_pii_redaction:
            raise ConfigError("PII redaction should be enabled in production")


def build_router(config: Config, clock: Clock | None = None) -> BaseRouter:
    """Create the transport described by the router section.

    A networked router is returned unconnected; call ``connect()`` on it from
    the event loop before starting conversations.
    """
    settings = config.router
    if settings.mode == "networked":
        return NetworkedRouter(
            url=settings.url,
            max_turns=settings.max_turns,
            open_timeout_s=settings.open_timeout_s,
            clock=clock,
        )
    return SimulatedRouter(
        typing_interval_ms=settings.typing_interval_ms,
        message_pause_ms=settings.message_pause_ms,
        start_delay_ms=settings.start_delay_ms,
        clock=clock,
    )


def build_orchestrator(config: Config, clock: Clock | None = None) -> Orchestrator:
    """Create an orchestrator wired to the configured transport."""
    return Orchestrator(
        config=config.orchestrator,
        router=build_router(config, clock),
        clock=clock,
    )
