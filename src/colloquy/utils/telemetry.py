"""Telemetry utilities for logging, metrics, and tracing.

This module provides centralized observability infrastructure including:
- Structured logging with PII redaction
- Prometheus metrics collection
- OpenTelemetry tracing setup
- Sanitization of transport error strings before they reach subscribers
"""

import logging
import re
from typing import Any

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from prometheus_client import Counter, Gauge, start_http_server
from structlog.processors import JSONRenderer

# Prometheus metrics
CONVERSATIONS_ADMITTED = Counter(
    "colloquy_conversations_admitted_total",
    "Total number of conversations accepted by admission control",
    ["priority"],
)

CONVERSATIONS_ENDED = Counter(
    "colloquy_conversations_ended_total",
    "Total number of conversations that reached a terminal status",
    ["status", "reason"],
)

ADMISSION_REJECTIONS = Counter(
    "colloquy_admission_rejections_total",
    "Conversation requests rejected by admission control",
    ["reason"],
)

ACTIVE_CONVERSATIONS = Gauge(
    "colloquy_active_conversations",
    "Number of conversations currently running",
)

QUEUE_DEPTH = Gauge(
    "colloquy_queue_depth",
    "Number of conversations waiting for a scheduling slot",
)

INVALID_FRAMES = Counter(
    "colloquy_invalid_frames_total",
    "Inbound transport frames discarded after failing validation",
    ["frame_type"],
)

SUBSCRIBER_ERRORS = Counter(
    "colloquy_subscriber_errors_total",
    "Exceptions raised by event subscribers",
    ["event"],
)

# PII patterns for redaction
PII_PATTERNS = {
    "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b"),
    "phone": re.compile(
        r"\b(?:\+?1[-.\s]?)?\(?[0-9]{3}\)?[-.\s]?[0-9]{3}[-.\s]?[0-9]{4}\b|\b[0-9]{3}-[0-9]{4}\b"
    ),
    "token": re.compile(r"\b[A-Za-z0-9]{20,}\b"),  # Generic token pattern
    "ssn": re.compile(r"\b\d{3}-?\d{2}-?\d{4}\b"),
    "credit_card": re.compile(r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b"),
}

# Patterns stripped from backend error strings, applied in order
ERROR_SANITIZE_PATTERNS = [
    (re.compile(r"AIza[0-9A-Za-z_-]{35}"), "[API_KEY_REDACTED]"),
    (re.compile(r"sk-[A-Za-z0-9_-]{20,}"), "[API_KEY_REDACTED]"),
    (
        re.compile(r"/[^\s]+\.(?:key|pem|env|config)", re.IGNORECASE),
        "[FILE_PATH_REDACTED]",
    ),
    (
        re.compile(r"(?:postgres|postgresql|mongodb|redis)://[^\s]+", re.IGNORECASE),
        "[DB_URL_REDACTED]",
    ),
    (re.compile(r"at\s+[^\s]+\s+\([^)]+\)"), "[STACK_TRACE_REDACTED]"),
    (re.compile(r"\b(?:[0-9]{1,3}\.){3}[0-9]{1,3}\b"), "[IP_REDACTED]"),
]

MAX_SANITIZED_ERROR_LENGTH = 200
DEFAULT_ERROR_TEXT = "An error occurred"

HTML_TAG_PATTERN = re.compile(r"<[^>]*>")


def redact_pii(text: Any) -> Any:
    """Redact personally identifiable information from text.

    Args:
        text: Input text that may contain PII

    Returns:
        Text with PII patterns replaced with [REDACTED_<type>], or original input if not a string

    Example:
        >>> redact_pii("Contact john@example.com or call 555-123-4567")
        'Contact [REDACTED_EMAIL] or call [REDACTED_PHONE]'
    """
    if not isinstance(text, str):
        return text

    result = text
    for pii_type, pattern in PII_PATTERNS.items():
        result = pattern.sub(f"[REDACTED_{pii_type.upper()}]", result)
    return result


def sanitize_error(error: str | None) -> str:
    """Strip secrets, paths and internals from a backend error string.

    Args:
        error: Raw error text reported by a transport backend

    Returns:
        Sanitized text, at most 200 characters, never empty

    Example:
        >>> sanitize_error("connect to 10.0.0.12 failed")
        'connect to [IP_REDACTED] failed'
    """
    if not error:
        return DEFAULT_ERROR_TEXT

    sanitized = error
    for pattern, replacement in ERROR_SANITIZE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    sanitized = sanitized[:MAX_SANITIZED_ERROR_LENGTH]
    return sanitized or DEFAULT_ERROR_TEXT


def sanitize_message(text: str) -> str:
    """Remove markup from message text, keeping the text content.

    Args:
        text: Message text from a transport backend

    Returns:
        Text with all HTML tags removed
    """
    return HTML_TAG_PATTERN.sub("", text)


def pii_redaction_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor to redact PII from log events.

    Args:
        logger: Logger instance (unused)
        method_name: Log method name (unused)
        event_dict: Event dictionary to process

    Returns:
        Event dictionary with PII redacted from string values
    """

    def redact_value(value: Any) -> Any:
        if isinstance(value, str):
            return redact_pii(value)
        elif isinstance(value, dict):
            return {k: redact_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [redact_value(item) for item in value]
        return value

    return {key: redact_value(value) for key, value in event_dict.items()}


def setup_logging(
    log_level: str = "INFO",
    enable_pii_redaction: bool = True,
    log_format: str = "json",
) -> None:
    """Initialize structured logging with PII redaction.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_pii_redaction: Whether to enable PII redaction processor
        log_format: "json" for machine output, "text" for console rendering
    """
    logging.basicConfig(format="%(message)s", level=log_level.upper())

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if enable_pii_redaction:
        processors.append(pii_redaction_processor)

    if log_format == "text":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_tracing(
    service_name: str = "colloquy",
    otlp_endpoint: str | None = None,
) -> None:
    """Initialize OpenTelemetry tracing.

    Args:
        service_name: Name of the service for tracing
        otlp_endpoint: OTLP endpoint URL (if None, uses console exporter)
    """
    from colloquy import __version__

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": __version__,
        }
    )

    tracer_provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(tracer_provider)

    exporter: OTLPSpanExporter | ConsoleSpanExporter
    if otlp_endpoint:
        exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
    else:
        exporter = ConsoleSpanExporter()

    tracer_provider.add_span_processor(BatchSpanProcessor(exporter))


def get_tracer(name: str) -> trace.Tracer:
    """Get OpenTelemetry tracer for a component.

    Args:
        name: Tracer name (typically module name)

    Returns:
        Tracer instance
    """
    return trace.get_tracer(name)


def get_logger(name: str, **context: Any) -> Any:
    """Get a structured logger with optional context.

    Args:
        name: Logger name
        **context: Additional context to bind to logger

    Returns:
        Bound logger with context
    """
    logger = structlog.get_logger(name)
    if context:
        logger = logger.bind(**context)
    return logger


def record_admission(priority: int) -> None:
    """Record a conversation accepted by admission control.

    Args:
        priority: Effective queue priority assigned to the conversation
    """
    CONVERSATIONS_ADMITTED.labels(priority=str(priority)).inc()


def record_admission_rejection(reason: str) -> None:
    """Record a rejected conversation request.

    Args:
        reason: Rejection reason (not_found, same_agent, already_chatting)
    """
    ADMISSION_REJECTIONS.labels(reason=reason).inc()


def record_conversation_ended(status: str, reason: str) -> None:
    """Record a conversation reaching a terminal status.

    Args:
        status: Terminal status (completed or error)
        reason: End reason reported to subscribers
    """
    CONVERSATIONS_ENDED.labels(status=status, reason=reason).inc()


def update_scheduler_gauges(active: int, queued: int) -> None:
    """Publish the current running count and queue depth.

    Args:
        active: Number of running conversations
        queued: Number of conversations waiting in the queue
    """
    ACTIVE_CONVERSATIONS.set(active)
    QUEUE_DEPTH.set(queued)


def record_invalid_frame(frame_type: str) -> None:
    """Record an inbound frame discarded by schema validation.

    Args:
        frame_type: Envelope type of the discarded frame
    """
    INVALID_FRAMES.labels(frame_type=frame_type).inc()


def record_subscriber_error(event: str) -> None:
    """Record an exception raised by an event subscriber.

    Args:
        event: Event kind being delivered when the subscriber failed
    """
    SUBSCRIBER_ERRORS.labels(event=event).inc()


def start_metrics_server(port: int = 8000) -> None:
    """Start Prometheus metrics HTTP server.

    Args:
        port: Port to serve metrics on
    """
    start_http_server(port)
