# Shared utilities and helpers

from .errors import (
    FrameValidationError,
    MessageIntegrityError,
    OrchestrationError,
    RecoveryAction,
    TransportError,
    TransportNotConnectedError,
)
from .telemetry import (
    get_logger,
    get_tracer,
    redact_pii,
    sanitize_error,
    sanitize_message,
    setup_logging,
    setup_tracing,
    start_metrics_server,
)
from .timing import Clock, ManualClock, now_ms

__all__ = [
    "Clock",
    "FrameValidationError",
    "ManualClock",
    "MessageIntegrityError",
    "OrchestrationError",
    "RecoveryAction",
    "TransportError",
    "TransportNotConnectedError",
    "get_logger",
    "get_tracer",
    "now_ms",
    "redact_pii",
    "sanitize_error",
    "sanitize_message",
    "setup_logging",
    "setup_tracing",
    "start_metrics_server",
]
