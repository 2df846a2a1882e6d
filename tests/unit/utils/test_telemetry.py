"""Unit tests for telemetry utilities."""

import structlog
from prometheus_client import REGISTRY

from colloquy.utils.telemetry import (
    get_logger,
    get_tracer,
    pii_redaction_processor,
    record_admission,
    record_admission_rejection,
    record_conversation_ended,
    record_invalid_frame,
    record_subscriber_error,
    redact_pii,
    sanitize_error,
    sanitize_message,
    setup_logging,
    update_scheduler_gauges,
)


def sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestPIIRedaction:
    """Test PII redaction functionality."""

    def test_redact_email(self):
        """Test email redaction."""
        result = redact_pii("Contact me at john.doe@example.com for more info")
        assert "john.doe@example.com" not in result
        assert "[REDACTED_EMAIL]" in result

    def test_redact_phone(self):
        """Test phone number redaction."""
        result = redact_pii("Call me at 555-123-4567")
        assert "555-123-4567" not in result
        assert "[REDACTED_PHONE]" in result

    def test_non_string_passthrough(self):
        assert redact_pii(42) == 42
        assert redact_pii(None) is None

    def test_processor_redacts_nested_values(self):
        """Test the structlog processor walks dicts and lists."""
        event = {
            "event": "mail from jane@example.com",
            "context": {"contact": "jane@example.com"},
            "recipients": ["bob@example.com", 7],
            "count": 3,
        }

        result = pii_redaction_processor(None, "info", event)

        assert result["event"] == "mail from [REDACTED_EMAIL]"
        assert result["context"]["contact"] == "[REDACTED_EMAIL]"
        assert result["recipients"] == ["[REDACTED_EMAIL]", 7]
        assert result["count"] == 3


class TestSanitizeError:
    """Test sanitization of backend error strings."""

    def test_ip_address(self):
        assert sanitize_error("connect to 10.0.0.12 failed") == (
            "connect to [IP_REDACTED] failed"
        )

    def test_api_keys(self):
        result = sanitize_error("bad key sk-abcdefghijklmnopqrstuvwxyz012345")
        assert result == "bad key [API_KEY_REDACTED]"

        google = "AIza" + "A" * 35
        assert sanitize_error(f"key {google} rejected") == "key [API_KEY_REDACTED] rejected"

    def test_database_url(self):
        result = sanitize_error("postgres://admin:hunter2@db:5432/app is down")
        assert result == "[DB_URL_REDACTED] is down"

    def test_file_path(self):
        result = sanitize_error("cannot read /etc/secrets/app.env")
        assert result == "cannot read [FILE_PATH_REDACTED]"

    def test_stack_trace(self):
        result = sanitize_error("TypeError at handler (/srv/app.js:10:5)")
        assert result == "TypeError [STACK_TRACE_REDACTED]"

    def test_truncated(self):
        assert len(sanitize_error("x" * 500)) == 200

    def test_empty_falls_back_to_default(self):
        assert sanitize_error("") == "An error occurred"
        assert sanitize_error(None) == "An error occurred"


class TestSanitizeMessage:
    """Test markup removal from message text."""

    def test_tags_removed(self):
        assert sanitize_message("<script>alert(1)</script>hi") == "alert(1)hi"

    def test_plain_text_untouched(self):
        assert sanitize_message("Nice weather today.") == "Nice weather today."


class TestMetrics:
    """Test Prometheus metric recorders."""

    def test_admission_counters(self):
        before = sample("colloquy_conversations_admitted_total", {"priority": "3"})
        record_admission(3)
        assert sample("colloquy_conversations_admitted_total", {"priority": "3"}) == before + 1

        labels = {"reason": "same_agent"}
        before = sample("colloquy_admission_rejections_total", labels)
        record_admission_rejection("same_agent")
        assert sample("colloquy_admission_rejections_total", labels) == before + 1

    def test_ended_counter(self):
        labels = {"status": "completed", "reason": "natural_end"}
        before = sample("colloquy_conversations_ended_total", labels)
        record_conversation_ended("completed", "natural_end")
        assert sample("colloquy_conversations_ended_total", labels) == before + 1

    def test_scheduler_gauges(self):
        update_scheduler_gauges(active=2, queued=5)

        assert sample("colloquy_active_conversations") == 2
        assert sample("colloquy_queue_depth") == 5

    def test_frame_and_subscriber_counters(self):
        labels = {"frame_type": "conversation:test"}
        before = sample("colloquy_invalid_frames_total", labels)
        record_invalid_frame("conversation:test")
        assert sample("colloquy_invalid_frames_total", labels) == before + 1

        labels = {"event": "test_event"}
        before = sample("colloquy_subscriber_errors_total", labels)
        record_subscriber_error("test_event")
        assert sample("colloquy_subscriber_errors_total", labels) == before + 1


class TestLoggingAndTracing:
    """Test logger and tracer setup."""

    def test_setup_logging(self):
        setup_logging("debug", enable_pii_redaction=True, log_format="text")

        assert structlog.is_configured()
        get_logger("colloquy.test", component="telemetry").info("configured")

    def test_get_tracer_produces_spans(self):
        tracer = get_tracer("colloquy.test")

        with tracer.start_as_current_span("unit") as span:
            span.set_attribute("colloquy.test", True)
