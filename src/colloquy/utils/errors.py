"""Structured error types for the conversation engine.

These exceptions are raised and handled inside the engine. Admission
rejections, transport failures and staleness are all resolved to a terminal
conversation state and surfaced through the event feed, so none of them
propagate out of the orchestrator's public methods.
"""

from enum import Enum
from typing import Any


class RecoveryAction(Enum):
    """Recovery actions for error handling."""

    RETRY = "retry"
    ABORT = "abort"
    RETRY_WITH_DELAY = "retry_with_delay"
    DISCARD = "discard"


class OrchestrationError(Exception):
    """Base exception for conversation engine errors."""

    def __init__(
        self, message: str, recovery_action: RecoveryAction = RecoveryAction.ABORT
    ):
        """Initialize orchestration error.

        Args:
            message: Error message
            recovery_action: Suggested recovery action
        """
        super().__init__(message)
        self.recovery_action = recovery_action


class FrameValidationError(OrchestrationError):
    """Error raised when an inbound transport frame fails schema validation.

    The frame is discarded without touching any conversation state.
    """

    def __init__(self, frame_type: str, validation_errors: list[str]):
        """Initialize frame validation error.

        Args:
            frame_type: Envelope type of the rejected frame
            validation_errors: Human-readable validation failures
        """
        self.frame_type = frame_type
        self.validation_errors = validation_errors

        errors_str = "; ".join(validation_errors)
        message = f"Frame {frame_type} failed validation: {errors_str}"

        super().__init__(message, RecoveryAction.DISCARD)


class MessageIntegrityError(OrchestrationError):
    """Error raised when a completed message does not match its hash."""

    def __init__(self, conversation_id: str, expected: str, actual: str):
        """Initialize message integrity error.

        Args:
            conversation_id: Conversation the message belongs to
            expected: Hash announced by the backend
            actual: Hash computed locally over the message text
        """
        self.conversation_id = conversation_id
        self.expected = expected
        self.actual = actual

        message = (
            f"Message hash mismatch for {conversation_id}: "
            f"expected {expected}, computed {actual}"
        )

        super().__init__(message, RecoveryAction.DISCARD)


class TransportError(OrchestrationError):
    """Error reported by a transport backend for a conversation.

    Carries the backend's error code, retry hints and an optional fallback
    message the UI may show in place of the failed turn.
    """

    def __init__(
        self,
        conversation_id: str,
        error: str,
        error_code: str = "unknown",
        can_retry: bool = False,
        retry_after: int | None = None,
        fallback_message: Any | None = None,
    ):
        """Initialize transport error.

        Args:
            conversation_id: Conversation the failure applies to
            error: Error description (already sanitized)
            error_code: Backend error code
            can_retry: Whether the backend considers the failure transient
            retry_after: Suggested retry delay in seconds
            fallback_message: Message to display instead of the failed turn
        """
        self.conversation_id = conversation_id
        self.error = error
        self.error_code = error_code
        self.can_retry = can_retry
        self.retry_after = retry_after
        self.fallback_message = fallback_message

        if can_retry and retry_after:
            recovery_action = RecoveryAction.RETRY_WITH_DELAY
        elif can_retry:
            recovery_action = RecoveryAction.RETRY
        else:
            recovery_action = RecoveryAction.ABORT

        super().__init__(
            f"Transport error for {conversation_id} ({error_code}): {error}",
            recovery_action,
        )


class TransportNotConnectedError(OrchestrationError):
    """Error raised when a networked transport is used before connecting."""

    def __init__(self, operation: str):
        """Initialize not-connected error.

        Args:
            operation: Operation that required a connection
        """
        self.operation = operation
        super().__init__(
            f"Cannot {operation}: transport is not connected",
            RecoveryAction.RETRY_WITH_DELAY,
        )
