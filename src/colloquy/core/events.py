"""Typed publish/subscribe feed for orchestrator lifecycle events.

Each ``EventKind`` has exactly one payload dataclass. Subscribers are called in
registration order and events are delivered in emission order. A subscriber
that raises is logged and counted; delivery to the remaining subscribers
continues.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from colloquy.schemas.models import (
    Agent,
    Conversation,
    ConversationStatus,
    Message,
    PartialMessage,
)
from colloquy.utils.telemetry import get_logger, record_subscriber_error


class EventKind(str, Enum):
    """Lifecycle events published by the orchestrator."""

    CONVERSATION_CREATED = "conversation:created"
    CONVERSATION_UPDATED = "conversation:updated"
    CONVERSATION_ENDED = "conversation:ended"
    CONVERSATION_ERROR = "conversation:error"
    MESSAGE_RECEIVED = "message:received"
    QUEUE_UPDATED = "queue:updated"
    AGENT_BUSY = "agent:busy"
    AGENT_AVAILABLE = "agent:available"


@dataclass(frozen=True)
class ConversationCreated:
    conversation: Conversation
    priority: int


@dataclass(frozen=True)
class ConversationUpdated:
    conversation: Conversation
    status: str
    partial_message: PartialMessage | None = None


@dataclass(frozen=True)
class ConversationEnded:
    conversation_id: str
    reason: str
    status: ConversationStatus
    message_count: int
    duration_ms: float


@dataclass(frozen=True)
class ConversationFailed:
    """Payload for ``conversation:error``.

    ``fallback_message`` is a substitute line the UI may display in place of
    the failed turn.
    """

    conversation_id: str
    error: str
    error_code: str = "unknown"
    can_retry: bool = False
    retry_after: int | None = None
    fallback_message: Message | None = None


@dataclass(frozen=True)
class MessageReceived:
    conversation_id: str
    message: Message


@dataclass(frozen=True)
class QueueUpdated:
    queue_length: int


@dataclass(frozen=True)
class AgentBusy:
    agent_id: str
    reason: str


@dataclass(frozen=True)
class AgentAvailable:
    agent_id: str
    agent: Agent


EventPayload = (
    ConversationCreated
    | ConversationUpdated
    | ConversationEnded
    | ConversationFailed
    | MessageReceived
    | QueueUpdated
    | AgentBusy
    | AgentAvailable
)

EVENT_PAYLOAD_TYPES: dict[EventKind, type] = {
    EventKind.CONVERSATION_CREATED: ConversationCreated,
    EventKind.CONVERSATION_UPDATED: ConversationUpdated,
    EventKind.CONVERSATION_ENDED: ConversationEnded,
    EventKind.CONVERSATION_ERROR: ConversationFailed,
    EventKind.MESSAGE_RECEIVED: MessageReceived,
    EventKind.QUEUE_UPDATED: QueueUpdated,
    EventKind.AGENT_BUSY: AgentBusy,
    EventKind.AGENT_AVAILABLE: AgentAvailable,
}

EventCallback = Callable[[Any], None]


class EventBus:
    """Subscriber registry keyed by ``EventKind``."""

    def __init__(self, name: str = "colloquy.events"):
        self._subscribers: dict[EventKind, list[EventCallback]] = {
            kind: [] for kind in EventKind
        }
        self._logger = get_logger(name)

    def subscribe(self, kind: EventKind | str, callback: EventCallback) -> None:
        """Register a callback for an event kind.

        Args:
            kind: Event kind, or its wire name (e.g. ``"conversation:ended"``)
            callback: Called with the event's payload dataclass

        Raises:
            ValueError: If the kind is unknown
        """
        self._subscribers[EventKind(kind)].append(callback)

    def unsubscribe(self, kind: EventKind | str, callback: EventCallback) -> bool:
        """Remove a previously registered callback.

        Returns:
            True if the callback was registered
        """
        callbacks = self._subscribers[EventKind(kind)]
        if callback in callbacks:
            callbacks.remove(callback)
            return True
        return False

    on = subscribe
    off = unsubscribe

    def subscriber_count(self, kind: EventKind | str) -> int:
        """Number of callbacks registered for a kind."""
        return len(self._subscribers[EventKind(kind)])

    def publish(self, kind: EventKind, payload: EventPayload) -> None:
        """Deliver a payload to every subscriber of ``kind``.

        Raises:
            TypeError: If the payload type does not match the kind
        """
        expected = EVENT_PAYLOAD_TYPES[kind]
        if not isinstance(payload, expected):
            raise TypeError(
                f"{kind.value} expects {expected.__name__}, got {type(payload).__name__}"
            )

        # Copy so callbacks may unsubscribe while being delivered
        for callback in list(self._subscribers[kind]):
            try:
                callback(payload)
            except Exception as e:
                record_subscriber_error(kind.value)
                self._logger.error(
                    "Event subscriber failed",
                    event_kind=kind.value,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )

    def clear(self) -> None:
        """Remove every subscriber."""
        for callbacks in self._subscribers.values():
            callbacks.clear()
