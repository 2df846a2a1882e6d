"""Transport abstraction shared by the simulated and networked routers.

A router turns "start a conversation between these two agents" into a stream
of typed events: ``streaming`` updates while a turn is being produced, a
``message`` when a turn is final, ``complete`` after the last turn, and
``error`` on failure. The orchestrator registers one listener per kind and
never needs to know how the dialogue is produced.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from colloquy.schemas.models import Agent, Conversation, Message, PartialMessage
from colloquy.utils.errors import TransportError
from colloquy.utils.telemetry import get_logger


class RouterMode(str, Enum):
    """Available transport strategies."""

    SIMULATED = "simulated"
    NETWORKED = "networked"


class RouterEventKind(str, Enum):
    """Events a router reports upward."""

    MESSAGE = "message"
    STREAMING = "streaming"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class StreamingUpdate:
    """A turn is being typed; ``status`` is ``typing`` for the first signal."""

    conversation_id: str
    partial_message: PartialMessage
    status: Literal["typing", "streaming"]


@dataclass(frozen=True)
class MessageDelivered:
    conversation_id: str
    message: Message


@dataclass(frozen=True)
class ConversationComplete:
    conversation_id: str


@dataclass(frozen=True)
class TransportFailure:
    conversation_id: str
    error: str
    error_code: str = "unknown"
    can_retry: bool = False
    retry_after: int | None = None
    fallback_message: Message | None = None

    @classmethod
    def from_error(cls, error: TransportError) -> "TransportFailure":
        """Build the event payload from a transport exception."""
        return cls(
            conversation_id=error.conversation_id,
            error=error.error,
            error_code=error.error_code,
            can_retry=error.can_retry,
            retry_after=error.retry_after,
            fallback_message=error.fallback_message,
        )


RouterEvent = (
    StreamingUpdate | MessageDelivered | ConversationComplete | TransportFailure
)

RouterCallback = Callable[[Any], None]


class BaseRouter(ABC):
    """Common listener registry and interface for transport strategies."""

    mode: RouterMode

    def __init__(self) -> None:
        self._listeners: dict[RouterEventKind, list[RouterCallback]] = {
            kind: [] for kind in RouterEventKind
        }
        self._logger = get_logger(f"colloquy.router.{self.mode.value}")

    @property
    def is_simulated(self) -> bool:
        """Whether dialogue is produced locally from scripts."""
        return self.mode == RouterMode.SIMULATED

    def on(self, kind: RouterEventKind | str, callback: RouterCallback) -> None:
        """Register a listener for a router event kind."""
        self._listeners[RouterEventKind(kind)].append(callback)

    def off(self, kind: RouterEventKind | str, callback: RouterCallback) -> None:
        """Remove a listener; unknown callbacks are ignored."""
        callbacks = self._listeners[RouterEventKind(kind)]
        if callback in callbacks:
            callbacks.remove(callback)

    def _emit(self, kind: RouterEventKind, event: RouterEvent) -> None:
        for callback in list(self._listeners[kind]):
            callback(event)

    @abstractmethod
    def start_conversation(
        self, conversation: Conversation, agent_a: Agent, agent_b: Agent
    ) -> None:
        """Begin producing dialogue for a promoted conversation.

        Args:
            conversation: Conversation being started
            agent_a: Initiating agent
            agent_b: Responding agent
        """
        ...

    @abstractmethod
    def send_message(self, conversation_id: str, message: Message) -> None:
        """Inject a message into a running conversation."""
        ...

    @abstractmethod
    def cancel_conversation(self, conversation_id: str) -> None:
        """Stop all pending work for a conversation.

        Must be synchronous and safe for ids with no active work; no events
        for the id are emitted afterwards.
        """
        ...

    @abstractmethod
    def active_conversation_ids(self) -> list[str]:
        """Ids of conversations the router is currently driving."""
        ...

    def disconnect(self) -> None:
        """Cancel all pending work."""
        for conversation_id in self.active_conversation_ids():
            self.cancel_conversation(conversation_id)
