# Conversation scheduling engine components

from .events import (
    AgentAvailable,
    AgentBusy,
    ConversationCreated,
    ConversationEnded,
    ConversationFailed,
    ConversationUpdated,
    EventBus,
    EventKind,
    MessageReceived,
    QueueUpdated,
)
from .orchestrator import Orchestrator, OrchestratorConfig
from .queue import ConversationQueue
from .store import ConversationStore

__all__ = [
    "AgentAvailable",
    "AgentBusy",
    "ConversationCreated",
    "ConversationEnded",
    "ConversationFailed",
    "ConversationQueue",
    "ConversationStore",
    "ConversationUpdated",
    "EventBus",
    "EventKind",
    "MessageReceived",
    "Orchestrator",
    "OrchestratorConfig",
    "QueueUpdated",
]
