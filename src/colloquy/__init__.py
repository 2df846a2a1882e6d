"""colloquy - Conversation orchestration for simulated agent worlds.

colloquy admits, queues and schedules pairwise conversations between agents,
streams their dialogue from a scripted or networked transport, and retires
them under concurrency limits and inactivity timeouts.
"""

__version__ = "0.1.0"

from .adapters.router import BaseRouter, NetworkedRouter, SimulatedRouter
from .core import EventKind, Orchestrator, OrchestratorConfig
from .schemas.models import (
    Agent,
    AgentState,
    Conversation,
    ConversationStatus,
    Message,
    PartialMessage,
    Participant,
)

__all__ = [
    "Agent",
    "AgentState",
    "BaseRouter",
    "Conversation",
    "ConversationStatus",
    "EventKind",
    "Message",
    "NetworkedRouter",
    "Orchestrator",
    "OrchestratorConfig",
    "PartialMessage",
    "Participant",
    "SimulatedRouter",
    "__version__",
]
