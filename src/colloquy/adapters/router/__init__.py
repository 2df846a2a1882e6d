"""Router implementations: scripted simulation and networked generation."""

from .base import (
    BaseRouter,
    ConversationComplete,
    MessageDelivered,
    RouterEvent,
    RouterEventKind,
    RouterMode,
    StreamingUpdate,
    TransportFailure,
)
from .networked import NetworkedRouter
from .simulated import DEFAULT_SCRIPTS, Script, ScriptLine, SimulatedRouter

__all__ = [
    "DEFAULT_SCRIPTS",
    "BaseRouter",
    "ConversationComplete",
    "MessageDelivered",
    "NetworkedRouter",
    "RouterEvent",
    "RouterEventKind",
    "RouterMode",
    "Script",
    "ScriptLine",
    "SimulatedRouter",
    "StreamingUpdate",
    "TransportFailure",
]
