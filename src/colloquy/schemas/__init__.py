"""Data models and wire schemas."""

from .frames import (
    AgentSnapshot,
    ChunkFrame,
    GenerateMessageRequest,
    HistoryEntry,
    InboundFrame,
    StreamCancelledFrame,
    StreamCompleteFrame,
    StreamErrorFrame,
    StreamStartFrame,
    WireMessage,
    parse_frame,
)
from .models import (
    Agent,
    AgentState,
    Conversation,
    ConversationStatus,
    Message,
    PartialMessage,
    Participant,
    ParticipantRole,
    QueuedConversation,
)

__all__ = [
    "Agent",
    "AgentSnapshot",
    "AgentState",
    "ChunkFrame",
    "Conversation",
    "ConversationStatus",
    "GenerateMessageRequest",
    "HistoryEntry",
    "InboundFrame",
    "Message",
    "PartialMessage",
    "Participant",
    "ParticipantRole",
    "QueuedConversation",
    "StreamCancelledFrame",
    "StreamCompleteFrame",
    "StreamErrorFrame",
    "StreamStartFrame",
    "WireMessage",
    "parse_frame",
]
