"""Pydantic models for agents, conversations and their messages."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

TERMINAL_STATUSES = frozenset({"completed", "error"})


class AgentState(str, Enum):
    """What an agent is currently doing in the world."""

    IDLE = "idle"
    MOVING = "moving"
    CHATTING = "chatting"


class ParticipantRole(str, Enum):
    """Role a participant plays in a conversation."""

    INITIATOR = "initiator"
    RESPONDER = "responder"


class ConversationStatus(str, Enum):
    """Conversation lifecycle states.

    ``initializing -> generating -> streaming -> completed``; any non-terminal
    state may also move to ``error``.
    """

    INITIALIZING = "initializing"
    GENERATING = "generating"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transitions are possible."""
        return self.value in TERMINAL_STATUSES


class Message(BaseModel):
    """A completed line of dialogue."""

    sender_id: str = Field(description="Agent that produced the message")
    sender_name: str = Field(description="Display name of the sender")
    text: str = Field(description="Message text (opaque payload)")
    timestamp: float = Field(description="Epoch milliseconds when completed", ge=0)


class PartialMessage(BaseModel):
    """In-flight streaming buffer for a single generation attempt."""

    conversation_id: str
    request_id: str = Field(description="Unique per generation attempt")
    accumulated_text: str = ""
    chunk_count: int = Field(default=0, ge=0)
    is_complete: bool = False
    sender_id: str
    sender_name: str


class Agent(BaseModel):
    """An agent record shared with the world collaborator.

    The collaborator owns identity and any spatial or visual attributes (extra
    fields are accepted and preserved). The engine only writes ``state``,
    ``conversation_partner_id``, ``active_conversation`` and ``last_message``.
    """

    id: str = Field(min_length=1)
    name: str | None = None
    bio: str | None = None
    job: str | None = None
    state: AgentState = AgentState.IDLE
    conversation_partner_id: str | None = None
    active_conversation: list[Message] = Field(default_factory=list)
    last_message: str | None = None

    model_config = ConfigDict(extra="allow")

    @property
    def display_name(self) -> str:
        """Name to show for this agent, falling back to its id."""
        return self.name or self.id

    def record_message(self, message: Message, limit: int = 20) -> None:
        """Append to the transcript, evicting the oldest entries past ``limit``."""
        self.active_conversation.append(message)
        self.last_message = message.text
        overflow = len(self.active_conversation) - limit
        if overflow > 0:
            del self.active_conversation[:overflow]


class Participant(BaseModel):
    """Immutable snapshot of an agent taken when a conversation is created."""

    agent_id: str = Field(min_length=1)
    display_name: str
    role: ParticipantRole

    model_config = ConfigDict(frozen=True)


class Conversation(BaseModel):
    """A pairwise dialogue session tracked by the store."""

    id: str = Field(min_length=1)
    participants: tuple[Participant, Participant]
    status: ConversationStatus = ConversationStatus.INITIALIZING
    start_time: float
    last_activity_time: float
    messages: list[Message] = Field(default_factory=list)
    partial_message: PartialMessage | None = None
    topic: str | None = None
    is_simulated: bool = True

    @model_validator(mode="after")
    def check_distinct_participants(self) -> "Conversation":
        """Reject conversations whose two participants are the same agent."""
        first, second = self.participants
        if first.agent_id == second.agent_id:
            raise ValueError("Conversation participants must be distinct agents")
        return self

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "id" and "id" in self.__dict__:
            raise AttributeError("Conversation id is immutable")
        super().__setattr__(name, value)

    @property
    def is_terminal(self) -> bool:
        """Whether the conversation has completed or failed."""
        return self.status.is_terminal

    @property
    def participant_ids(self) -> tuple[str, str]:
        """Agent ids of the initiator and responder."""
        return self.participants[0].agent_id, self.participants[1].agent_id

    def involves(self, agent_id: str) -> bool:
        """Check whether an agent takes part in this conversation."""
        return agent_id in self.participant_ids

    def touch(self, now: float) -> None:
        """Advance last activity, never moving it backwards."""
        if now > self.last_activity_time:
            self.last_activity_time = now

    def duration_ms(self) -> float:
        """Time between start and last activity."""
        return self.last_activity_time - self.start_time


@dataclass
class QueuedConversation:
    """Queue-only wrapper; priority is not stored on the conversation."""

    conversation: Conversation
    priority: int
    queued_at: float
