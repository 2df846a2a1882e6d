"""Wire schemas for the networked transport.

Frames travel as JSON envelopes ``{"type": <frame type>, "data": {...}}``. Field
names on the wire are camelCase; the models expose snake_case attributes and
accept either form. Every inbound frame is validated against these models
before any conversation state is touched.
"""

import uuid
from typing import Annotated, Any, Literal

from pydantic import (
    AliasGenerator,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
)
from pydantic.alias_generators import to_camel

from colloquy.utils.errors import FrameValidationError

CONVERSATION_ID_PATTERN = r"^conv-\d+-[\w-]+$"

ConversationId = Annotated[str, StringConstraints(pattern=CONVERSATION_ID_PATTERN)]

# Inbound frame types
STREAM_START = "conversation:stream_start"
CHUNK = "conversation:chunk"
STREAM_COMPLETE = "conversation:stream_complete"
STREAM_ERROR = "conversation:error"
STREAM_CANCELLED = "conversation:cancelled"

# Outbound frame types
GENERATE = "conversation:generate"
SEND_MESSAGE = "conversation:message"
CANCEL = "conversation:cancel"

MAX_HISTORY_ENTRIES = 50


class WireModel(BaseModel):
    """Base for frame payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=AliasGenerator(
            validation_alias=to_camel, serialization_alias=to_camel
        ),
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire field names, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class WireMessage(WireModel):
    """A completed message as carried in frames."""

    sender_id: str = Field(max_length=100)
    sender_name: str = Field(max_length=100)
    text: str = Field(max_length=2000)
    timestamp: float = Field(gt=0)


class HistoryEntry(WireModel):
    """A message in the truncated history sent with generation requests."""

    sender_id: str = Field(max_length=100)
    sender_name: str = Field(max_length=100)
    text: str = Field(max_length=1000)
    timestamp: float = Field(gt=0)


class StreamStartFrame(WireModel):
    """Backend has begun generating a turn."""

    conversation_id: ConversationId
    request_id: uuid.UUID
    sender_id: str = Field(min_length=1, max_length=100)
    sender_name: str = Field(max_length=100)
    estimated_length: int | None = Field(default=None, gt=0)


class ChunkFrame(WireModel):
    """Incremental piece of a streaming turn."""

    conversation_id: ConversationId
    request_id: uuid.UUID
    chunk: str = Field(max_length=500)
    chunk_index: int = Field(ge=0, le=1000)
    is_complete: bool
    accumulated_text: str | None = Field(default=None, max_length=2000)


class StreamCompleteFrame(WireModel):
    """A turn finished; carries the final message."""

    conversation_id: ConversationId
    request_id: uuid.UUID
    final_message: WireMessage
    success: bool
    total_chunks: int = Field(ge=0)
    duration: float | None = Field(default=None, gt=0)
    message_hash: str | None = Field(default=None, max_length=64)


class StreamErrorFrame(WireModel):
    """Backend failed to produce a turn."""

    conversation_id: ConversationId
    request_id: uuid.UUID
    error: str = Field(max_length=500)
    error_code: Literal[
        "api_error", "timeout", "rate_limit", "validation_error", "unknown"
    ]
    fallback_message: WireMessage | None = None
    can_retry: bool
    retry_after: int | None = Field(default=None, gt=0)


class StreamCancelledFrame(WireModel):
    """Backend abandoned a turn."""

    conversation_id: ConversationId
    request_id: uuid.UUID
    reason: Literal["timeout", "server_shutdown", "rate_limit", "user_cancelled"]


class AgentSnapshot(WireModel):
    """Capability-limited view of an agent sent to the backend."""

    id: str = Field(min_length=1, max_length=100)
    name: str | None = Field(default=None, max_length=100)
    bio: str | None = Field(default=None, max_length=500)
    job: str | None = Field(default=None, max_length=50)


class GenerateMessageRequest(WireModel):
    """Outbound request for the next turn of a conversation."""

    conversation_id: ConversationId
    agent_a: AgentSnapshot
    agent_b: AgentSnapshot
    conversation_history: list[HistoryEntry] = Field(
        default_factory=list, max_length=MAX_HISTORY_ENTRIES
    )
    turn: Literal["agentA", "agentB"]
    message_count: int = Field(ge=0, le=100)
    streaming: bool = True
    timestamp: float = Field(gt=0)
    nonce: uuid.UUID = Field(default_factory=uuid.uuid4)


InboundFrame = (
    StreamStartFrame
    | ChunkFrame
    | StreamCompleteFrame
    | StreamErrorFrame
    | StreamCancelledFrame
)

INBOUND_FRAME_MODELS: dict[str, type[WireModel]] = {
    STREAM_START: StreamStartFrame,
    CHUNK: ChunkFrame,
    STREAM_COMPLETE: StreamCompleteFrame,
    STREAM_ERROR: StreamErrorFrame,
    STREAM_CANCELLED: StreamCancelledFrame,
}


def parse_frame(frame_type: str, data: Any) -> InboundFrame:
    """Validate an inbound frame payload.

    Args:
        frame_type: Envelope type of the frame
        data: Decoded JSON payload

    Returns:
        Validated frame model

    Raises:
        FrameValidationError: If the type is unknown or the payload is invalid
    """
    model = INBOUND_FRAME_MODELS.get(frame_type)
    if model is None:
        raise FrameValidationError(frame_type, [f"unknown frame type {frame_type!r}"])

    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        ]
        raise FrameValidationError(frame_type, errors) from e


def encode_envelope(frame_type: str, payload: dict[str, Any]) -> dict[str, Any]:
    """Wrap a payload in the wire envelope."""
    return {"type": frame_type, "data": payload}
