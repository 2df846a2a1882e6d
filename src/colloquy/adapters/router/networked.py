"""WebSocket router that relays dialogue generated by a remote backend.

Frames are JSON envelopes ``{"type": ..., "data": {...}}``. The router asks the
backend for one turn at a time (``conversation:generate``), alternating between
the two agents until ``max_turns`` messages have been produced, and relays the
backend's stream frames to the same event feed the simulated router uses.

Every inbound frame is validated before use. Invalid frames, frames for
conversations this router is not driving, and frames from a superseded
generation request are logged and dropped without emitting anything.
"""

import asyncio
import hashlib
import uuid
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

import orjson
import websockets
from websockets.exceptions import ConnectionClosed

from colloquy.adapters.router.base import (
    BaseRouter,
    ConversationComplete,
    MessageDelivered,
    RouterEventKind,
    RouterMode,
    StreamingUpdate,
    TransportFailure,
)
from colloquy.schemas.frames import (
    CANCEL,
    GENERATE,
    MAX_HISTORY_ENTRIES,
    SEND_MESSAGE,
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
    encode_envelope,
    parse_frame,
)
from colloquy.schemas.models import Agent, Conversation, Message, PartialMessage
from colloquy.utils.errors import (
    FrameValidationError,
    MessageIntegrityError,
    TransportError,
    TransportNotConnectedError,
)
from colloquy.utils.telemetry import record_invalid_frame, sanitize_error, sanitize_message
from colloquy.utils.timing import Clock, now_ms

RETRYABLE_CANCEL_REASONS = {"timeout", "server_shutdown", "rate_limit"}


class FrameConnection(Protocol):
    """The subset of a websockets client connection the router relies on."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> Any: ...


@dataclass
class _Session:
    """Router-side bookkeeping for one conversation."""

    conversation_id: str
    agent_a: Agent
    agent_b: Agent
    turn: Literal["agentA", "agentB"] = "agentA"
    history: list[Message] = field(default_factory=list)
    message_count: int = 0
    request_id: str | None = None
    finished_requests: set[str] = field(default_factory=set)
    sender_id: str = ""
    sender_name: str = ""
    accumulated_text: str = ""


def _snapshot(agent: Agent) -> AgentSnapshot:
    """Capability-limited view of an agent, truncated to wire limits."""
    return AgentSnapshot(
        id=agent.id[:100],
        name=agent.name[:100] if agent.name else None,
        bio=agent.bio[:500] if agent.bio else None,
        job=agent.job[:50] if agent.job else None,
    )


def message_hash(text: str) -> str:
    """SHA-256 hex digest used to check completed messages."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class NetworkedRouter(BaseRouter):
    """Router backed by a remote generation service over WebSocket."""

    mode = RouterMode.NETWORKED

    def __init__(
        self,
        url: str | None = None,
        max_turns: int = 4,
        open_timeout_s: float = 10.0,
        clock: Clock | None = None,
    ):
        """Initialize the networked router.

        Args:
            url: WebSocket URL of the generation backend
            max_turns: Messages to produce before the conversation completes
            open_timeout_s: Connection handshake timeout
            clock: Millisecond clock for request timestamps

        Raises:
            ValueError: If max_turns is outside 1..100
        """
        super().__init__()
        if not 1 <= max_turns <= 100:
            raise ValueError("max_turns must be between 1 and 100")

        self.url = url
        self.max_turns = max_turns
        self.open_timeout_s = open_timeout_s
        self._clock = clock or now_ms

        self._connection: FrameConnection | None = None
        self._outbound: asyncio.Queue[str] | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None
        self._sessions: dict[str, _Session] = {}

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self, url: str | None = None) -> None:
        """Open the WebSocket connection and start the reader and writer.

        Args:
            url: Overrides the URL given at construction

        Raises:
            ValueError: If no URL is configured
        """
        target = url or self.url
        if not target:
            raise ValueError("No backend URL configured for networked router")

        connection = await websockets.connect(target, open_timeout=self.open_timeout_s)
        self.url = target
        self.attach(connection)

    def attach(self, connection: FrameConnection) -> None:
        """Adopt an already-open connection.

        Must be called from inside the event loop that owns the orchestrator.
        """
        if self._connection is not None:
            raise RuntimeError("Networked router is already connected")

        loop = asyncio.get_running_loop()
        self._connection = connection
        self._outbound = asyncio.Queue()
        self._reader_task = loop.create_task(self._read_loop(connection))
        self._writer_task = loop.create_task(self._write_loop(connection, self._outbound))

        self._logger.info("Networked router connected", url=self.url)

    async def close(self) -> None:
        """Cancel outstanding work and close the connection."""
        self.disconnect()

        connection = self._connection
        tasks = [t for t in (self._reader_task, self._writer_task) if t is not None]
        self._connection = None
        self._outbound = None
        self._reader_task = None
        self._writer_task = None

        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        if connection is not None:
            await connection.close()

        self._logger.info("Networked router closed")

    # --- Outbound ---

    def start_conversation(
        self, conversation: Conversation, agent_a: Agent, agent_b: Agent
    ) -> None:
        """Request the opening turn from the backend.

        Raises:
            TransportNotConnectedError: If the router has no connection
        """
        if not self.is_connected:
            raise TransportNotConnectedError("start conversation")

        session = _Session(
            conversation_id=conversation.id,
            agent_a=agent_a,
            agent_b=agent_b,
            history=list(conversation.messages),
            message_count=len(conversation.messages),
        )
        self._sessions[conversation.id] = session
        self._request_turn(session)

        self._logger.info(
            "Networked conversation started",
            conversation_id=conversation.id,
            max_turns=self.max_turns,
        )

    def send_message(self, conversation_id: str, message: Message) -> None:
        """Forward an externally supplied message to the backend.

        The message joins the history sent with the next generation request.
        """
        session = self._sessions.get(conversation_id)
        if session is None:
            return

        session.history.append(message)
        wire = WireMessage(
            sender_id=message.sender_id,
            sender_name=message.sender_name,
            text=message.text[:2000],
            timestamp=message.timestamp,
        )
        self._enqueue(
            SEND_MESSAGE,
            {"conversationId": conversation_id, "message": wire.to_wire()},
        )

    def cancel_conversation(self, conversation_id: str) -> None:
        session = self._sessions.pop(conversation_id, None)
        if session is None or self._outbound is None:
            return

        self._enqueue(CANCEL, {"conversationId": conversation_id})
        self._logger.debug(
            "Networked conversation cancelled", conversation_id=conversation_id
        )

    def active_conversation_ids(self) -> list[str]:
        return list(self._sessions)

    def _request_turn(self, session: _Session) -> None:
        history = [
            HistoryEntry(
                sender_id=message.sender_id[:100],
                sender_name=message.sender_name[:100],
                text=message.text[:1000],
                timestamp=message.timestamp,
            )
            for message in session.history[-MAX_HISTORY_ENTRIES:]
        ]
        request = GenerateMessageRequest(
            conversation_id=session.conversation_id,
            agent_a=_snapshot(session.agent_a),
            agent_b=_snapshot(session.agent_b),
            conversation_history=history,
            turn=session.turn,
            message_count=session.message_count,
            timestamp=self._clock(),
            nonce=uuid.uuid4(),
        )
        self._enqueue(GENERATE, request.to_wire())

    def _enqueue(self, frame_type: str, payload: dict[str, Any]) -> None:
        if self._outbound is None:
            raise TransportNotConnectedError(f"send {frame_type}")
        envelope = encode_envelope(frame_type, payload)
        self._outbound.put_nowait(orjson.dumps(envelope).decode("utf-8"))

    async def _write_loop(
        self, connection: FrameConnection, outbound: asyncio.Queue[str]
    ) -> None:
        try:
            while True:
                payload = await outbound.get()
                await connection.send(payload)
        except ConnectionClosed as e:
            self._logger.info("Backend connection closed while sending", reason=str(e))

    # --- Inbound ---

    async def _read_loop(self, connection: FrameConnection) -> None:
        try:
            async for raw in connection:
                try:
                    envelope = orjson.loads(raw)
                except orjson.JSONDecodeError as e:
                    record_invalid_frame("malformed")
                    self._logger.warning("Discarding malformed frame", error=str(e))
                    continue

                if not isinstance(envelope, dict) or not isinstance(
                    envelope.get("type"), str
                ):
                    record_invalid_frame("malformed")
                    self._logger.warning("Discarding frame without a type")
                    continue

                try:
                    self.handle_frame(envelope["type"], envelope.get("data"))
                except Exception as e:
                    self._logger.error(
                        "Error relaying inbound frame",
                        frame_type=envelope["type"],
                        error=str(e),
                        error_type=type(e).__name__,
                    )
        except ConnectionClosed as e:
            self._logger.info("Backend connection closed", reason=str(e))
        finally:
            if self._connection is connection:
                self._on_connection_lost()

    def _on_connection_lost(self) -> None:
        self._connection = None
        self._outbound = None
        if self._writer_task is not None:
            self._writer_task.cancel()
            self._writer_task = None
        self._reader_task = None

        orphaned = list(self._sessions)
        self._sessions.clear()
        for conversation_id in orphaned:
            failure = TransportError(
                conversation_id,
                "Connection to conversation backend lost",
                error_code="api_error",
                can_retry=True,
            )
            self._emit(RouterEventKind.ERROR, TransportFailure.from_error(failure))

        self._logger.warning(
            "Networked router disconnected", orphaned_conversations=len(orphaned)
        )

    def handle_frame(self, frame_type: str, data: Any) -> bool:
        """Validate one inbound frame and relay it as a router event.

        Args:
            frame_type: Envelope type
            data: Envelope payload

        Returns:
            True if the frame was relayed, False if it was dropped
        """
        try:
            frame = parse_frame(frame_type, data)
        except FrameValidationError as e:
            record_invalid_frame(frame_type)
            self._logger.warning(
                "Discarding invalid frame",
                frame_type=frame_type,
                errors=e.validation_errors,
            )
            return False

        session = self._sessions.get(frame.conversation_id)
        if session is None:
            self._logger.debug(
                "Dropping frame for inactive conversation",
                frame_type=frame_type,
                conversation_id=frame.conversation_id,
            )
            return False

        if not self._matches_request(session, frame):
            self._logger.debug(
                "Dropping frame from superseded request",
                frame_type=frame_type,
                conversation_id=frame.conversation_id,
                request_id=str(frame.request_id),
            )
            return False

        if isinstance(frame, StreamStartFrame):
            self._on_stream_start(session, frame)
        elif isinstance(frame, ChunkFrame):
            self._on_chunk(session, frame)
        elif isinstance(frame, StreamCompleteFrame):
            return self._on_stream_complete(session, frame)
        elif isinstance(frame, StreamErrorFrame):
            self._on_stream_error(session, frame)
        elif isinstance(frame, StreamCancelledFrame):
            self._on_cancelled(session, frame)
        return True

    @staticmethod
    def _matches_request(session: _Session, frame: InboundFrame) -> bool:
        request_id = str(frame.request_id)
        if request_id in session.finished_requests:
            return False
        if isinstance(frame, StreamStartFrame):
            return True
        # Until a stream starts, the first request id seen binds the turn
        return session.request_id is None or request_id == session.request_id

    def _partial(self, session: _Session, chunk_count: int, is_complete: bool) -> PartialMessage:
        return PartialMessage(
            conversation_id=session.conversation_id,
            request_id=session.request_id or "",
            accumulated_text=session.accumulated_text,
            chunk_count=chunk_count,
            is_complete=is_complete,
            sender_id=session.sender_id,
            sender_name=session.sender_name,
        )

    def _on_stream_start(self, session: _Session, frame: StreamStartFrame) -> None:
        session.request_id = str(frame.request_id)
        session.sender_id = frame.sender_id
        session.sender_name = frame.sender_name
        session.accumulated_text = ""

        self._emit(
            RouterEventKind.STREAMING,
            StreamingUpdate(
                session.conversation_id,
                self._partial(session, 0, False),
                status="typing",
            ),
        )

    def _on_chunk(self, session: _Session, frame: ChunkFrame) -> None:
        if session.request_id is None:
            session.request_id = str(frame.request_id)

        if frame.accumulated_text is not None:
            session.accumulated_text = frame.accumulated_text
        else:
            session.accumulated_text = (session.accumulated_text + frame.chunk)[:2000]

        self._emit(
            RouterEventKind.STREAMING,
            StreamingUpdate(
                session.conversation_id,
                self._partial(session, frame.chunk_index + 1, frame.is_complete),
                status="streaming",
            ),
        )

    def _on_stream_complete(self, session: _Session, frame: StreamCompleteFrame) -> bool:
        final = frame.final_message
        if frame.message_hash is not None:
            computed = message_hash(final.text)
            if computed != frame.message_hash.lower():
                error = MessageIntegrityError(
                    session.conversation_id, frame.message_hash, computed
                )
                record_invalid_frame("conversation:stream_complete")
                self._logger.warning("Discarding completed message", error=str(error))
                return False

        if not frame.success:
            self._sessions.pop(session.conversation_id, None)
            failure = TransportError(
                session.conversation_id,
                "Backend reported an unsuccessful generation",
                error_code="api_error",
            )
            self._emit(RouterEventKind.ERROR, TransportFailure.from_error(failure))
            return True

        message = Message(
            sender_id=final.sender_id,
            sender_name=final.sender_name,
            text=sanitize_message(final.text),
            timestamp=final.timestamp,
        )
        session.history.append(message)
        session.message_count += 1
        session.finished_requests.add(str(frame.request_id))
        session.request_id = None
        session.accumulated_text = ""

        self._emit(
            RouterEventKind.MESSAGE,
            MessageDelivered(conversation_id=session.conversation_id, message=message),
        )

        # A listener may have ended the conversation while handling the message
        if self._sessions.get(session.conversation_id) is not session:
            return True

        if session.message_count >= self.max_turns:
            self._sessions.pop(session.conversation_id, None)
            self._emit(
                RouterEventKind.COMPLETE,
                ConversationComplete(conversation_id=session.conversation_id),
            )
        else:
            session.turn = "agentB" if session.turn == "agentA" else "agentA"
            self._request_turn(session)
        return True

    def _on_stream_error(self, session: _Session, frame: StreamErrorFrame) -> None:
        self._sessions.pop(session.conversation_id, None)

        fallback = None
        if frame.fallback_message is not None:
            fallback = Message(
                sender_id=frame.fallback_message.sender_id,
                sender_name=frame.fallback_message.sender_name,
                text=sanitize_message(frame.fallback_message.text),
                timestamp=frame.fallback_message.timestamp,
            )

        failure = TransportError(
            session.conversation_id,
            sanitize_error(frame.error),
            error_code=frame.error_code,
            can_retry=frame.can_retry,
            retry_after=frame.retry_after,
            fallback_message=fallback,
        )
        self._logger.warning(
            "Backend reported generation error",
            conversation_id=session.conversation_id,
            error_code=frame.error_code,
            recovery_action=failure.recovery_action.value,
        )
        self._emit(RouterEventKind.ERROR, TransportFailure.from_error(failure))

    def _on_cancelled(self, session: _Session, frame: StreamCancelledFrame) -> None:
        self._sessions.pop(session.conversation_id, None)

        error_code = frame.reason if frame.reason in ("timeout", "rate_limit") else "unknown"
        failure = TransportError(
            session.conversation_id,
            f"Generation cancelled by backend: {frame.reason}",
            error_code=error_code,
            can_retry=frame.reason in RETRYABLE_CANCEL_REASONS,
        )
        self._emit(RouterEventKind.ERROR, TransportFailure.from_error(failure))
