"""End-to-end conversation runs through the scheduler and a real transport.

The simulated run uses the scripted router with zero typing delays. The
networked run starts a local WebSocket backend that answers every generation
request with a two-chunk stream.
"""

import asyncio
import uuid

import orjson
import pytest
import websockets

from colloquy.adapters.router import NetworkedRouter, SimulatedRouter
from colloquy.adapters.router.networked import message_hash
from colloquy.core.events import EventKind
from colloquy.core.orchestrator import Orchestrator, OrchestratorConfig
from colloquy.schemas.models import Agent, AgentState, ConversationStatus

pytestmark = pytest.mark.integration


class EventLog:
    """Collects every lifecycle event and signals when a conversation ends."""

    def __init__(self, orchestrator: Orchestrator):
        self.events: list[tuple[EventKind, object]] = []
        self.ended = asyncio.Event()
        for kind in EventKind:
            orchestrator.on(kind, lambda event, kind=kind: self._record(kind, event))

    def _record(self, kind: EventKind, event: object) -> None:
        self.events.append((kind, event))
        if kind == EventKind.CONVERSATION_ENDED:
            self.ended.set()

    def of(self, kind: EventKind) -> list:
        return [event for k, event in self.events if k == kind]


def register_pair(orchestrator: Orchestrator) -> None:
    orchestrator.register_agent(Agent(id="agent-1", name="Ada", job="Engineer"))
    orchestrator.register_agent(Agent(id="agent-2", name="Grace", bio="Finds bugs."))


class TestSimulatedConversation:
    """Run a scripted conversation from request to natural end."""

    @pytest.mark.asyncio
    async def test_runs_to_natural_end(self):
        router = SimulatedRouter(typing_interval_ms=0, message_pause_ms=0, start_delay_ms=0)
        orchestrator = Orchestrator(
            config=OrchestratorConfig(process_interval_ms=1), router=router
        )
        log = EventLog(orchestrator)
        register_pair(orchestrator)

        conversation_id = orchestrator.request_conversation(
            "agent-1", "agent-2", user_initiated=True
        )
        assert conversation_id is not None

        orchestrator.start()
        try:
            await asyncio.wait_for(log.ended.wait(), timeout=10)
        finally:
            await orchestrator.shutdown()

        ended = log.of(EventKind.CONVERSATION_ENDED)[0]
        assert ended.conversation_id == conversation_id
        assert ended.reason == "natural_end"
        assert ended.status == ConversationStatus.COMPLETED

        messages = log.of(EventKind.MESSAGE_RECEIVED)
        assert len(messages) == ended.message_count > 0
        assert {m.message.sender_id for m in messages} == {"agent-1", "agent-2"}

        created = log.of(EventKind.CONVERSATION_CREATED)[0]
        assert created.priority == 3

        for agent_id in ("agent-1", "agent-2"):
            agent = orchestrator.get_agent(agent_id)
            assert agent.state == AgentState.IDLE
            assert agent.conversation_partner_id is None

        conversation = orchestrator.get_conversation(conversation_id)
        assert conversation.topic
        assert conversation.partial_message is None


async def backend(connection) -> None:
    """Answer each generation request with a two-chunk stream."""
    async for raw in connection:
        envelope = orjson.loads(raw)
        if envelope["type"] != "conversation:generate":
            continue

        request = envelope["data"]
        speaker = request["agentA"] if request["turn"] == "agentA" else request["agentB"]
        text = f"Turn {request['messageCount'] + 1} from {speaker['name']}"
        request_id = str(uuid.uuid4())
        base = {"conversationId": request["conversationId"], "requestId": request_id}

        frames = [
            (
                "conversation:stream_start",
                {**base, "senderId": speaker["id"], "senderName": speaker["name"]},
            ),
            (
                "conversation:chunk",
                {**base, "chunk": text[:4], "chunkIndex": 0, "isComplete": False},
            ),
            (
                "conversation:chunk",
                {**base, "chunk": text[4:], "chunkIndex": 1, "isComplete": True},
            ),
            (
                "conversation:stream_complete",
                {
                    **base,
                    "finalMessage": {
                        "senderId": speaker["id"],
                        "senderName": speaker["name"],
                        "text": text,
                        "timestamp": request["timestamp"] + 1,
                    },
                    "success": True,
                    "totalChunks": 2,
                    "messageHash": message_hash(text),
                },
            ),
        ]
        for frame_type, data in frames:
            await connection.send(orjson.dumps({"type": frame_type, "data": data}).decode())


class TestNetworkedConversation:
    """Run a conversation against a local WebSocket backend."""

    @pytest.mark.asyncio
    async def test_runs_to_natural_end(self):
        server = await websockets.serve(backend, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]

        router = NetworkedRouter(max_turns=3)
        await router.connect(f"ws://127.0.0.1:{port}")
        orchestrator = Orchestrator(
            config=OrchestratorConfig(process_interval_ms=1), router=router
        )
        log = EventLog(orchestrator)
        register_pair(orchestrator)

        try:
            conversation_id = orchestrator.request_conversation("agent-1", "agent-2")
            orchestrator.start()
            await asyncio.wait_for(log.ended.wait(), timeout=10)
        finally:
            await orchestrator.shutdown()
            server.close()
            await server.wait_closed()

        ended = log.of(EventKind.CONVERSATION_ENDED)[0]
        assert ended.conversation_id == conversation_id
        assert ended.reason == "natural_end"
        assert ended.message_count == 3

        texts = [m.message.text for m in log.of(EventKind.MESSAGE_RECEIVED)]
        assert texts == [
            "Turn 1 from Ada",
            "Turn 2 from Grace",
            "Turn 3 from Ada",
        ]

        conversation = orchestrator.get_conversation(conversation_id)
        assert conversation.is_simulated is False
        assert orchestrator.get_agent("agent-2").last_message == "Turn 3 from Ada"
        assert not router.is_connected
