"""Unit tests for the scripted router."""

import asyncio
import random

import pytest

from colloquy.adapters.router.base import RouterEventKind
from colloquy.adapters.router.simulated import (
    DEFAULT_SCRIPTS,
    Script,
    ScriptLine,
    SimulatedRouter,
)
from colloquy.schemas.models import Agent, Conversation, Participant, ParticipantRole
from colloquy.utils.errors import TransportError


def make_conversation(topic: str | None = None) -> Conversation:
    return Conversation(
        id="conv-1700000000000-sim",
        participants=(
            Participant(agent_id="a", display_name="Ada", role=ParticipantRole.INITIATOR),
            Participant(agent_id="b", display_name="Bob", role=ParticipantRole.RESPONDER),
        ),
        start_time=1.0,
        last_activity_time=1.0,
        topic=topic,
    )


AGENT_A = Agent(id="a", name="Ada")
AGENT_B = Agent(id="b", name="Bob")


def record(router: SimulatedRouter) -> list[tuple[RouterEventKind, object]]:
    events: list[tuple[RouterEventKind, object]] = []
    for kind in RouterEventKind:
        router.on(kind, lambda event, kind=kind: events.append((kind, event)))
    return events


async def wait_until_idle(router: SimulatedRouter, attempts: int = 1000) -> None:
    for _ in range(attempts):
        if not router.active_conversation_ids():
            return
        await asyncio.sleep(0)
    raise AssertionError("router did not finish")


def fast_router(*scripts: Script, **kwargs) -> SimulatedRouter:
    return SimulatedRouter(
        scripts=scripts or None,
        typing_interval_ms=0,
        message_pause_ms=0,
        start_delay_ms=0,
        **kwargs,
    )


class TestSimulatedStreaming:
    """Test the per-character reveal."""

    @pytest.mark.asyncio
    async def test_hi_round_trip(self):
        """A one-line "Hi" script streams typing, H, Hi, then the message."""
        router = fast_router(Script("Greeting", (ScriptLine(0, "Hi"),)))
        events = record(router)

        router.start_conversation(make_conversation(), AGENT_A, AGENT_B)
        await wait_until_idle(router)

        kinds = [kind for kind, _ in events]
        assert kinds == [
            RouterEventKind.STREAMING,
            RouterEventKind.STREAMING,
            RouterEventKind.STREAMING,
            RouterEventKind.MESSAGE,
            RouterEventKind.COMPLETE,
        ]

        typing, first, second = (event for _, event in events[:3])
        assert typing.status == "typing"
        assert typing.partial_message.accumulated_text == ""
        assert first.status == "streaming"
        assert first.partial_message.accumulated_text == "H"
        assert first.partial_message.is_complete is False
        assert second.partial_message.accumulated_text == "Hi"
        assert second.partial_message.is_complete is True

        message = events[3][1].message
        assert message.text == "Hi"
        assert message.sender_id == "a"
        assert message.sender_name == "Ada"

    @pytest.mark.asyncio
    async def test_senders_follow_script(self):
        router = fast_router(
            Script("Chat", (ScriptLine(0, "Yo"), ScriptLine(1, "Hey"), ScriptLine(0, "Bye")))
        )
        events = record(router)

        router.start_conversation(make_conversation(), AGENT_A, AGENT_B)
        await wait_until_idle(router)

        messages = [event.message for kind, event in events if kind == RouterEventKind.MESSAGE]
        assert [(m.sender_id, m.text) for m in messages] == [
            ("a", "Yo"),
            ("b", "Hey"),
            ("a", "Bye"),
        ]

    @pytest.mark.asyncio
    async def test_request_id_shared_within_line(self):
        router = fast_router(Script("Chat", (ScriptLine(0, "ab"), ScriptLine(1, "cd"))))
        events = record(router)

        router.start_conversation(make_conversation(), AGENT_A, AGENT_B)
        await wait_until_idle(router)

        request_ids = [
            event.partial_message.request_id
            for kind, event in events
            if kind == RouterEventKind.STREAMING
        ]
        assert len(set(request_ids[:3])) == 1
        assert len(set(request_ids[3:])) == 1
        assert request_ids[0] != request_ids[3]


class TestSimulatedScriptSelection:
    """Test topic handling."""

    def test_default_corpus(self):
        topics = [script.topic for script in DEFAULT_SCRIPTS]
        assert topics == [
            "Tech Talk",
            "Coffee Break",
            "Philosophy",
            "Project Planning",
            "Weekend Plans",
        ]

    @pytest.mark.asyncio
    async def test_topic_matches_script(self):
        router = fast_router()
        events = record(router)
        conversation = make_conversation(topic="coffee break")

        router.start_conversation(conversation, AGENT_A, AGENT_B)
        await wait_until_idle(router)

        first = next(event for kind, event in events if kind == RouterEventKind.MESSAGE)
        assert first.message.text == "Coffee machine is down."

    @pytest.mark.asyncio
    async def test_topic_assigned_from_script(self):
        router = fast_router(rng=random.Random(3))
        conversation = make_conversation()

        router.start_conversation(conversation, AGENT_A, AGENT_B)
        router.cancel_conversation(conversation.id)

        assert conversation.topic in {script.topic for script in DEFAULT_SCRIPTS}


class TestSimulatedCancellation:
    """Test cancellation and failure handling."""

    @pytest.mark.asyncio
    async def test_cancel_stops_events(self):
        router = SimulatedRouter(
            scripts=[Script("Long", (ScriptLine(0, "x" * 200),))],
            typing_interval_ms=5,
            message_pause_ms=0,
            start_delay_ms=0,
        )
        events = record(router)
        conversation = make_conversation()

        router.start_conversation(conversation, AGENT_A, AGENT_B)
        await asyncio.sleep(0.02)
        router.cancel_conversation(conversation.id)
        seen = len(events)
        await asyncio.sleep(0.03)

        assert len(events) == seen
        assert router.active_conversation_ids() == []
        assert all(kind == RouterEventKind.STREAMING for kind, _ in events)

    @pytest.mark.asyncio
    async def test_cancel_during_last_message_suppresses_complete(self):
        router = fast_router(Script("Short", (ScriptLine(0, "Hi"),)))
        events = record(router)
        conversation = make_conversation()
        router.on(
            RouterEventKind.MESSAGE,
            lambda event: router.cancel_conversation(event.conversation_id),
        )

        router.start_conversation(conversation, AGENT_A, AGENT_B)
        for _ in range(50):
            await asyncio.sleep(0)

        kinds = [kind for kind, _ in events]
        assert RouterEventKind.MESSAGE in kinds
        assert RouterEventKind.COMPLETE not in kinds

    def test_start_without_event_loop_raises_transport_error(self):
        router = fast_router()
        conversation = make_conversation()

        with pytest.raises(TransportError):
            router.start_conversation(conversation, AGENT_A, AGENT_B)

        assert router.active_conversation_ids() == []
        assert conversation.topic is None

    def test_cancel_unknown_is_safe(self):
        router = fast_router()
        router.cancel_conversation("conv-1-none")
        router.disconnect()

    @pytest.mark.asyncio
    async def test_listener_failure_becomes_error_event(self):
        router = fast_router(Script("Chat", (ScriptLine(0, "Hi"), ScriptLine(1, "Yo"))))
        errors = []

        def broken(event):
            raise RuntimeError("renderer crashed")

        router.on(RouterEventKind.MESSAGE, broken)
        router.on(RouterEventKind.ERROR, errors.append)

        router.start_conversation(make_conversation(), AGENT_A, AGENT_B)
        await wait_until_idle(router)

        assert len(errors) == 1
        assert errors[0].error == "renderer crashed"

    @pytest.mark.asyncio
    async def test_send_message_ignored(self):
        router = fast_router()
        router.send_message("conv-1-none", None)  # type: ignore[arg-type]
        assert router.active_conversation_ids() == []


class TestSimulatedValidation:
    """Test constructor validation."""

    def test_empty_corpus_rejected(self):
        with pytest.raises(ValueError):
            SimulatedRouter(scripts=[])

    def test_negative_timing_rejected(self):
        with pytest.raises(ValueError):
            SimulatedRouter(typing_interval_ms=-1)

    def test_is_simulated(self):
        assert SimulatedRouter().is_simulated
