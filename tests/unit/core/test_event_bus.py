"""Unit tests for the lifecycle event feed."""

import pytest

from colloquy.core.events import (
    AgentBusy,
    EventBus,
    EventKind,
    QueueUpdated,
)


class TestEventBus:
    """Test subscription and delivery."""

    def test_delivery_in_registration_order(self):
        bus = EventBus()
        calls = []

        bus.subscribe(EventKind.QUEUE_UPDATED, lambda e: calls.append(("first", e.queue_length)))
        bus.on("queue:updated", lambda e: calls.append(("second", e.queue_length)))

        bus.publish(EventKind.QUEUE_UPDATED, QueueUpdated(queue_length=3))

        assert calls == [("first", 3), ("second", 3)]

    def test_unsubscribe(self):
        bus = EventBus()
        calls = []

        def callback(event):
            calls.append(event)

        bus.subscribe(EventKind.AGENT_BUSY, callback)
        assert bus.subscriber_count(EventKind.AGENT_BUSY) == 1
        assert bus.off(EventKind.AGENT_BUSY, callback) is True
        assert bus.unsubscribe(EventKind.AGENT_BUSY, callback) is False

        bus.publish(EventKind.AGENT_BUSY, AgentBusy(agent_id="a", reason="not_found"))
        assert calls == []

    def test_failing_subscriber_does_not_stop_delivery(self):
        bus = EventBus()
        calls = []

        def broken(event):
            raise RuntimeError("subscriber bug")

        bus.subscribe(EventKind.QUEUE_UPDATED, broken)
        bus.subscribe(EventKind.QUEUE_UPDATED, lambda e: calls.append(e.queue_length))

        bus.publish(EventKind.QUEUE_UPDATED, QueueUpdated(queue_length=1))

        assert calls == [1]

    def test_subscriber_may_unsubscribe_during_delivery(self):
        bus = EventBus()
        calls = []

        def once(event):
            calls.append("once")
            bus.unsubscribe(EventKind.QUEUE_UPDATED, once)

        bus.subscribe(EventKind.QUEUE_UPDATED, once)
        bus.subscribe(EventKind.QUEUE_UPDATED, lambda e: calls.append("always"))

        bus.publish(EventKind.QUEUE_UPDATED, QueueUpdated(queue_length=0))
        bus.publish(EventKind.QUEUE_UPDATED, QueueUpdated(queue_length=0))

        assert calls == ["once", "always", "always"]

    def test_payload_type_is_checked(self):
        bus = EventBus()

        with pytest.raises(TypeError):
            bus.publish(EventKind.QUEUE_UPDATED, AgentBusy(agent_id="a", reason="x"))

    def test_unknown_kind_rejected(self):
        bus = EventBus()

        with pytest.raises(ValueError):
            bus.subscribe("conversation:exploded", lambda e: None)

    def test_clear(self):
        bus = EventBus()
        bus.subscribe(EventKind.QUEUE_UPDATED, lambda e: None)
        bus.clear()

        assert bus.subscriber_count(EventKind.QUEUE_UPDATED) == 0
