"""Unit tests for the conversation store.

Covers membership queries, staleness detection and the retention purge.
"""

import pytest

from colloquy.core.store import ConversationStore
from colloquy.schemas.models import (
    Conversation,
    ConversationStatus,
    Message,
    Participant,
    ParticipantRole,
)
from colloquy.utils.timing import ManualClock

MINUTE_MS = 60_000


def make_conversation(
    conversation_id: str,
    clock: ManualClock,
    first: str = "a",
    second: str = "b",
    status: ConversationStatus = ConversationStatus.INITIALIZING,
) -> Conversation:
    now = clock()
    return Conversation(
        id=conversation_id,
        participants=(
            Participant(agent_id=first, display_name=first, role=ParticipantRole.INITIATOR),
            Participant(agent_id=second, display_name=second, role=ParticipantRole.RESPONDER),
        ),
        status=status,
        start_time=now,
        last_activity_time=now,
    )


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store(clock: ManualClock) -> ConversationStore:
    return ConversationStore(timeout_ms=MINUTE_MS, clock=clock)


class TestConversationStoreBasics:
    """Test lookup and membership."""

    def test_add_get_remove(self, store, clock):
        conv = make_conversation("c1", clock)
        store.add(conv)

        assert store.get("c1") is conv
        assert store.has("c1")
        assert "c1" in store
        assert store.remove("c1") is True
        assert store.remove("c1") is False
        assert store.get("c1") is None

    def test_active_and_pending_counts(self, store, clock):
        store.add(make_conversation("queued", clock))
        store.add(make_conversation("gen", clock, status=ConversationStatus.GENERATING))
        store.add(make_conversation("str", clock, status=ConversationStatus.STREAMING))
        store.add(make_conversation("done", clock, status=ConversationStatus.COMPLETED))
        store.add(make_conversation("failed", clock, status=ConversationStatus.ERROR))

        assert store.get_active_count() == 2
        assert store.get_pending_count() == 1
        assert len(store) == 5

    def test_conversations_for_agent_excludes_terminal(self, store, clock):
        store.add(make_conversation("live", clock, "a", "b"))
        store.add(
            make_conversation("old", clock, "a", "c", status=ConversationStatus.COMPLETED)
        )
        store.add(make_conversation("other", clock, "c", "d"))

        ids = [conv.id for conv in store.get_conversations_for_agent("a")]
        assert ids == ["live"]

    def test_recent_sorted_by_activity(self, store, clock):
        first = make_conversation("first", clock)
        store.add(first)
        clock.advance(10)
        store.add(make_conversation("second", clock))
        clock.advance(10)
        first.touch(clock())

        assert [conv.id for conv in store.get_recent(limit=1)] == ["first"]
        assert [conv.id for conv in store.get_recent()] == ["first", "second"]


class TestConversationStoreCleanup:
    """Test staleness detection."""

    def test_cleanup_flags_stale_non_terminal(self, store, clock):
        store.add(make_conversation("stale", clock, status=ConversationStatus.STREAMING))
        store.add(make_conversation("done", clock, status=ConversationStatus.COMPLETED))
        clock.advance(MINUTE_MS + 1)
        store.add(make_conversation("fresh", clock, "c", "d"))

        stale = store.cleanup()

        assert stale == ["stale"]
        assert store.get("stale").status == ConversationStatus.ERROR
        assert store.get("done").status == ConversationStatus.COMPLETED
        assert store.get("fresh").status == ConversationStatus.INITIALIZING

    def test_cleanup_at_exact_timeout_is_not_stale(self, store, clock):
        store.add(make_conversation("c1", clock))
        clock.advance(MINUTE_MS)

        assert store.cleanup() == []

    def test_cleanup_reports_each_id_once(self, store, clock):
        store.add(make_conversation("c1", clock))
        clock.advance(MINUTE_MS + 1)

        assert store.cleanup() == ["c1"]
        assert store.cleanup() == []


class TestConversationStoreRetention:
    """Test the retention purge."""

    def test_completed_retained_at_four_minutes_purged_at_six(self, store, clock):
        store.add(make_conversation("c1", clock, status=ConversationStatus.COMPLETED))

        clock.advance(4 * MINUTE_MS)
        assert store.purge_old(300_000) == 0
        assert store.get("c1") is not None

        clock.advance(2 * MINUTE_MS)
        assert store.purge_old(300_000) == 1
        assert store.get("c1") is None

    def test_non_terminal_never_purged(self, store, clock):
        store.add(make_conversation("c1", clock, status=ConversationStatus.STREAMING))

        clock.advance(10 * MINUTE_MS)

        assert store.purge_old(300_000) == 0
        assert store.get("c1") is not None


class TestConversationStoreStats:
    """Test statistics."""

    def test_averages_over_completed_only(self, store, clock):
        completed = make_conversation("c1", clock, status=ConversationStatus.COMPLETED)
        completed.messages.append(
            Message(sender_id="a", sender_name="a", text="hi", timestamp=clock())
        )
        completed.messages.append(
            Message(sender_id="b", sender_name="b", text="hey", timestamp=clock())
        )
        completed.last_activity_time += 4000

        errored = make_conversation("c2", clock, status=ConversationStatus.ERROR)
        errored.last_activity_time += 99_000

        store.add(completed)
        store.add(errored)
        store.add(make_conversation("c3", clock, status=ConversationStatus.GENERATING))

        stats = store.get_stats()
        assert stats["total"] == 3
        assert stats["active"] == 1
        assert stats["queued"] == 0
        assert stats["completed"] == 1
        assert stats["errored"] == 1
        assert stats["avg_duration_ms"] == 4000
        assert stats["avg_message_count"] == 2

    def test_empty_stats(self, store):
        stats = store.get_stats()
        assert stats["total"] == 0
        assert stats["avg_duration_ms"] == 0.0
        assert stats["avg_message_count"] == 0.0
