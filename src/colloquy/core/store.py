"""Authoritative in-memory table of conversations.

The store is a passive data structure: ``cleanup`` flags stale conversations
and hands their ids back, leaving agent release and transport cancellation to
the orchestrator.
"""

from typing import Any

from colloquy.schemas.models import Conversation, ConversationStatus
from colloquy.utils.telemetry import get_logger
from colloquy.utils.timing import Clock, now_ms

DEFAULT_TIMEOUT_MS = 60_000.0
DEFAULT_RETENTION_MS = 300_000.0

RUNNING_STATUSES = frozenset(
    {ConversationStatus.GENERATING, ConversationStatus.STREAMING}
)


class ConversationStore:
    """Lookup, membership and retention for every tracked conversation."""

    def __init__(
        self, timeout_ms: float = DEFAULT_TIMEOUT_MS, clock: Clock | None = None
    ):
        """Initialize an empty store.

        Args:
            timeout_ms: Inactivity after which a live conversation is stale
            clock: Millisecond clock used for staleness and retention
        """
        self.timeout_ms = timeout_ms
        self._clock = clock or now_ms
        self._conversations: dict[str, Conversation] = {}
        self._logger = get_logger("colloquy.store")

    def add(self, conversation: Conversation) -> None:
        """Insert or replace a conversation by id."""
        self._conversations[conversation.id] = conversation

    def get(self, conversation_id: str) -> Conversation | None:
        """Look up a conversation by id."""
        return self._conversations.get(conversation_id)

    def remove(self, conversation_id: str) -> bool:
        """Delete a conversation.

        Returns:
            True if the conversation existed
        """
        return self._conversations.pop(conversation_id, None) is not None

    def has(self, conversation_id: str) -> bool:
        """Check if a conversation exists."""
        return conversation_id in self._conversations

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._conversations

    def __len__(self) -> int:
        return len(self._conversations)

    def get_all(self) -> list[Conversation]:
        """All conversations in insertion order."""
        return list(self._conversations.values())

    def get_active_count(self) -> int:
        """Count conversations holding a scheduling slot (generating or streaming).

        Queued ``initializing`` records are not counted here, only in
        ``get_pending_count``. Counting them would let queued requests fill
        every slot so that nothing is ever promoted.
        """
        return sum(
            1
            for conv in self._conversations.values()
            if conv.status in RUNNING_STATUSES
        )

    def get_pending_count(self) -> int:
        """Count admitted conversations still waiting to be promoted."""
        return sum(
            1
            for conv in self._conversations.values()
            if conv.status == ConversationStatus.INITIALIZING
        )

    def get_conversations_for_agent(self, agent_id: str) -> list[Conversation]:
        """Non-terminal conversations (pending or running) involving an agent."""
        return [
            conv
            for conv in self._conversations.values()
            if conv.involves(agent_id) and not conv.is_terminal
        ]

    def get_recent(self, limit: int = 10) -> list[Conversation]:
        """Most recently active conversations, newest first."""
        ordered = sorted(
            self._conversations.values(),
            key=lambda conv: conv.last_activity_time,
            reverse=True,
        )
        return ordered[:limit]

    def cleanup(self) -> list[str]:
        """Flag live conversations that have been inactive past the timeout.

        Each stale conversation is set to ``error``; nothing else is touched.

        Returns:
            Ids of the conversations flagged by this call
        """
        now = self._clock()
        stale_ids: list[str] = []

        for conversation_id, conv in self._conversations.items():
            if conv.is_terminal:
                continue
            if now - conv.last_activity_time > self.timeout_ms:
                conv.status = ConversationStatus.ERROR
                stale_ids.append(conversation_id)

        if stale_ids:
            self._logger.info(
                "Stale conversations flagged",
                count=len(stale_ids),
                conversation_ids=stale_ids,
                timeout_ms=self.timeout_ms,
            )

        return stale_ids

    def purge_old(self, max_age_ms: float = DEFAULT_RETENTION_MS) -> int:
        """Delete terminal conversations inactive for longer than ``max_age_ms``.

        Non-terminal conversations are never deleted, however old.

        Returns:
            Number of conversations purged
        """
        now = self._clock()
        expired = [
            conversation_id
            for conversation_id, conv in self._conversations.items()
            if conv.is_terminal and now - conv.last_activity_time > max_age_ms
        ]

        for conversation_id in expired:
            del self._conversations[conversation_id]

        if expired:
            self._logger.debug(
                "Terminal conversations purged",
                count=len(expired),
                max_age_ms=max_age_ms,
            )

        return len(expired)

    def get_stats(self) -> dict[str, Any]:
        """Get conversation statistics.

        Averages are computed over completed conversations only.

        Returns:
            Dictionary with counts and averages
        """
        conversations = list(self._conversations.values())
        completed = [
            conv
            for conv in conversations
            if conv.status == ConversationStatus.COMPLETED
        ]
        errored = [
            conv for conv in conversations if conv.status == ConversationStatus.ERROR
        ]

        avg_duration = (
            sum(conv.duration_ms() for conv in completed) / len(completed)
            if completed
            else 0.0
        )
        avg_message_count = (
            sum(len(conv.messages) for conv in completed) / len(completed)
            if completed
            else 0.0
        )

        return {
            "total": len(conversations),
            "active": self.get_active_count(),
            "queued": self.get_pending_count(),
            "completed": len(completed),
            "errored": len(errored),
            "avg_duration_ms": avg_duration,
            "avg_message_count": avg_message_count,
        }

    def clear(self) -> None:
        """Remove every conversation."""
        self._conversations.clear()
