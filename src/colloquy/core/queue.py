"""Priority queue for conversations awaiting a scheduling slot.

Ordering is a stable priority order: higher priority dequeues first and
entries sharing a priority (a priority band) leave in insertion order.
"""

from typing import Any

from colloquy.schemas.models import Conversation, QueuedConversation
from colloquy.utils.telemetry import get_logger
from colloquy.utils.timing import Clock, now_ms

DEFAULT_PRIORITY = 2


class ConversationQueue:
    """Stable priority queue of pending conversations.

    Insertion scans for the first entry with strictly lower priority and
    inserts in front of it, so a new entry lands behind everything of equal or
    higher priority. Operations on ids that are not queued are no-ops.
    """

    def __init__(self, clock: Clock | None = None):
        """Initialize an empty queue.

        Args:
            clock: Millisecond clock used for wait-time accounting
        """
        self._clock = clock or now_ms
        self._queue: list[QueuedConversation] = []

        self._total_enqueued = 0
        self._total_dequeued = 0
        self._logger = get_logger("colloquy.queue")

    def enqueue(
        self, conversation: Conversation, priority: int = DEFAULT_PRIORITY
    ) -> None:
        """Add a conversation behind all entries of equal or higher priority.

        Args:
            conversation: Conversation to queue
            priority: Priority level (higher = more important)
        """
        item = QueuedConversation(
            conversation=conversation,
            priority=priority,
            queued_at=self._clock(),
        )
        self._insert(item)
        self._total_enqueued += 1

        self._logger.debug(
            "Conversation enqueued",
            conversation_id=conversation.id,
            priority=priority,
            position=self.get_position(conversation.id),
        )

    def _insert(self, item: QueuedConversation) -> None:
        insert_index = next(
            (
                index
                for index, queued in enumerate(self._queue)
                if queued.priority < item.priority
            ),
            len(self._queue),
        )
        self._queue.insert(insert_index, item)

    def dequeue(self) -> Conversation | None:
        """Remove and return the highest priority conversation.

        Returns:
            Next conversation, or None if the queue is empty
        """
        if not self._queue:
            return None

        item = self._queue.pop(0)
        self._total_dequeued += 1
        return item.conversation

    def peek(self) -> Conversation | None:
        """Return the next conversation without removing it."""
        return self._queue[0].conversation if self._queue else None

    def remove(self, conversation_id: str) -> bool:
        """Remove a specific conversation from the queue.

        Args:
            conversation_id: Conversation to remove

        Returns:
            True if the conversation was queued and has been removed
        """
        index = self._index_of(conversation_id)
        if index == -1:
            return False

        del self._queue[index]
        return True

    def boost_priority(self, conversation_id: str, boost: int = 1) -> bool:
        """Raise a queued conversation's priority.

        The entry is removed and reinserted, so it joins the back of its new
        priority band.

        Args:
            conversation_id: Conversation to boost
            boost: Amount added to the current priority

        Returns:
            True if the conversation was queued
        """
        index = self._index_of(conversation_id)
        if index == -1:
            return False

        item = self._queue.pop(index)
        item.priority += boost
        self._insert(item)

        self._logger.debug(
            "Conversation priority boosted",
            conversation_id=conversation_id,
            priority=item.priority,
        )
        return True

    def size(self) -> int:
        """Number of queued conversations."""
        return len(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def __contains__(self, conversation_id: object) -> bool:
        return self._index_of(str(conversation_id)) != -1

    def is_empty(self) -> bool:
        """Check if the queue is empty."""
        return not self._queue

    def clear(self) -> int:
        """Drop every queued conversation.

        Returns:
            Number of conversations dropped
        """
        dropped = len(self._queue)
        self._queue.clear()
        return dropped

    def get_all(self) -> list[QueuedConversation]:
        """Snapshot of queued entries in dequeue order."""
        return list(self._queue)

    def get_position(self, conversation_id: str) -> int:
        """Get 1-indexed queue position, or -1 if not queued."""
        index = self._index_of(conversation_id)
        return index + 1 if index != -1 else -1

    def get_wait_time(self, conversation_id: str) -> float:
        """Get milliseconds a conversation has been queued, or 0 if not queued."""
        index = self._index_of(conversation_id)
        if index == -1:
            return 0
        return self._clock() - self._queue[index].queued_at

    def get_stats(self) -> dict[str, Any]:
        """Get queue statistics.

        Returns:
            Dictionary with queue statistics
        """
        priority_depths: dict[int, int] = {}
        for item in self._queue:
            priority_depths[item.priority] = priority_depths.get(item.priority, 0) + 1

        return {
            "total_enqueued": self._total_enqueued,
            "total_dequeued": self._total_dequeued,
            "queue_depth": len(self._queue),
            "priority_depths": priority_depths,
        }

    def _index_of(self, conversation_id: str) -> int:
        for index, item in enumerate(self._queue):
            if item.conversation.id == conversation_id:
                return index
        return -1
