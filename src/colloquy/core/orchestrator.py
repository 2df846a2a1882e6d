"""Core orchestrator for pairwise agent conversations.

This module provides the central Orchestrator class. It admits conversation
requests, queues them by priority, promotes them into running slots on a
periodic scheduling tick, relays transport events into conversation and agent
state, and retires conversations that finish, fail or go stale.

All state is owned by the event loop the orchestrator runs on. Public methods
are synchronous and never raise for admission, transport or staleness
failures; those outcomes are reported through the event feed.
"""

import asyncio
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from colloquy.adapters.router.base import (
    BaseRouter,
    ConversationComplete,
    MessageDelivered,
    RouterEventKind,
    StreamingUpdate,
    TransportFailure,
)
from colloquy.adapters.router.simulated import SimulatedRouter
from colloquy.core.events import (
    AgentAvailable,
    AgentBusy,
    ConversationCreated,
    ConversationEnded,
    ConversationFailed,
    ConversationUpdated,
    EventBus,
    EventCallback,
    EventKind,
    MessageReceived,
    QueueUpdated,
)
from colloquy.core.queue import ConversationQueue
from colloquy.core.store import ConversationStore
from colloquy.schemas.models import (
    Agent,
    AgentState,
    Conversation,
    ConversationStatus,
    Message,
    Participant,
    ParticipantRole,
)
from colloquy.utils.errors import OrchestrationError, RecoveryAction
from colloquy.utils.telemetry import (
    get_logger,
    get_tracer,
    record_admission,
    record_admission_rejection,
    record_conversation_ended,
    sanitize_error,
    update_scheduler_gauges,
)
from colloquy.utils.timing import Clock, now_ms

# Written only by the orchestrator while it links and releases agents
PROTECTED_AGENT_FIELDS = frozenset(
    {"id", "conversation_partner_id", "active_conversation", "last_message"}
)

PRIORITY_LEVELS = {"low": 1, "normal": 2, "high": 3}

# End reasons that leave the conversation in the error state
ERROR_REASONS = frozenset({"timeout", "error", "agents_unavailable"})


class OrchestratorConfig:
    """Configuration for the Orchestrator."""

    def __init__(
        self,
        max_concurrent_conversations: int = 10,
        max_conversations_per_agent: int = 1,
        conversation_timeout_ms: float = 60_000.0,
        enable_simulated_mode: bool = True,
        priority_boost_for_user_initiated: bool = True,
        process_interval_ms: float = 100.0,
        retention_ms: float = 300_000.0,
        transcript_limit: int = 20,
        requeue_priority: int = 2,
    ):
        """Initialize orchestrator configuration.

        Args:
            max_concurrent_conversations: Running conversations allowed at once
            max_conversations_per_agent: Pending or running conversations per agent
            conversation_timeout_ms: Inactivity before a conversation is stale
            enable_simulated_mode: Use the scripted router when none is supplied
            priority_boost_for_user_initiated: Add one priority level for user requests
            process_interval_ms: Interval between scheduling ticks
            retention_ms: How long finished conversations are kept
            transcript_limit: Messages kept in each agent's transcript
            requeue_priority: Priority used when a promotion is deferred
        """
        self.max_concurrent_conversations = max_concurrent_conversations
        self.max_conversations_per_agent = max_conversations_per_agent
        self.conversation_timeout_ms = conversation_timeout_ms
        self.enable_simulated_mode = enable_simulated_mode
        self.priority_boost_for_user_initiated = priority_boost_for_user_initiated
        self.process_interval_ms = process_interval_ms
        self.retention_ms = retention_ms
        self.transcript_limit = transcript_limit
        self.requeue_priority = requeue_priority

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping of every setting."""
        return dict(vars(self))


class Orchestrator:
    """Admission, scheduling and lifecycle management for conversations.

    Collaborators register agents, request conversations and subscribe to
    lifecycle events. A background tick (``start``) promotes queued
    conversations as slots free up and retires stale ones; ``process_queue``
    runs a single tick directly.
    """

    def __init__(
        self,
        config: OrchestratorConfig | None = None,
        router: BaseRouter | None = None,
        clock: Clock | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            config: Orchestrator configuration
            router: Transport producing dialogue; defaults to a simulated router
            clock: Millisecond clock shared with the store and queue

        Raises:
            ValueError: If no router is given and simulated mode is disabled
        """
        self.config = config or OrchestratorConfig()
        self._clock = clock or now_ms

        self.store = ConversationStore(
            timeout_ms=self.config.conversation_timeout_ms, clock=self._clock
        )
        self.queue = ConversationQueue(clock=self._clock)
        self.events = EventBus()
        self.agents: dict[str, Agent] = {}

        self._logger = get_logger("colloquy.orchestrator")
        self._tracer = get_tracer("colloquy.orchestrator")
        self._loop_task: asyncio.Task[None] | None = None

        self._router: BaseRouter | None = None
        self._router_handlers = {
            RouterEventKind.STREAMING: self._on_router_streaming,
            RouterEventKind.MESSAGE: self._on_router_message,
            RouterEventKind.COMPLETE: self._on_router_complete,
            RouterEventKind.ERROR: self._on_router_error,
        }

        if router is None:
            if not self.config.enable_simulated_mode:
                raise ValueError("A router is required when simulated mode is disabled")
            router = SimulatedRouter(clock=self._clock)
        self.set_transport(router)

    # --- Event feed ---

    def subscribe(self, kind: EventKind | str, callback: EventCallback) -> None:
        """Register a callback for a lifecycle event kind."""
        self.events.subscribe(kind, callback)

    def unsubscribe(self, kind: EventKind | str, callback: EventCallback) -> bool:
        """Remove a lifecycle event callback."""
        return self.events.unsubscribe(kind, callback)

    on = subscribe
    off = unsubscribe

    # --- Transport ---

    @property
    def router(self) -> BaseRouter:
        """The transport currently producing dialogue."""
        assert self._router is not None
        return self._router

    def set_transport(self, router: BaseRouter) -> None:
        """Switch to a different transport.

        Listeners are moved to the new router. Conversations running on the
        previous router are cancelled there and ended with reason ``error``.

        Args:
            router: Transport to use from now on
        """
        previous = self._router
        if previous is router:
            return

        if previous is not None:
            for kind, handler in self._router_handlers.items():
                previous.off(kind, handler)
            orphaned = previous.active_conversation_ids()
            previous.disconnect()
            for conversation_id in orphaned:
                self._end(conversation_id, "error")

        for kind, handler in self._router_handlers.items():
            router.on(kind, handler)
        self._router = router

        self._logger.info(
            "Transport attached",
            mode=router.mode.value,
            previous_mode=previous.mode.value if previous else None,
        )

    # --- Agent boundary ---

    def register_agent(self, agent: Agent | Mapping[str, Any]) -> Agent:
        """Add or replace an agent record.

        Args:
            agent: Agent model, or a mapping validated into one

        Returns:
            The registered agent
        """
        if not isinstance(agent, Agent):
            agent = Agent.model_validate(agent)

        self.agents[agent.id] = agent
        self._logger.info("Agent registered", agent_id=agent.id, name=agent.name)
        self.events.publish(
            EventKind.AGENT_AVAILABLE, AgentAvailable(agent_id=agent.id, agent=agent)
        )
        return agent

    def update_agent(
        self,
        agent_id: str,
        changes: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> Agent | None:
        """Apply attribute changes to a registered agent.

        Keys in ``PROTECTED_AGENT_FIELDS`` are ignored.

        Args:
            agent_id: Agent to update
            changes: Attribute values to set
            **kwargs: Further attribute values

        Returns:
            The updated agent, or None if it is not registered
        """
        agent = self.agents.get(agent_id)
        if agent is None:
            return None

        updates = {**(changes or {}), **kwargs}
        ignored = sorted(key for key in updates if key in PROTECTED_AGENT_FIELDS)
        if ignored:
            self._logger.debug(
                "Ignoring orchestrator-owned agent fields",
                agent_id=agent_id,
                fields=ignored,
            )
            for key in ignored:
                del updates[key]
        if "state" in updates:
            updates["state"] = AgentState(updates["state"])

        for key, value in updates.items():
            setattr(agent, key, value)
        return agent

    def unregister_agent(self, agent_id: str) -> bool:
        """Remove an agent, ending every conversation it takes part in.

        Returns:
            True if the agent was registered
        """
        for conversation in self.store.get_conversations_for_agent(agent_id):
            self._end(conversation.id, "agent_left")

        agent = self.agents.pop(agent_id, None)
        if agent is not None:
            self._logger.info("Agent unregistered", agent_id=agent_id)
        return agent is not None

    def sync_agents(self, agents: Mapping[str, Agent] | Iterable[Agent]) -> None:
        """Replace the agent table with the collaborator's current set.

        Agents missing from ``agents`` are unregistered; new ones are
        registered; known ids take the supplied record.
        """
        incoming = dict(agents) if isinstance(agents, Mapping) else {a.id: a for a in agents}

        for agent_id in [a for a in self.agents if a not in incoming]:
            self.unregister_agent(agent_id)

        for agent_id, agent in incoming.items():
            if agent_id in self.agents:
                self.agents[agent_id] = agent
            else:
                self.register_agent(agent)

    def get_agent(self, agent_id: str) -> Agent | None:
        return self.agents.get(agent_id)

    def is_agent_available(self, agent_id: str, exclude: str | None = None) -> bool:
        """Check whether an agent can take part in another conversation.

        An agent is available when it is idle and its pending plus running
        conversations are below ``max_conversations_per_agent``.

        Args:
            agent_id: Agent to check
            exclude: Conversation id to leave out of the count

        Returns:
            True if the agent is available
        """
        agent = self.agents.get(agent_id)
        if agent is None or agent.state != AgentState.IDLE:
            return False

        held = [
            conv
            for conv in self.store.get_conversations_for_agent(agent_id)
            if conv.id != exclude
        ]
        return len(held) < self.config.max_conversations_per_agent

    # --- Admission and retirement ---

    def request_conversation(
        self,
        initiator_id: str,
        target_id: str,
        topic: str | None = None,
        priority: str | int = "normal",
        user_initiated: bool = False,
    ) -> str | None:
        """Ask for a conversation between two agents.

        Args:
            initiator_id: Agent starting the conversation
            target_id: Agent being addressed
            topic: Optional topic hint for the transport
            priority: ``low``, ``normal``, ``high`` or a numeric priority
            user_initiated: Whether a user triggered the request

        Returns:
            The new conversation id, or None if the request was rejected
        """
        if initiator_id == target_id:
            self._reject(initiator_id, "same_agent")
            return None

        for agent_id in (initiator_id, target_id):
            if agent_id not in self.agents:
                self._reject(agent_id, "not_found")
                return None

        for agent_id in (initiator_id, target_id):
            if not self.is_agent_available(agent_id):
                self._reject(agent_id, "already_chatting")
                return None

        initiator = self.agents[initiator_id]
        target = self.agents[target_id]
        level = self._resolve_priority(priority)
        if user_initiated and self.config.priority_boost_for_user_initiated:
            level += 1

        now = self._clock()
        conversation = Conversation(
            id=f"conv-{int(now)}-{uuid.uuid4().hex[:9]}",
            participants=(
                Participant(
                    agent_id=initiator.id,
                    display_name=initiator.display_name,
                    role=ParticipantRole.INITIATOR,
                ),
                Participant(
                    agent_id=target.id,
                    display_name=target.display_name,
                    role=ParticipantRole.RESPONDER,
                ),
            ),
            start_time=now,
            last_activity_time=now,
            topic=topic,
            is_simulated=self.router.is_simulated,
        )

        self.store.add(conversation)
        self.queue.enqueue(conversation, level)
        record_admission(level)
        self._update_gauges()

        self._logger.info(
            "Conversation admitted",
            conversation_id=conversation.id,
            initiator_id=initiator_id,
            target_id=target_id,
            priority=level,
            queue_length=len(self.queue),
        )

        self.events.publish(
            EventKind.CONVERSATION_CREATED,
            ConversationCreated(conversation=conversation, priority=level),
        )
        self.events.publish(
            EventKind.QUEUE_UPDATED, QueueUpdated(queue_length=len(self.queue))
        )
        return conversation.id

    def end_conversation(self, conversation_id: str, reason: str = "completed") -> bool:
        """End a conversation and release its agents.

        Ending an unknown or already finished conversation does nothing.

        Args:
            conversation_id: Conversation to end
            reason: Why it ended; ``timeout``, ``error`` and
                ``agents_unavailable`` leave it in the error state

        Returns:
            True if this call ended the conversation
        """
        return self._end(conversation_id, reason)

    def send_message(self, conversation_id: str, message: Message) -> bool:
        """Inject a message into a running conversation through the transport.

        Returns:
            True if the message was handed to the transport
        """
        conversation = self.store.get(conversation_id)
        if conversation is None or conversation.status not in (
            ConversationStatus.GENERATING,
            ConversationStatus.STREAMING,
        ):
            return False

        try:
            self.router.send_message(conversation_id, message)
        except OrchestrationError as e:
            self._logger.warning(
                "Message could not be forwarded",
                conversation_id=conversation_id,
                error=str(e),
            )
            return False
        return True

    def _reject(self, agent_id: str, reason: str) -> None:
        record_admission_rejection(reason)
        self._logger.info("Conversation request rejected", agent_id=agent_id, reason=reason)
        self.events.publish(EventKind.AGENT_BUSY, AgentBusy(agent_id=agent_id, reason=reason))

    def _resolve_priority(self, priority: str | int) -> int:
        if isinstance(priority, int):
            return priority
        level = PRIORITY_LEVELS.get(priority)
        if level is None:
            self._logger.warning("Unknown priority, using normal", priority=priority)
            return PRIORITY_LEVELS["normal"]
        return level

    def _end(self, conversation_id: str, reason: str, force: bool = False) -> bool:
        """Run the end-of-conversation side effects.

        ``force`` applies them to a conversation the store has already flagged
        as failed, which is how stale conversations are retired.
        """
        conversation = self.store.get(conversation_id)
        if conversation is None:
            return False
        if conversation.is_terminal and not force:
            return False

        status = (
            ConversationStatus.ERROR if reason in ERROR_REASONS else ConversationStatus.COMPLETED
        )
        conversation.status = status
        conversation.partial_message = None
        conversation.touch(self._clock())

        if self._router is not None:
            self._router.cancel_conversation(conversation_id)
        dequeued = self.queue.remove(conversation_id)

        released = self._release_agents(conversation)

        record_conversation_ended(status.value, reason)
        self._update_gauges()
        self._logger.info(
            "Conversation ended",
            conversation_id=conversation_id,
            reason=reason,
            status=status.value,
            message_count=len(conversation.messages),
            duration_ms=conversation.duration_ms(),
        )

        self.events.publish(
            EventKind.CONVERSATION_ENDED,
            ConversationEnded(
                conversation_id=conversation_id,
                reason=reason,
                status=status,
                message_count=len(conversation.messages),
                duration_ms=conversation.duration_ms(),
            ),
        )
        for agent in released:
            self.events.publish(
                EventKind.AGENT_AVAILABLE, AgentAvailable(agent_id=agent.id, agent=agent)
            )
        if dequeued:
            self.events.publish(
                EventKind.QUEUE_UPDATED, QueueUpdated(queue_length=len(self.queue))
            )
        return True

    def _release_agents(self, conversation: Conversation) -> list[Agent]:
        first_id, second_id = conversation.participant_ids
        released: list[Agent] = []

        for agent_id, partner_id in ((first_id, second_id), (second_id, first_id)):
            agent = self.agents.get(agent_id)
            # Only release agents still linked to this pairing
            if agent is None or agent.conversation_partner_id != partner_id:
                continue
            agent.state = AgentState.IDLE
            agent.conversation_partner_id = None
            released.append(agent)

        return released

    # --- Scheduling ---

    def process_queue(self) -> list[str]:
        """Run one scheduling tick.

        Retires stale conversations, purges old finished ones, then promotes
        queued conversations while running slots are free. A candidate whose
        agents are busy elsewhere is requeued and promotion stops for this
        tick.

        Returns:
            Ids of the conversations promoted by this tick
        """
        with self._tracer.start_as_current_span("colloquy.process_queue") as span:
            for conversation_id in self.store.cleanup():
                self._end(conversation_id, "timeout", force=True)

            purged = self.store.purge_old(self.config.retention_ms)

            promoted: list[str] = []
            queue_changed = False

            while self.store.get_active_count() < self.config.max_concurrent_conversations:
                conversation = self.queue.dequeue()
                if conversation is None:
                    break
                queue_changed = True

                first_id, second_id = conversation.participant_ids
                agent_a = self.agents.get(first_id)
                agent_b = self.agents.get(second_id)

                if agent_a is None or agent_b is None:
                    self._end(conversation.id, "agents_unavailable")
                    continue

                if not (
                    self.is_agent_available(first_id, exclude=conversation.id)
                    and self.is_agent_available(second_id, exclude=conversation.id)
                ):
                    self.queue.enqueue(conversation, self.config.requeue_priority)
                    conversation.touch(self._clock())
                    self._logger.debug(
                        "Promotion deferred, agents busy",
                        conversation_id=conversation.id,
                    )
                    break

                if self._start_conversation(conversation, agent_a, agent_b):
                    promoted.append(conversation.id)

            for conversation_id in promoted:
                conversation = self.store.get(conversation_id)
                if conversation is not None and not conversation.is_terminal:
                    self.events.publish(
                        EventKind.CONVERSATION_UPDATED,
                        ConversationUpdated(
                            conversation=conversation, status=conversation.status.value
                        ),
                    )

            if queue_changed:
                self.events.publish(
                    EventKind.QUEUE_UPDATED, QueueUpdated(queue_length=len(self.queue))
                )

            self._update_gauges()
            span.set_attribute("promoted", len(promoted))
            span.set_attribute("purged", purged)
            span.set_attribute("queue_length", len(self.queue))

        return promoted

    def _start_conversation(
        self, conversation: Conversation, agent_a: Agent, agent_b: Agent
    ) -> bool:
        for agent, partner in ((agent_a, agent_b), (agent_b, agent_a)):
            agent.state = AgentState.CHATTING
            agent.conversation_partner_id = partner.id
            agent.active_conversation = []
            agent.last_message = None

        conversation.status = ConversationStatus.GENERATING
        conversation.touch(self._clock())

        try:
            self.router.start_conversation(conversation, agent_a, agent_b)
        except Exception as e:
            # Agents are already linked, so every failure must retire the conversation
            self._logger.error(
                "Transport refused conversation",
                conversation_id=conversation.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            can_retry = (
                isinstance(e, OrchestrationError)
                and e.recovery_action != RecoveryAction.ABORT
            )
            self.events.publish(
                EventKind.CONVERSATION_ERROR,
                ConversationFailed(
                    conversation_id=conversation.id,
                    error=sanitize_error(str(e)),
                    error_code="api_error",
                    can_retry=can_retry,
                ),
            )
            self._end(conversation.id, "error")
            return False

        self._logger.info(
            "Conversation started",
            conversation_id=conversation.id,
            agent_a=agent_a.id,
            agent_b=agent_b.id,
            mode=self.router.mode.value,
        )
        return True

    def start(self) -> None:
        """Start the periodic scheduling tick on the running event loop."""
        if self.is_running:
            return
        self._loop_task = asyncio.get_running_loop().create_task(
            self._run(), name="colloquy-scheduler"
        )
        self._logger.info(
            "Scheduler started", interval_ms=self.config.process_interval_ms
        )

    def stop(self) -> None:
        """Cancel the scheduling tick; conversations are left as they are."""
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None
            self._logger.info("Scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def _run(self) -> None:
        interval = self.config.process_interval_ms / 1000.0
        try:
            while True:
                try:
                    self.process_queue()
                except Exception as e:
                    self._logger.error(
                        "Error in scheduling tick",
                        error=str(e),
                        error_type=type(e).__name__,
                        exc_info=True,
                    )
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            self._logger.debug("Scheduling loop cancelled")
            raise

    async def shutdown(self) -> None:
        """Stop scheduling, end live conversations and release the transport."""
        self._logger.info("Starting orchestrator shutdown")

        task = self._loop_task
        self._loop_task = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        for conversation in self.store.get_all():
            if not conversation.is_terminal:
                self._end(conversation.id, "shutdown")

        router = self.router
        router.disconnect()
        close = getattr(router, "close", None)
        if close is not None:
            await close()

        self.events.clear()
        self._logger.info("Orchestrator shutdown complete")

    # --- Router relay ---

    def _live(self, conversation_id: str, event: str) -> Conversation | None:
        conversation = self.store.get(conversation_id)
        if conversation is None or conversation.is_terminal:
            self._logger.debug(
                "Dropping router event for inactive conversation",
                conversation_id=conversation_id,
                router_event=event,
            )
            return None
        return conversation

    def _on_router_streaming(self, update: StreamingUpdate) -> None:
        conversation = self._live(update.conversation_id, "streaming")
        if conversation is None:
            return

        partial = update.partial_message
        conversation.touch(self._clock())
        conversation.partial_message = partial
        conversation.status = ConversationStatus.STREAMING

        for agent_id in conversation.participant_ids:
            agent = self.agents.get(agent_id)
            if agent is not None and agent_id != partial.sender_id:
                agent.last_message = f"{partial.sender_name} is typing..."

        self.events.publish(
            EventKind.CONVERSATION_UPDATED,
            ConversationUpdated(
                conversation=conversation, status=update.status, partial_message=partial
            ),
        )

    def _on_router_message(self, delivered: MessageDelivered) -> None:
        conversation = self._live(delivered.conversation_id, "message")
        if conversation is None:
            return

        message = delivered.message
        conversation.messages.append(message)
        conversation.partial_message = None
        conversation.touch(self._clock())

        for agent_id in conversation.participant_ids:
            agent = self.agents.get(agent_id)
            if agent is not None:
                agent.record_message(message, limit=self.config.transcript_limit)

        self.events.publish(
            EventKind.MESSAGE_RECEIVED,
            MessageReceived(conversation_id=conversation.id, message=message),
        )
        self.events.publish(
            EventKind.CONVERSATION_UPDATED,
            ConversationUpdated(conversation=conversation, status="message"),
        )

    def _on_router_complete(self, complete: ConversationComplete) -> None:
        if self._live(complete.conversation_id, "complete") is not None:
            self._end(complete.conversation_id, "natural_end")

    def _on_router_error(self, failure: TransportFailure) -> None:
        if self._live(failure.conversation_id, "error") is None:
            return

        self._logger.warning(
            "Transport reported conversation failure",
            conversation_id=failure.conversation_id,
            error_code=failure.error_code,
            can_retry=failure.can_retry,
        )
        self.events.publish(
            EventKind.CONVERSATION_ERROR,
            ConversationFailed(
                conversation_id=failure.conversation_id,
                error=failure.error,
                error_code=failure.error_code,
                can_retry=failure.can_retry,
                retry_after=failure.retry_after,
                fallback_message=failure.fallback_message,
            ),
        )
        self._end(failure.conversation_id, "error")

    # --- Queries ---

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        return self.store.get(conversation_id)

    def get_all_conversations(self) -> list[Conversation]:
        return self.store.get_all()

    def get_recent_conversations(self, limit: int = 10) -> list[Conversation]:
        return self.store.get_recent(limit)

    def get_active_conversation_count(self) -> int:
        """Number of running (generating or streaming) conversations."""
        return self.store.get_active_count()

    def get_queue_length(self) -> int:
        return len(self.queue)

    def get_queue_position(self, conversation_id: str) -> int:
        """1-indexed queue position, or -1 if not queued."""
        return self.queue.get_position(conversation_id)

    def boost_conversation(self, conversation_id: str, boost: int = 1) -> bool:
        """Raise the priority of a queued conversation.

        Returns:
            True if the conversation was queued and boosted
        """
        if not self.queue.boost_priority(conversation_id, boost):
            return False
        self.events.publish(
            EventKind.QUEUE_UPDATED, QueueUpdated(queue_length=len(self.queue))
        )
        return True

    def get_stats(self) -> dict[str, Any]:
        """Get orchestrator statistics.

        Returns:
            Dictionary with conversation, queue and agent statistics
        """
        return {
            "conversations": self.store.get_stats(),
            "queue": self.queue.get_stats(),
            "agents": len(self.agents),
            "router_mode": self.router.mode.value,
            "running": self.is_running,
        }

    def _update_gauges(self) -> None:
        update_scheduler_gauges(self.store.get_active_count(), len(self.queue))
