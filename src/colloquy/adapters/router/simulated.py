"""Scripted router that fakes dialogue with a synthetic typing delay.

Each started conversation gets one ``asyncio.Task`` that plays a two-sided
script line by line: a typing signal, one streaming update per revealed
character, the final message, then a pause before the next line. Cancelling a
conversation cancels its task, so no further events are produced for it.
"""

import asyncio
import random
import uuid
from dataclasses import dataclass

from colloquy.adapters.router.base import (
    BaseRouter,
    ConversationComplete,
    MessageDelivered,
    RouterEventKind,
    RouterMode,
    StreamingUpdate,
    TransportFailure,
)
from colloquy.schemas.models import Agent, Conversation, Message, PartialMessage
from colloquy.utils.errors import TransportError
from colloquy.utils.timing import Clock, now_ms


@dataclass(frozen=True)
class ScriptLine:
    sender_index: int  # 0 = initiator, 1 = responder
    text: str


@dataclass(frozen=True)
class Script:
    topic: str
    lines: tuple[ScriptLine, ...]


def _script(topic: str, *lines: tuple[int, str]) -> Script:
    return Script(topic, tuple(ScriptLine(index, text) for index, text in lines))


DEFAULT_SCRIPTS: tuple[Script, ...] = (
    _script(
        "Tech Talk",
        (0, "Did you push the hotfix?"),
        (1, "Yeah, but it broke the tests."),
        (0, "Classic. Rollback?"),
        (1, "Way ahead of you."),
    ),
    _script(
        "Coffee Break",
        (0, "Coffee machine is down."),
        (1, "No... tell me it's not true."),
        (0, "I wish I was joking."),
        (1, "Guess I'll power down then."),
    ),
    _script(
        "Philosophy",
        (0, "Do you think we are in a simulation?"),
        (1, "Only if the user is watching."),
        (0, "That's deep."),
        (1, "Or just rendering logic."),
    ),
    _script(
        "Project Planning",
        (1, "How's the new feature coming along?"),
        (0, "Making progress. Hit a snag with the API."),
        (1, "Anything I can help with?"),
        (0, "Actually, yeah. Can you review my PR?"),
    ),
    _script(
        "Weekend Plans",
        (0, "Any plans for the weekend?"),
        (1, "Thinking of debugging that memory leak."),
        (0, "That's... not a hobby."),
        (1, "You haven't seen my memory leaks."),
    ),
)


class SimulatedRouter(BaseRouter):
    """Router that plays canned scripts with per-character streaming.

    Timing defaults: 500ms before the first line, 40ms per character and a
    1200ms pause between lines.
    """

    mode = RouterMode.SIMULATED

    def __init__(
        self,
        scripts: tuple[Script, ...] | list[Script] | None = None,
        typing_interval_ms: float = 40.0,
        message_pause_ms: float = 1200.0,
        start_delay_ms: float = 500.0,
        rng: random.Random | None = None,
        clock: Clock | None = None,
    ):
        """Initialize the simulated router.

        Args:
            scripts: Script corpus to draw from
            typing_interval_ms: Delay between revealed characters
            message_pause_ms: Pause after a completed line
            start_delay_ms: Delay before the first line
            rng: Random source used to pick scripts
            clock: Millisecond clock for message timestamps

        Raises:
            ValueError: If the corpus is empty or a timing is negative
        """
        super().__init__()
        self.scripts = tuple(scripts) if scripts is not None else DEFAULT_SCRIPTS
        if not self.scripts:
            raise ValueError("Simulated router needs at least one script")
        if min(typing_interval_ms, message_pause_ms, start_delay_ms) < 0:
            raise ValueError("Router timings must be non-negative")

        self.typing_interval_ms = typing_interval_ms
        self.message_pause_ms = message_pause_ms
        self.start_delay_ms = start_delay_ms
        self._rng = rng or random.Random()
        self._clock = clock or now_ms
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def start_conversation(
        self, conversation: Conversation, agent_a: Agent, agent_b: Agent
    ) -> None:
        """Schedule script playback on the running event loop.

        Raises:
            TransportError: If called without a running event loop
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise TransportError(
                conversation.id, "No running event loop to play the script on"
            ) from e

        self.cancel_conversation(conversation.id)

        script = self._pick_script(conversation)
        if not conversation.topic:
            conversation.topic = script.topic
        task = loop.create_task(
            self._play(conversation.id, script, (agent_a, agent_b)),
            name=f"simulated-{conversation.id}",
        )
        self._tasks[conversation.id] = task

        self._logger.info(
            "Simulated conversation started",
            conversation_id=conversation.id,
            topic=script.topic,
            lines=len(script.lines),
        )

    def send_message(self, conversation_id: str, message: Message) -> None:
        # Scripts produce their own lines
        self._logger.debug(
            "Ignoring injected message in simulated mode",
            conversation_id=conversation_id,
        )

    def cancel_conversation(self, conversation_id: str) -> None:
        task = self._tasks.pop(conversation_id, None)
        if task is not None and not task.done():
            task.cancel()
            self._logger.debug(
                "Simulated conversation cancelled", conversation_id=conversation_id
            )

    def active_conversation_ids(self) -> list[str]:
        return list(self._tasks)

    def _pick_script(self, conversation: Conversation) -> Script:
        if conversation.topic:
            for script in self.scripts:
                if script.topic.lower() == conversation.topic.lower():
                    return script
        return self._rng.choice(self.scripts)

    async def _play(
        self,
        conversation_id: str,
        script: Script,
        participants: tuple[Agent, Agent],
    ) -> None:
        try:
            await self._sleep(self.start_delay_ms)

            for index, line in enumerate(script.lines):
                sender = participants[line.sender_index]
                await self._type_line(conversation_id, sender, line.text)

                if index < len(script.lines) - 1:
                    await self._sleep(self.message_pause_ms)

            # A listener may have cancelled us while handling the last message
            if self._tasks.get(conversation_id) is not asyncio.current_task():
                return

            # Detach before announcing completion so the resulting cancel is a no-op
            self._tasks.pop(conversation_id, None)
            self._emit(
                RouterEventKind.COMPLETE,
                ConversationComplete(conversation_id=conversation_id),
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._tasks.pop(conversation_id, None)
            self._logger.error(
                "Simulated conversation failed",
                conversation_id=conversation_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._emit(
                RouterEventKind.ERROR,
                TransportFailure(conversation_id=conversation_id, error=str(e)),
            )

    async def _type_line(self, conversation_id: str, sender: Agent, text: str) -> None:
        request_id = str(uuid.uuid4())
        sender_name = sender.name or "Agent"

        def partial(revealed: int) -> PartialMessage:
            return PartialMessage(
                conversation_id=conversation_id,
                request_id=request_id,
                accumulated_text=text[:revealed],
                chunk_count=revealed,
                is_complete=revealed >= len(text),
                sender_id=sender.id,
                sender_name=sender_name,
            )

        self._emit(
            RouterEventKind.STREAMING,
            StreamingUpdate(conversation_id, partial(0), status="typing"),
        )

        for revealed in range(1, len(text) + 1):
            await self._sleep(self.typing_interval_ms)
            self._emit(
                RouterEventKind.STREAMING,
                StreamingUpdate(conversation_id, partial(revealed), status="streaming"),
            )

        self._emit(
            RouterEventKind.MESSAGE,
            MessageDelivered(
                conversation_id=conversation_id,
                message=Message(
                    sender_id=sender.id,
                    sender_name=sender_name,
                    text=text,
                    timestamp=self._clock(),
                ),
            ),
        )

    @staticmethod
    async def _sleep(delay_ms: float) -> None:
        await asyncio.sleep(delay_ms / 1000.0)
