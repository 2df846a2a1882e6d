"""Demo command: scripted agents chatting through the orchestrator.

Registers a handful of agents, keeps pairing idle ones, and prints every
lifecycle event until the run time is up. Useful for watching the scheduler,
the concurrency cap and the simulated transport without a world renderer.
"""

import asyncio
import json
import random
from pathlib import Path

from colloquy.adapters.router import NetworkedRouter
from colloquy.config import ConfigError, build_orchestrator, load_config, validate_config
from colloquy.core.events import (
    AgentBusy,
    ConversationCreated,
    ConversationEnded,
    ConversationFailed,
    EventKind,
    MessageReceived,
)
from colloquy.core.orchestrator import Orchestrator
from colloquy.schemas.models import Agent, AgentState
from colloquy.utils.telemetry import setup_logging, setup_tracing, start_metrics_server

DEMO_AGENTS = [
    ("agent-1", "Ada", "Engineer", "Ships fixes on Fridays."),
    ("agent-2", "Grace", "Researcher", "Collects bugs, literally."),
    ("agent-3", "Linus", "Maintainer", "Reviews every patch twice."),
    ("agent-4", "Barbara", "Designer", "Thinks in abstractions."),
    ("agent-5", "Alan", "Analyst", "Asks whether machines can think."),
    ("agent-6", "Margaret", "Lead", "Lands things on the moon."),
]


def _print_event(label: str, detail: str) -> None:
    print(f"[{label:<12}] {detail}")


def _attach_printers(orchestrator: Orchestrator) -> None:
    def on_created(event: ConversationCreated) -> None:
        first, second = event.conversation.participants
        _print_event(
            "created",
            f"{event.conversation.id} {first.display_name} -> {second.display_name} "
            f"(priority {event.priority})",
        )

    def on_message(event: MessageReceived) -> None:
        _print_event(
            "message", f"{event.message.sender_name}: {event.message.text}"
        )

    def on_ended(event: ConversationEnded) -> None:
        _print_event(
            "ended",
            f"{event.conversation_id} {event.reason} ({event.status.value}, "
            f"{event.message_count} messages, {event.duration_ms / 1000:.1f}s)",
        )

    def on_error(event: ConversationFailed) -> None:
        _print_event("error", f"{event.conversation_id} {event.error_code}: {event.error}")

    def on_busy(event: AgentBusy) -> None:
        _print_event("busy", f"{event.agent_id} ({event.reason})")

    orchestrator.on(EventKind.CONVERSATION_CREATED, on_created)
    orchestrator.on(EventKind.MESSAGE_RECEIVED, on_message)
    orchestrator.on(EventKind.CONVERSATION_ENDED, on_ended)
    orchestrator.on(EventKind.CONVERSATION_ERROR, on_error)
    orchestrator.on(EventKind.AGENT_BUSY, on_busy)


def _pick_pair(orchestrator: Orchestrator, rng: random.Random) -> tuple[str, str] | None:
    idle = [
        agent_id
        for agent_id, agent in orchestrator.agents.items()
        if agent.state == AgentState.IDLE and orchestrator.is_agent_available(agent_id)
    ]
    if len(idle) < 2:
        return None
    first, second = rng.sample(idle, 2)
    return first, second


async def run_demo(
    orchestrator: Orchestrator,
    duration_s: float,
    agent_count: int,
    request_interval_s: float = 1.0,
    seed: int | None = None,
) -> dict:
    """Drive the orchestrator with random pairings for ``duration_s`` seconds.

    Returns:
        Orchestrator statistics at the end of the run
    """
    rng = random.Random(seed)
    for agent_id, name, job, bio in DEMO_AGENTS[:agent_count]:
        orchestrator.register_agent(Agent(id=agent_id, name=name, job=job, bio=bio))

    _attach_printers(orchestrator)
    orchestrator.start()

    loop = asyncio.get_running_loop()
    deadline = loop.time() + duration_s
    try:
        while loop.time() < deadline:
            pair = _pick_pair(orchestrator, rng)
            if pair is not None:
                orchestrator.request_conversation(*pair, user_initiated=rng.random() < 0.25)
            await asyncio.sleep(request_interval_s)
        stats = orchestrator.get_stats()
    finally:
        await orchestrator.shutdown()

    return stats


def run_demo_command(args: list[str]) -> int:
    """Run the demo.

    Args:
        args: Command line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    duration_s = 15.0
    agent_count = 4
    seed = None
    config_path = None

    i = 0
    while i < len(args):
        arg = args[i]
        try:
            if arg.startswith("--duration="):
                duration_s = float(arg.split("=", 1)[1])
            elif arg.startswith("--agents="):
                agent_count = int(arg.split("=", 1)[1])
            elif arg.startswith("--seed="):
                seed = int(arg.split("=", 1)[1])
            elif arg.startswith("--config="):
                config_path = Path(arg.split("=", 1)[1])
            elif arg in ["-h", "--help"]:
                print_demo_help()
                return 0
            else:
                print(f"Unknown argument: {arg}")
                print_demo_help()
                return 1
        except ValueError:
            print(f"Invalid value: {arg}")
            return 1
        i += 1

    if not 2 <= agent_count <= len(DEMO_AGENTS):
        print(f"Error: --agents must be between 2 and {len(DEMO_AGENTS)}")
        return 1

    try:
        config = load_config(config_path)
        validate_config(config)
    except ConfigError as e:
        print(f"Error loading configuration: {e}")
        return 1

    setup_logging(
        config.logging.level,
        enable_pii_redaction=config.logging.enable_pii_redaction,
        log_format=config.logging.format,
    )
    if config.tracing.enabled:
        setup_tracing(config.tracing.service_name, config.tracing.otlp_endpoint)
    if config.metrics.enabled:
        start_metrics_server(config.metrics.port)

    async def main() -> dict:
        orchestrator = build_orchestrator(config)
        if isinstance(orchestrator.router, NetworkedRouter):
            await orchestrator.router.connect()
        return await run_demo(orchestrator, duration_s, agent_count, seed=seed)

    try:
        stats = asyncio.run(main())
    except KeyboardInterrupt:
        return 130
    except OSError as e:
        print(f"Error: could not reach conversation backend: {e}")
        return 1

    print()
    print(json.dumps(stats, indent=2))
    return 0


def print_demo_help() -> None:
    """Print demo command help."""
    print(
        """colloquy demo - Run scripted agents through the orchestrator

Usage:
    colloquy demo [options]

Options:
    --duration=SECONDS  How long to run (default: 15)
    --agents=N          Number of agents, 2-6 (default: 4)
    --seed=N            Seed for pairing choices
    --config=FILE       Configuration file
"""
    )
