"""Entry point for `python -m colloquy.cli` and the `colloquy` command."""

import sys


def main(args: list[str] | None = None) -> int:
    """Main entry point for the colloquy CLI."""
    if args is None:
        args = sys.argv[1:]

    if not args or args[0] in ["-h", "--help", "help"]:
        print_help()
        return 0

    command = args[0]

    if command == "version":
        print_version()
        return 0
    elif command == "config":
        return run_config(args[1:])
    elif command == "demo":
        return run_demo(args[1:])
    else:
        print(f"Unknown command: {command}")
        print_help()
        return 1


def print_help() -> None:
    """Print CLI help message."""
    print(
        """colloquy - Conversation orchestration for simulated agent worlds

Usage:
    colloquy <command> [options]

Commands:
    version     Show version information
    config      Configuration management
    demo        Run scripted agents through the orchestrator
    help        Show this help message

Options:
    -h, --help  Show help message
"""
    )


def print_version() -> None:
    """Print version information."""
    from colloquy import __version__

    print(f"colloquy {__version__}")


def run_config(args: list[str]) -> int:
    """Run the config command."""
    from colloquy.cli.config import run_config_command

    return run_config_command(args)


def run_demo(args: list[str]) -> int:
    """Run the demo command."""
    from colloquy.cli.demo import run_demo_command

    return run_demo_command(args)


if __name__ == "__main__":
    sys.exit(main())
