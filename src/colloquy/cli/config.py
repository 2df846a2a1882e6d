"""`colloquy config` subcommands: validate, show and env."""

import json
import os
from collections.abc import Callable
from pathlib import Path

import yaml

from colloquy.config import (
    ConfigError,
    load_config,
    load_config_from_env,
    validate_config,
)
from colloquy.config.config import ENV_SETTINGS
from colloquy.config.environment import get_config_file_path, get_environment

OUTPUT_FORMATS = ("yaml", "json")


def _split_args(args: list[str]) -> tuple[Path | None, dict[str, str]]:
    """Separate the optional config file from ``--name[=value]`` flags."""
    path: Path | None = None
    options: dict[str, str] = {}

    remaining = iter(args)
    for arg in remaining:
        if not arg.startswith("-"):
            path = Path(arg)
        elif "=" in arg:
            name, value = arg.split("=", 1)
            options[name.lstrip("-")] = value
        elif arg in ("--format", "-f"):
            options["format"] = next(remaining, "")
        else:
            options[arg.lstrip("-")] = ""
    return path, options


def validate(args: list[str]) -> int:
    """Validate a config file, or the environment when no file is named."""
    path, _ = _split_args(args)

    try:
        if path is None:
            print("Validating configuration from environment variables")
            config = load_config_from_env()
        elif not path.exists():
            print(f"Error: Configuration file not found: {path}")
            return 1
        else:
            print(f"Validating configuration file: {path}")
            config = load_config(path)
        validate_config(config)
    except ConfigError as e:
        print(f"✗ Configuration validation failed: {e}")
        return 1

    print("✓ Configuration is valid")
    return 0


def show(args: list[str]) -> int:
    """Print the merged configuration as YAML or JSON."""
    path, options = _split_args(args)
    output_format = options.get("format", "yaml")
    if output_format not in OUTPUT_FORMATS:
        print(f"Error: Invalid format '{output_format}'. Use 'yaml' or 'json'")
        return 1

    try:
        config = load_config(path or get_config_file_path())
    except ConfigError as e:
        print(f"Error loading configuration: {e}")
        return 1

    data = config.model_dump(mode="json")
    if output_format == "json":
        print(json.dumps(data, indent=2))
    else:
        print(yaml.dump(data, default_flow_style=False, sort_keys=True))
    return 0


def env(args: list[str]) -> int:
    """List the COLLOQUY_* variables; ``--all`` includes unset ones."""
    _, options = _split_args(args)
    show_all = "all" in options or "a" in options

    print(f"Environment: {get_environment().value}")
    print(f"Config file: {get_config_file_path() or 'None found'}")
    print()

    for var in ["COLLOQUY_CONFIG", *(setting[0] for setting in ENV_SETTINGS)]:
        value = os.getenv(var)
        if value or show_all:
            print(f"  {var}={value or '(not set)'}")
    return 0


COMMANDS: dict[str, Callable[[list[str]], int]] = {
    "validate": validate,
    "show": show,
    "env": env,
}


def run_config_command(args: list[str]) -> int:
    """Dispatch a config subcommand and return its exit code."""
    if not args or args[0] in ("help", "-h", "--help"):
        print_config_help()
        return 0

    command = COMMANDS.get(args[0])
    if command is None:
        print(f"Unknown config command: {args[0]}")
        print_config_help()
        return 1
    return command(args[1:])


def print_config_help() -> None:
    print(
        """colloquy config - Configuration management

Usage:
    colloquy config validate [file]
    colloquy config show [file] [--format=yaml|json]
    colloquy config env [--all]
"""
    )
