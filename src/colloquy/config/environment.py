"""Environment detection and configuration file discovery."""

import os
from enum import Enum
from pathlib import Path


class Environment(Enum):
    """Supported deployment environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


def get_environment() -> Environment:
    """Detect the current environment.

    ``COLLOQUY_ENVIRONMENT`` wins when it names a known environment; otherwise
    the environment is development.

    Returns:
        Detected environment
    """
    env_str = os.getenv("COLLOQUY_ENVIRONMENT", "").lower()
    if env_str:
        try:
            return Environment(env_str)
        except ValueError:
            pass
    return Environment.DEVELOPMENT


def get_config_file_path(environment: Environment | None = None) -> Path | None:
    """Find the configuration file for an environment.

    ``COLLOQUY_CONFIG`` is used when set and the file exists. Otherwise the
    first existing file among ``config/<env>.yaml``, ``colloquy.<env>.yaml``
    and ``colloquy.yaml`` (or their ``.yml`` forms) is returned.

    Args:
        environment: Environment to look up (defaults to current)

    Returns:
        Path to the configuration file, or None if there is none
    """
    if explicit := os.getenv("COLLOQUY_CONFIG"):
        path = Path(explicit)
        return path if path.exists() else None

    if environment is None:
        environment = get_environment()

    config_paths = [
        Path(f"config/{environment.value}.yaml"),
        Path(f"config/{environment.value}.yml"),
        Path(f"colloquy.{environment.value}.yaml"),
        Path(f"colloquy.{environment.value}.yml"),
        Path("colloquy.yaml"),
        Path("colloquy.yml"),
    ]

    for path in config_paths:
        if path.exists():
            return path

    return None
