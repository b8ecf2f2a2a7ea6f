"""Load and save the streambot configuration file."""

import json
from pathlib import Path

from loguru import logger

from streambot.config.schema import Config


def get_config_path() -> Path:
    """Default configuration file location."""
    return Path.home() / ".streambot" / "config.json"


def load_config(path: Path | None = None) -> Config:
    """
    Load configuration from disk; STREAMBOT_* environment variables fill
    in anything the file leaves unset.

    Args:
        path: Config file to read (defaults to ~/.streambot/config.json).

    Returns:
        Config instance. Missing or unreadable files yield defaults.
    """
    path = path or get_config_path()
    data: dict = {}
    if path.exists():
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse config {path}: {e}; using defaults")
    return Config(**data)


def save_config(config: Config, path: Path | None = None) -> Path:
    """Write configuration to disk."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.model_dump(), indent=2))
    return path
