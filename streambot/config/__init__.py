"""Configuration module for streambot."""

from streambot.config.loader import load_config, get_config_path
from streambot.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
