"""Loguru sink setup."""

import sys
from pathlib import Path

from loguru import logger

from streambot.config.schema import LoggingConfig


def setup_logging(config: LoggingConfig, verbose: bool = False) -> None:
    """
    Configure loguru sinks.

    Always logs to stderr. When ``log_dir`` is set, adds a rotating file for
    everything and a separate one for command/reply records (those bound with
    ``channel="bot"``).
    """
    level = "DEBUG" if verbose else config.level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level)

    if not config.log_dir:
        return

    log_dir = Path(config.log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_dir / "all-{time:YYYY-MM-DD}.log",
        level=level,
        rotation=config.rotation,
        retention=config.retention,
        compression="gz",
    )
    logger.add(
        log_dir / "error-{time:YYYY-MM-DD}.log",
        level="ERROR",
        rotation=config.rotation,
        retention=config.retention,
        compression="gz",
    )
    logger.add(
        log_dir / "bot-{time:YYYY-MM-DD}.log",
        level="INFO",
        rotation=config.rotation,
        retention=config.retention,
        filter=lambda record: record["extra"].get("channel") == "bot",
        serialize=True,
    )
