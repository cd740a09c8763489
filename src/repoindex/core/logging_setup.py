"""Logging configuration for repoindex entry points."""

import logging
from typing import Optional

from repoindex.core.config import LoggingConfig

_LOGGER_NAME = "repoindex"


def configure_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Configure the repoindex logger hierarchy with a single stream handler.

    Safe to call repeatedly: handlers installed by a previous call are
    replaced rather than duplicated.

    Args:
        config: Logging configuration. If None, uses defaults.

    Returns:
        The configured top-level repoindex logger.
    """
    config = config or LoggingConfig()
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(config.format))
    logger.addHandler(stream_handler)

    return logger
