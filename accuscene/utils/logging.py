"""Centralized logging configuration.

All package loggers live under the ``accuscene`` logger. The console handler
is attached once to that root, and module loggers propagate to it, so
changing the level in one place affects the whole package.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "accuscene"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: Optional[str]) -> int:
    if level is None:
        from accuscene.config import settings

        level = settings.log_level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach the console handler to the package root logger.

    Safe to call repeatedly; later calls only change the level.

    Args:
        level: Log level name, defaults to ``settings.log_level``

    Returns:
        logging.Logger: The package root logger
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    log_level = _resolve_level(level)
    root.setLevel(log_level)

    if not root.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(console_handler)
    for handler in root.handlers:
        handler.setLevel(log_level)

    return root


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)
        level: Optional log level override (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        logging.Logger: Logger that propagates to the package root
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        configure_logging()

    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(_resolve_level(level))
    return logger
