"""Logging configuration for the kluster package."""
import logging
import sys
from typing import Union

from .config import Config

NOISY_LOGGERS = ("urllib3",)


def setup_logger(name: str = "kluster", level: Union[int, str] = Config.LOG_LEVEL) -> logging.Logger:
    """
    Set up a logger with the specified name and log level.

    Args:
        name: The name of the logger
        level: The logging level, either a number or a level name such as "debug"

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = level.upper()
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Don't add handlers if they're already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(Config.LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(level)

    # Keep noisy libraries quiet unless we are debugging
    if logger.getEffectiveLevel() > logging.DEBUG:
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
