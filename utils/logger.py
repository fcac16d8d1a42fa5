"""Logging setup for the application."""

import logging
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(log_level: Optional[str] = None, name: str = "review_matcher") -> logging.Logger:
    """
    Set up and configure application logger.

    Creates a logger with a simple, readable format suitable for CLI and
    server output.

    Modules call this with only a name at import time. Their loggers keep
    the NOTSET level and follow the root logger, so the level passed once
    at startup (from LOG_LEVEL) applies everywhere.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            When given, reconfigures the root logger to this level.
        name: Logger name (default: review_matcher)

    Returns:
        logging.Logger: Configured logger instance
    """
    if log_level is None:
        # No-op once a handler is installed
        logging.basicConfig(
            level=logging.INFO,
            format=LOG_FORMAT,
            datefmt=DATE_FORMAT,
            stream=sys.stdout,
        )
        return logging.getLogger(name)

    # Convert string to logging level
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # Configure root logger
    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
        force=True,  # Override any existing configuration
    )

    return logging.getLogger(name)
