"""
Logging configuration and setup for the community bot.
Handles log formatting, file rotation, and handler response-time logging.
"""

import functools
import logging
import logging.handlers
import os
import time
from typing import Optional

from .config import LoggingConfig

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ('httpx', 'apscheduler.executors.default', 'aiohttp.access')


def setup_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Set up logging configuration for the application.

    Args:
        config: Logging configuration

    Returns:
        Configured root logger
    """
    if config is None:
        config = LoggingConfig()

    # Configure root logger
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, config.level, logging.INFO))

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter(config.format)

    if config.console_output:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if config.log_file:
        # Create logs directory if it doesn't exist
        log_dir = os.path.dirname(config.log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        # File handler with rotation
        file_handler = logging.handlers.RotatingFileHandler(
            config.log_file,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def log_response_time(func):
    """Log how long an async update handler took to respond."""
    handler_logger = logging.getLogger(func.__module__)

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            handler_logger.debug(f"Response time for {func.__name__}: {elapsed_ms:.0f}ms")

    return wrapper
