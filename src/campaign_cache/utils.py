"""Utility functions for campaign-cache."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from campaign_cache.config import CacheConfig


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    console: bool = True,
) -> None:  # pragma: no cover
    """Configure logging for the application.

    Args:
        log_level: Minimum level for every sink
        log_file: Optional file path; enables a rotating file sink
        console: Whether to log to stderr
    """
    # Remove default handler and any existing handlers
    logger.remove()

    if log_file:
        logger.add(
            str(log_file),
            level=log_level,
            rotation="10 MB",
            retention="10 days",
            backtrace=True,
            diagnose=False,
            enqueue=True,
            colorize=False,
        )

    if console:
        logger.add(sys.stderr, level=log_level, backtrace=True, diagnose=False, colorize=True)

    logger.debug(f"Logging initialized at level {log_level}")


def init_logging(config: CacheConfig) -> None:  # pragma: no cover
    """Initialize logging from configuration. Tests keep loguru's defaults."""
    if config.is_test_env:
        return
    setup_logging(
        log_level=config.log_level,
        log_file=config.log_path,
        console=config.log_to_stdout,
    )
