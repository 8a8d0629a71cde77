"""Logging configuration shared by every entry point."""

from __future__ import annotations

import logging
import sys
from functools import lru_cache

from passbook_config.settings import get_settings


@lru_cache(maxsize=1)
def configure_logging() -> None:
    """Configure application logging.

    Sets up logging for the passbook package with:
    - Console output with timestamps and module names
    - Configurable log level for passbook modules (from settings)
    - WARNING level for noisy third-party libraries
    """
    settings = get_settings()
    log_level_str = settings.log_level.upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    log_format = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt=date_format,
        stream=sys.stdout,
        force=True,  # Override any existing config
    )

    logging.getLogger("passbook").setLevel(log_level)

    # Quiet down noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
