"""Logging utilities for the Dataset Cleaner.

This module provides the shared logging configuration used across the
application. Modules obtain their logger with ``logging.getLogger(__name__)``.
"""
from __future__ import annotations

import logging
import sys
from typing import Optional

from config import settings


def setup_logging(verbose: bool = False, level: Optional[int | str] = None) -> None:
    """Configure the root logger with a consistent format.

    Safe to call more than once; existing handlers are replaced.

    Args:
        verbose: If True, log at DEBUG regardless of configuration.
        level: Optional explicit log level (overrides verbose and settings).
    """
    if level is not None:
        log_level = level
    elif verbose:
        log_level = logging.DEBUG
    else:
        log_level = settings.logging.level.upper()

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
