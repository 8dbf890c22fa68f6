"""Shared logging utilities for the ledger RPC client.

Usage example:
    from ledger_rpc.observability.logging import get_logger

    logger = get_logger("ledger_rpc.infrastructure.http")
    logger.info("Retry attempt %s after %.2fs", attempt, delay)
"""

from __future__ import annotations

import logging
import time

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def get_logger(name: str, *, level: int = logging.INFO) -> logging.Logger:
    """Return a standard logger configured for UTC timestamps.

    Args:
        name: Logger name (use a stable module-qualified name).
        level: Level applied the first time the logger is configured.

    Returns:
        A logger with a single stream handler and a consistent UTC format.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)
        formatter.converter = time.gmtime
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False
    return logger


def verbose_level(verbose: bool) -> int:
    """Return the level used for per-request diagnostics."""
    return logging.INFO if verbose else logging.DEBUG
