"""Observability helpers."""

from .logging import get_logger, verbose_level

__all__ = ["get_logger", "verbose_level"]
