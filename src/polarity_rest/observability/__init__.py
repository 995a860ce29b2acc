"""Observability - structured logging."""

from .logger import configure_logging, get_log_level, null_logger

__all__ = [
    "configure_logging",
    "get_log_level",
    "null_logger",
]
