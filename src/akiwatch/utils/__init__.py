"""Shared utilities for akiwatch."""

from .async_utils import retry_async
from .logging import LoggingContextManager, get_structured_logger, setup_logging

__all__ = [
    "setup_logging",
    "get_structured_logger",
    "LoggingContextManager",
    "retry_async",
]
