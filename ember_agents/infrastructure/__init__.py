"""
Infrastructure Module - Cross-cutting concerns.

This module provides:
- Logging: Structured logging with color support
- Retry: Retry utilities with exponential backoff
"""

from .logging import setup_logging, get_logger
from .retry import execute_with_retry, RetryConfig

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Retry
    "execute_with_retry",
    "RetryConfig",
]
