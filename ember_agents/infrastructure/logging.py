"""
Structured Logging Configuration.

Supports:
- Color output for interactive sessions (colorlog)
- JSON output for service deployments (structlog)
"""

import logging
import os
import sys
from typing import Literal

import colorlog
import structlog

LogFormat = Literal["color", "json"]

_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "langchain", "langsmith")


def setup_logging(
    level: int | str = logging.INFO,
    format_type: LogFormat | None = None,
    json_indent: int | None = None,
) -> logging.Logger:
    """
    Configure application logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Output format ("color" for consoles, "json" for services).
                    If None, reads from LOG_FORMAT env var (defaults to "color")
        json_indent: Indentation for JSON output (None for compact)

    Returns:
        Configured root logger
    """
    if format_type is None:
        format_type = os.getenv("LOG_FORMAT", "color").lower()
        if format_type not in ("color", "json"):
            format_type = "color"

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stderr keeps the chat transcript on stdout readable
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if format_type == "color":
        formatter = _create_color_formatter()
    else:
        formatter = _create_json_formatter(json_indent)

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def _create_color_formatter() -> logging.Formatter:
    """Create colorized formatter for interactive use."""
    return colorlog.ColoredFormatter(
        fmt="%(log_color)s%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        log_colors={
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        },
        style="%",
    )


def _create_json_formatter(indent: int | None = None) -> logging.Formatter:
    """Create a JSON formatter backed by structlog's stdlib integration."""
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(indent=indent),
        ],
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
