import logging

import colorlog
import structlog

from ember_agents.infrastructure import get_logger, setup_logging


def test_json_format_uses_structlog_formatter():
    root = setup_logging("debug", format_type="json")

    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_color_format_from_environment(monkeypatch):
    monkeypatch.setenv("LOG_FORMAT", "plain")

    root = setup_logging(logging.INFO)

    assert isinstance(root.handlers[0].formatter, colorlog.ColoredFormatter)
    assert get_logger("ember_agents.test").name == "ember_agents.test"
