"""Tests for logging configuration."""

import logging

from anishot.app_logging import configure_logging


def test_configure_logging_installs_one_handler() -> None:
    logger = logging.getLogger("anishot")
    logger.handlers.clear()

    configure_logging(logging.DEBUG)
    configure_logging()

    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO
    assert logger.propagate is False
