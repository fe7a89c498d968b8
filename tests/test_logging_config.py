"""
Tests for logging setup.
"""

import logging

import pytest

from focusflow.infra.logging_config import setup_logging


@pytest.fixture
def focusflow_logger():
    logger = logging.getLogger("focusflow")
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def test_module_loggers_reach_the_log_file(tmp_path, focusflow_logger):
    log_file = tmp_path / "logs" / "focusflow.log"
    setup_logging(log_file, "debug")

    logging.getLogger("focusflow.services.focus_service").debug("ticker started")
    for handler in focusflow_logger.handlers:
        handler.flush()

    assert focusflow_logger.level == logging.DEBUG
    assert "[DEBUG] focusflow.services.focus_service: ticker started" in log_file.read_text(encoding="utf-8")


def test_repeated_setup_does_not_stack_handlers(tmp_path, focusflow_logger):
    setup_logging(tmp_path / "a.log")
    setup_logging(tmp_path / "b.log")
    assert len(focusflow_logger.handlers) == 2

    setup_logging(level="warning")
    assert len(focusflow_logger.handlers) == 1
    assert focusflow_logger.level == logging.WARNING


def test_unknown_level_falls_back_to_info(focusflow_logger):
    setup_logging(level="chatty")
    assert focusflow_logger.level == logging.INFO
