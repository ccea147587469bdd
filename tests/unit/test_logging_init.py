from __future__ import annotations

import logging
from io import StringIO

from verba_sigma.logging.init import (
    LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter():
    logger = setup_logging()
    assert logger.name == LOGGER_NAME
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_idempotent():
    logger1 = setup_logging()
    logger2 = setup_logging()
    assert logger1 is logger2
    assert len(logger1.handlers) == 1
    assert get_logger() is logger1


def test_logging_labeled_prefixes():
    captured = StringIO()
    logger = logging.getLogger("test_verba_sigma_labels")
    logger.setLevel(logging.INFO)
    handler = logging.StreamHandler(captured)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    try:
        logger.info("Test info message")
        logger.warning("Test warning message")
        logger.error("Test error message")
        logger.log(SUMMARY_LEVEL, "Test summary message")
    finally:
        logger.removeHandler(handler)

    lines = captured.getvalue().strip().split("\n")
    assert lines == [
        "INFO Test info message",
        "WARN Test warning message",
        "ERROR Test error message",
        "SUMMARY Test summary message",
    ]


def test_module_loggers_share_the_package_handler(capsys):
    setup_logging()
    logging.getLogger("verba_sigma.services.orchestrator").warning("child message")
    assert "WARN child message" in capsys.readouterr().out


def test_log_summary(capsys):
    setup_logging()
    log_summary("files=1/1 success=1 failed=0")
    assert capsys.readouterr().out.strip() == "SUMMARY files=1/1 success=1 failed=0"
    assert logging.getLevelName(SUMMARY_LEVEL) == "SUMMARY"
