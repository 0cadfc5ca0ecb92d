import io
import logging

import pytest

from sbanken_ynab import logging_config


@pytest.fixture
def package_logger(monkeypatch):
    logger = logging.getLogger("sbanken_ynab")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    monkeypatch.setattr(logging_config, "_CONFIGURED", False)

    yield logger

    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


def test_configure_logging_writes_to_stream(package_logger):
    stream = io.StringIO()

    logging_config.configure_logging("debug", stream=stream)
    logging.getLogger("sbanken_ynab.app.bank_integration.service").debug("Transaction transferred: x")

    assert package_logger.level == logging.DEBUG
    assert "DEBUG Transaction transferred: x" in stream.getvalue()


def test_configure_logging_is_idempotent(package_logger):
    before = len(package_logger.handlers)

    logging_config.configure_logging("INFO", stream=io.StringIO())
    logging_config.configure_logging("DEBUG", stream=io.StringIO())

    assert len(package_logger.handlers) == before + 1
    assert package_logger.level == logging.INFO


@pytest.mark.parametrize("level, expected", [
    ("warning", logging.WARNING),
    (" INFO ", logging.INFO),
    ("10", logging.DEBUG),
    (logging.ERROR, logging.ERROR),
    ("nonsense", None),
    ("INOF", None),
])
def test_parse_level(level, expected):
    assert logging_config._parse_level(level) == expected


def test_configure_logging_warns_on_unknown_level(package_logger):
    stream = io.StringIO()

    logging_config.configure_logging("VERBOSE", stream=stream)

    assert package_logger.level == logging.INFO
    assert "WARNING Unknown log level 'VERBOSE', using INFO" in stream.getvalue()
