"""
Tests for the logging modes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from ws_request_client.logger import (
    ENV_VAR,
    LoggingConfig,
    LoggingModes,
    get_logger,
    logging_config,
)


@pytest.fixture
def client_logger() -> Iterator[logging.Logger]:
    """The package logger, restored after the test."""
    logger = logging.getLogger("ws_request_client")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    mode = logging_config._mode
    yield logger
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate
    logging_config._mode = mode


class TestLoggingModes:
    def test_console_mode(self, client_logger: logging.Logger) -> None:
        logging_config.set_mode(LoggingModes.CONSOLE, level=logging.DEBUG)

        [handler] = client_logger.handlers
        assert type(handler) is logging.StreamHandler
        assert client_logger.level == logging.DEBUG
        assert not client_logger.propagate

    def test_no_logs_mode(self, client_logger: logging.Logger) -> None:
        logging_config.set_mode(LoggingModes.NO_LOGS)

        [handler] = client_logger.handlers
        assert isinstance(handler, logging.NullHandler)

    def test_simple_mode_installs_nothing(self, client_logger: logging.Logger) -> None:
        client_logger.handlers = []

        logging_config.set_mode(LoggingModes.SIMPLE)

        assert client_logger.handlers == []
        assert logging_config.get_mode() is LoggingModes.SIMPLE

    def test_mode_from_environment(
        self, client_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(ENV_VAR, "no_logs")

        assert LoggingConfig().get_mode() is LoggingModes.NO_LOGS

    def test_unknown_environment_value_defaults_to_simple(
        self, client_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(ENV_VAR, "verbose")

        assert LoggingConfig().get_mode() is LoggingModes.SIMPLE


class TestGetLogger:
    def test_names_nested_under_package(self, client_logger: logging.Logger) -> None:
        logging_config.set_mode(LoggingModes.SIMPLE)

        assert get_logger("ws_request_client.transport").name == (
            "ws_request_client.transport"
        )
        assert get_logger("REQUEST_CORRELATOR").name == (
            "ws_request_client.REQUEST_CORRELATOR"
        )

    def test_loguru_mode(self, client_logger: logging.Logger) -> None:
        loguru = pytest.importorskip("loguru")
        logging_config.set_mode(LoggingModes.LOGURU)

        assert get_logger("transport") is loguru.logger
