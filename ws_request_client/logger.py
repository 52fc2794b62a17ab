"""
Logging setup for ws_request_client.

Every module gets its logger from get_logger(). The backend is chosen once per
process, either with logging_config.set_mode() or the WS_CLIENT_LOGGING
environment variable (NO_LOGS, CONSOLE, SIMPLE, LOGURU).
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from logging.config import dictConfig
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from loguru import Logger as LoguruLogger  # type: ignore[import-not-found]

ENV_VAR = "WS_CLIENT_LOGGING"

ROOT_LOGGER_NAME = "ws_request_client"


class LoggingModes(Enum):
    # Silence the client's loggers
    NO_LOGS = 0
    # Connection and request events to stderr, one timestamped line each
    CONSOLE = 1
    # Plain stdlib loggers; the application owns handlers and levels
    SIMPLE = 2
    # Route every client logger to loguru's global logger
    LOGURU = 3


class LoggingConfig:
    def __init__(self) -> None:
        self._mode: LoggingModes | None = None

    formatters = {
        "client": {
            "format": "%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    }

    def _dict_config(self, handler: dict[str, Any], level: int) -> dict[str, Any]:
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": self.formatters,
            "handlers": {"client": handler},
            "loggers": {
                ROOT_LOGGER_NAME: {
                    "handlers": ["client"],
                    "propagate": False,
                    "level": level,
                },
            },
        }

    def get_mode(self) -> LoggingModes:
        # First use without set_mode(): take WS_CLIENT_LOGGING, else SIMPLE
        if self._mode is None:
            mode = LoggingModes.__members__.get(
                os.environ.get(ENV_VAR, "").upper(), LoggingModes.SIMPLE
            )
            self.set_mode(mode)
        if self._mode is None:
            raise RuntimeError("Logging mode must be set by set_mode() method")
        return self._mode

    def set_mode(
        self, mode: LoggingModes = LoggingModes.CONSOLE, level: int = logging.INFO
    ) -> None:
        """
        Pick where the client's connection and request logs go.

        CONSOLE and NO_LOGS install a handler on the "ws_request_client"
        logger through 'logging.config.dictConfig()'. SIMPLE and LOGURU
        install nothing. Call this before creating clients, since modules
        fetch their logger at import time.

        Args:
            mode (LoggingModes, optional): Where logs go. Defaults to
            LoggingModes.CONSOLE.
            level (int, optional): Level for the CONSOLE handler. Defaults to
            logging.INFO.
        """
        self._mode = mode
        if mode == LoggingModes.CONSOLE:
            handler = {"class": "logging.StreamHandler", "formatter": "client"}
            dictConfig(self._dict_config(handler, level))
        elif mode == LoggingModes.NO_LOGS:
            dictConfig(self._dict_config({"class": "logging.NullHandler"}, level))
        # SIMPLE leaves handlers to the application, LOGURU to loguru's sinks


# Singleton for logging configuration
logging_config = LoggingConfig()


def get_logger(name: str) -> logging.Logger | LoguruLogger:
    """
    Logger for a client module.

    Args:
        name (str): Module name; names outside the package are nested under
        "ws_request_client".

    Returns:
        A stdlib logger, or loguru's logger in LOGURU mode.
    """
    mode = logging_config.get_mode()
    if mode == LoggingModes.LOGURU:
        from loguru import logger

        return logger
    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
