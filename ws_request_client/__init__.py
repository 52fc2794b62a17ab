"""
ws_request_client - request/response over WebSockets

An asyncio client that correlates JSON requests and replies over a single
WebSocket connection, with a bounded reconnect policy for failed connection
attempts.
"""

# Protocol definitions
from ws_request_client._internal.protocols import TransportProtocol
from ws_request_client._internal.request_correlator import RequestCorrelator
from ws_request_client._internal.state_machine import ConnectionState

# Configuration
from ws_request_client.config import (
    ClientConfig,
    ReconnectConfig,
    resolve_client_config,
)
from ws_request_client.connection_manager import ConnectionManager

# Exceptions
from ws_request_client.exceptions import (
    ConnectionFailureError,
    ConnectionLostError,
    DuplicateRequestIdError,
    InvalidPayloadError,
    InvalidReplyError,
    InvalidUrlError,
    NotConnectedError,
    ReconnectExhaustedError,
    RequestTimeoutError,
    RpcInvalidStateError,
    SendFailureError,
    SteadyStateError,
    UnmatchedReplyError,
    WebsocketClientError,
)

# Logging utilities
from ws_request_client.logger import LoggingModes, get_logger, logging_config
from ws_request_client.transport import WebsocketsTransport
from ws_request_client.websocket_client import WebsocketClient

__version__ = "0.1.0"

__all__ = [
    "ClientConfig",
    "ConnectionFailureError",
    "ConnectionLostError",
    "ConnectionManager",
    "ConnectionState",
    "DuplicateRequestIdError",
    "InvalidPayloadError",
    "InvalidReplyError",
    "InvalidUrlError",
    "LoggingModes",
    "NotConnectedError",
    "ReconnectConfig",
    "ReconnectExhaustedError",
    "RequestCorrelator",
    "RequestTimeoutError",
    "RpcInvalidStateError",
    "SendFailureError",
    "SteadyStateError",
    "TransportProtocol",
    "UnmatchedReplyError",
    "WebsocketClient",
    "WebsocketClientError",
    "WebsocketsTransport",
    "get_logger",
    "logging_config",
    "resolve_client_config",
]
