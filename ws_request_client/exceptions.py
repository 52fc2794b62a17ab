"""
Exception classes for ws_request_client.

This module defines all custom exceptions raised by the library.
All exceptions inherit from WebsocketClientError, which inherits from Exception.
"""

from __future__ import annotations

import asyncio


class WebsocketClientError(Exception):
    """
    Base exception for all client-related errors.

    Catching this exception will catch all library-specific errors.
    """


class InvalidUrlError(WebsocketClientError, ValueError):
    """
    Raised at construction time when the URL scheme is not one of
    ``ws://``, ``wss://``, ``ws+unix://`` or ``wss+unix://``.
    """


class InvalidPayloadError(WebsocketClientError, TypeError):
    """
    Raised when a payload cannot carry a correlation id.

    A payload must be a mapping, or a non-empty sequence whose first
    element is a mapping.
    """


class RpcInvalidStateError(WebsocketClientError):
    """
    Raised when an operation is attempted in an invalid connection state.

    Examples of invalid states:
    - An illegal connection state transition (e.g. CLOSED -> OPEN)
    - Calling create_connection() after close() has been called
    """


class NotConnectedError(WebsocketClientError):
    """
    Raised when a request is sent while the transport is not open.

    No network interaction takes place before this error is raised.
    """


class DuplicateRequestIdError(WebsocketClientError):
    """
    Raised when a request is sent with an id that is already pending.

    This is a caller error, not a transient condition: two outstanding
    requests can never share a correlation id.
    """


class UnmatchedReplyError(WebsocketClientError):
    """
    Raised when an incoming reply carries an id with no pending request.

    This signals a protocol desync between client and server and is
    fatal to the connection.
    """


class InvalidReplyError(WebsocketClientError, ValueError):
    """
    Raised when an incoming message is not valid JSON.
    """


class SendFailureError(WebsocketClientError):
    """
    Raised when the transport fails to transmit a request.
    """


class ConnectionFailureError(WebsocketClientError):
    """
    Raised when the transport fails before reaching the open state and
    automatic reconnection is disabled or not applicable.
    """


class ReconnectExhaustedError(ConnectionFailureError):
    """
    Raised once reconnect attempts reach the configured maximum, or when
    no maximum is configured at all.
    """


class SteadyStateError(WebsocketClientError):
    """
    Raised when the transport reports an error after the connection was
    established. There is no automatic recovery from this error.
    """


class ConnectionLostError(WebsocketClientError):
    """
    Set on pending requests that are explicitly failed after the
    connection went away (see WebsocketClient.fail_all_pending()).
    """


class RequestTimeoutError(WebsocketClientError, asyncio.TimeoutError):
    """
    Raised when no reply arrives within the request timeout.

    The pending entry is removed; a reply arriving later is dropped.
    """
