"""
WebsocketClient module provides a request/response client on top of a single
WebSocket connection: every request carries a correlation id and the call
returns once the reply with the same id arrives.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ._internal.request_correlator import RequestCorrelator, RequestId
from .config import ClientConfig, ReconnectConfig, resolve_client_config
from .connection_manager import ConnectionManager
from .exceptions import (
    ConnectionLostError,
    InvalidUrlError,
    NotConnectedError,
    WebsocketClientError,
)
from .logger import get_logger
from .utils import is_unix_url, is_valid_url, parse_unix_url

if TYPE_CHECKING:
    from ._internal.protocols import OnErrorCallback, TransportFactory
    from ._internal.state_machine import ConnectionState

logger = get_logger(__name__)

# Sentinel for "use the configured request timeout"
_DEFAULT_TIMEOUT_SENTINEL = object()


class WebsocketClient:
    """
    Request/response client over a WebSocket connection.

    The client can:
    - Send a JSON payload and await the correlated JSON reply
    - Run any number of requests concurrently; replies may arrive in any order
    - Reconnect a failed connection attempt with a fixed delay, if configured
    - Connect through TCP (``ws://``, ``wss://``) or a unix socket
      (``ws+unix://``, ``wss+unix://``)

    Replies are matched on the ``id`` field. A payload without an id gets the
    next value of a per-client counter starting at 1; for a list payload the
    id lives on its first element.
    """

    def __init__(
        self,
        url: str,
        config: Mapping[str, Any] | ClientConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
        on_error: list[OnErrorCallback] | None = None,
    ) -> None:
        """Initialize the WebsocketClient.

        Parameters
        ----------
        url : str
            Server URL, e.g. ``ws://localhost:8080/ws`` or
            ``ws+unix:///tmp/app.sock:/ws``.
        config : Mapping[str, Any] | ClientConfig | None, optional
            Client options (``maxPayload``, ``autoPong``, ``protocolVersion``,
            ``perMessageDeflate``, ``handshakeTimeout``, ``requestTimeout``,
            ``reconnectConfig``). Invalid values fall back to their defaults.
        transport_factory : TransportFactory | None, optional
            Coroutine function opening the transport. Defaults to the
            websockets library.
        on_error : list[OnErrorCallback] | None, optional
            Callbacks awaited with fatal connection errors (unmatched reply,
            transport error after the connection was open).

        Raises
        ------
        InvalidUrlError
            If the URL scheme is not supported, or a unix socket URL has no
            socket path.

        Examples
        --------
        Using defaults::

            async with WebsocketClient("ws://localhost:8080/ws") as client:
                reply = await client.send_receive_message({"method": "status"})

        With reconnect on connection failure::

            client = WebsocketClient(
                "ws://localhost:8080/ws",
                {"reconnectConfig": {"reconnect": True, "delay": 500, "attempts": 10}},
            )
            await client.create_connection()
        """
        if not is_valid_url(url):
            raise InvalidUrlError(
                "Url must start with `wss://`, `ws://`, `wss+unix://`, or `ws+unix://`."
            )
        if is_unix_url(url):
            try:
                parse_unix_url(url)
            except ValueError as e:
                raise InvalidUrlError(str(e)) from e

        self._url = url
        self._config = resolve_client_config(config)
        self._correlator = RequestCorrelator()
        self._connection = ConnectionManager(
            url,
            self._config,
            self._correlator.on_message,
            transport_factory=transport_factory,
            error_callbacks=on_error,
        )

    @classmethod
    async def create_with_connection(
        cls,
        url: str,
        config: Mapping[str, Any] | ClientConfig | None = None,
        **kwargs: Any,
    ) -> WebsocketClient:
        """Build a client and connect it before returning."""
        client = cls(url, config, **kwargs)
        await client.create_connection()
        return client

    @property
    def url(self) -> str:
        return self._url

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def reconnect_config(self) -> ReconnectConfig:
        return self._config.reconnect

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection.state

    @property
    def close_code(self) -> int | None:
        return self._connection.close_code

    @property
    def close_reason(self) -> str | None:
        return self._connection.close_reason

    async def create_connection(self) -> None:
        """Connect to the server, returning once the connection is open.

        Raises
        ------
        ConnectionFailureError
            If connecting fails and reconnect is disabled.
        ReconnectExhaustedError
            If every reconnect attempt failed.
        """
        await self._connection.create_connection()

    def is_connected(self) -> bool:
        return self._connection.is_connected()

    async def close(self, code: int = 1000, reason: str = "") -> None:
        await self._connection.close(code, reason)

    async def wait_on_reader(self) -> None:
        """Wait until the connection's reader stops.

        Re-raises the fatal error that stopped it, e.g. UnmatchedReplyError.
        """
        await self._connection.wait_on_reader()

    def create_request_id(self, payload: Any = None) -> RequestId:
        return self._correlator.create_request_id(payload)

    def create_request_message(self, request_id: RequestId, payload: Any) -> str:
        return self._correlator.create_request_message(request_id, payload)

    async def send_receive_message(
        self,
        payload: Any = None,
        timeout: object | float | None = _DEFAULT_TIMEOUT_SENTINEL,
    ) -> Any:
        """
        Send a payload and wait for the reply carrying the same id.

        Args:
            payload: A mapping, or a non-empty list whose first element is a
                mapping. An ``id`` already present is reused.
            timeout: Maximum time to wait for the reply (seconds). Defaults to
                the configured ``requestTimeout``; None waits forever.

        Returns:
            The full parsed reply

        Raises:
            NotConnectedError: If the client is not connected
            InvalidPayloadError: If the payload can't carry an id
            DuplicateRequestIdError: If a request with the same id is pending
            SendFailureError: If the message could not be sent
            RequestTimeoutError: If no reply arrives in time
        """
        if not self.is_connected():
            raise NotConnectedError("Websocket is not connected")

        request_id = self.create_request_id(payload)
        message = self.create_request_message(request_id, payload)
        # Registered before the first await, so no other task can take the id
        future = self._correlator.register(request_id)

        try:
            await self._connection.send(message)
        except (WebsocketClientError, asyncio.CancelledError):
            self._correlator.discard(request_id)
            raise
        logger.debug(f"Sent request {request_id!r}")

        actual_timeout: float | None
        if timeout is _DEFAULT_TIMEOUT_SENTINEL:
            actual_timeout = self._config.request_timeout
        else:
            actual_timeout = timeout  # type: ignore[assignment]

        return await self._correlator.wait(request_id, future, actual_timeout)

    def is_empty_awaiting_response(self) -> bool:
        return self._correlator.is_empty()

    @property
    def pending_count(self) -> int:
        return self._correlator.pending_count

    def fail_all_pending(self, error: BaseException | None = None) -> int:
        """
        Reject every request still waiting for a reply.

        Pending requests are not failed automatically when the connection
        goes away; call this after a close or a fatal error to release them.

        Returns:
            Number of requests that were failed
        """
        if error is None:
            error = ConnectionLostError("Connection lost before a reply arrived")
        return self._correlator.fail_all(error)

    async def __aenter__(self) -> WebsocketClient:
        await self.create_connection()
        return self

    async def __aexit__(self, *args: Any, **kwargs: Any) -> None:
        await self.close()
