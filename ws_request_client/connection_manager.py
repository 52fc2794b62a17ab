"""
ConnectionManager owns the transport handle of a client: it performs the
connect handshake, runs the reader task that feeds incoming messages to the
request correlator, and drives the connection state machine and the
reconnect policy.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import TYPE_CHECKING, Any

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.protocol import State

from ._internal.reconnect import TRANSPORT_ERRORS, ReconnectPolicy
from ._internal.state_machine import ConnectionState, ConnectionStateMachine
from .exceptions import (
    ConnectionFailureError,
    NotConnectedError,
    ReconnectExhaustedError,
    RpcInvalidStateError,
    SendFailureError,
    SteadyStateError,
    WebsocketClientError,
)
from .logger import get_logger
from .transport import WebsocketsTransport

if TYPE_CHECKING:
    from ._internal.protocols import (
        MessageHandler,
        OnErrorCallback,
        TransportFactory,
        TransportProtocol,
    )
    from .config import ClientConfig

logger = get_logger(__name__)

# WebSocket close codes (RFC 6455 Section 7.4)
WS_CLOSE_CODE_NORMAL = 1000  # Normal closure
WS_CLOSE_CODE_PROTOCOL_ERROR = 1002  # Protocol/implementation violation
WS_CLOSE_CODE_INTERNAL_ERROR = 1011  # Unexpected condition


def _close_info(
    error: ConnectionClosed, transport: TransportProtocol
) -> tuple[int | None, str | None]:
    close_frame = getattr(error, "rcvd", None)
    if close_frame is not None:
        return close_frame.code, close_frame.reason
    return transport.close_code, transport.close_reason


class ConnectionManager:
    """
    Manages the lifecycle of a single WebSocket transport.

    Lifecycle::

        UNINITIALIZED -> CONNECTING -> OPEN -> UNINITIALIZED (closed by peer)
                                            -> CLOSED (fatal error or close())
        CONNECTING -> UNINITIALIZED (failed; reconnect if enabled)
                   -> CLOSED (reconnect attempts exhausted)

    Only failed connection attempts are retried. A connection that closes
    after it was open is not reconnected automatically; calling
    create_connection() again opens a new one.
    """

    def __init__(
        self,
        url: str,
        config: ClientConfig,
        message_handler: MessageHandler,
        transport_factory: TransportFactory | None = None,
        error_callbacks: list[OnErrorCallback] | None = None,
    ) -> None:
        """Initialize the ConnectionManager.

        Parameters
        ----------
        url : str
            WebSocket URL, already validated.
        config : ClientConfig
            Resolved client configuration.
        message_handler : MessageHandler
            Called with every raw incoming message. Errors it raises are
            fatal to the connection.
        transport_factory : TransportFactory | None, optional
            Coroutine function opening a transport for (url, config).
            Defaults to WebsocketsTransport.connect.
        error_callbacks : list[OnErrorCallback] | None, optional
            Awaited with every fatal lifecycle error.
        """
        self.url = url
        self.config = config
        self._message_handler = message_handler
        self._transport_factory = transport_factory or WebsocketsTransport.connect
        self._error_callbacks: list[OnErrorCallback] = list(error_callbacks or [])

        self._state_machine = ConnectionStateMachine()
        self._transport: TransportProtocol | None = None
        self._read_task: asyncio.Task[None] | None = None
        self._connect_task: asyncio.Task[None] | None = None
        self._close_code: int | None = None
        self._close_reason: str | None = None

        self._reconnect_policy = ReconnectPolicy(config.reconnect, self._open_transport)

    @property
    def state(self) -> ConnectionState:
        return self._state_machine.state

    @property
    def reconnect_policy(self) -> ReconnectPolicy:
        return self._reconnect_policy

    @property
    def close_code(self) -> int | None:
        """WebSocket close code from the last connection closure."""
        return self._close_code

    @property
    def close_reason(self) -> str | None:
        """WebSocket close reason from the last connection closure."""
        return self._close_reason

    def is_connected(self) -> bool:
        return self._transport is not None and self._transport.state is State.OPEN

    async def create_connection(self) -> None:
        """Open the transport, suspending until it is open or failed for good.

        Returns immediately if already connected. Concurrent callers share
        the same connection attempt.

        Raises
        ------
        ConnectionFailureError
            If the attempt fails and reconnect is disabled.
        ReconnectExhaustedError
            If the attempt and every reconnect attempt failed.
        RpcInvalidStateError
            If the manager was closed.
        """
        if self.is_connected():
            return

        if self._state_machine.is_terminal:
            raise RpcInvalidStateError(
                "Connection is closed. Create a new client to connect again."
            )

        if self._connect_task is None or self._connect_task.done():
            self._connect_task = asyncio.create_task(self._connect())
        connect_task = self._connect_task
        try:
            await asyncio.shield(connect_task)
        except asyncio.CancelledError:
            # close() cancelled the attempt, not our caller
            if connect_task.cancelled() and self._state_machine.is_terminal:
                raise RpcInvalidStateError(
                    "Connection was closed while connecting"
                ) from None
            raise

    async def _connect(self) -> None:
        if self._state_machine.state is ConnectionState.OPEN:
            # The transport left OPEN before the reader noticed
            self._discard_transport()

        try:
            await self._open_transport()
        except TRANSPORT_ERRORS as e:
            await self.on_connection_failed(e)
        except ValueError as e:
            # Bad connection parameters fail the same way on every attempt
            logger.error(f"Invalid connection parameters for {self.url}: {e}")
            raise ConnectionFailureError(
                f"Invalid connection parameters: {e}"
            ) from e

    async def _open_transport(self) -> None:
        self._state_machine.transition(ConnectionState.CONNECTING)
        logger.info("Connecting to %s...", self.url)
        try:
            transport = await self._transport_factory(self.url, self.config)
        except BaseException:
            # close() may have moved us to CLOSED meanwhile
            if self._state_machine.state is ConnectionState.CONNECTING:
                self._state_machine.transition(ConnectionState.UNINITIALIZED)
            raise

        self._transport = transport
        self._close_code = None
        self._close_reason = None
        self._state_machine.transition(ConnectionState.OPEN)
        self._read_task = asyncio.create_task(self.reader(transport))
        logger.info("Connected to %s", self.url)

    async def on_connection_failed(self, error: BaseException) -> None:
        """Handle a failure that happened before the transport was open.

        Delegates to the reconnect policy when reconnect is enabled and
        attempts remain; otherwise the failure is fatal.
        """
        self._discard_transport()

        policy = self._reconnect_policy
        if policy.enabled and policy.has_remaining_attempts():
            logger.warning(
                "Connection to %s failed: %s: %s",
                self.url,
                type(error).__name__,
                error,
            )
            try:
                await policy.reconnect()
            except ReconnectExhaustedError:
                self._state_machine.transition(ConnectionState.CLOSED)
                raise
            return

        logger.error(f"Connection to {self.url} failed: {type(error).__name__}: {error}")
        raise ConnectionFailureError(
            f"Websocket connection error: {error}"
        ) from error

    def on_close(
        self,
        code: int | None,
        reason: str | None,
        transport: TransportProtocol | None = None,
    ) -> None:
        """Steady-state teardown after the connection closed or dropped."""
        if transport is not None and transport is not self._transport:
            logger.debug("Ignoring close of a discarded transport")
            return

        logger.info(
            "Connection was terminated. Close code: %s, reason: %s",
            code,
            reason or "(no reason provided)",
        )
        self._close_code = code
        self._close_reason = reason
        self._discard_transport()

    async def on_error(
        self, error: BaseException, transport: TransportProtocol | None = None
    ) -> None:
        """Handle a transport error after the connection was open.

        Always fatal: raises SteadyStateError chained to the transport error.
        """
        fatal = SteadyStateError(f"WebSocket error: {error}")
        fatal.__cause__ = error
        await self._handle_fatal(fatal, transport, WS_CLOSE_CODE_INTERNAL_ERROR)

    async def _handle_fatal(
        self,
        error: Exception,
        transport: TransportProtocol | None,
        close_code: int,
    ) -> None:
        if transport is not None and transport is not self._transport:
            logger.debug(f"Ignoring error of a discarded transport: {error}")
            return

        logger.exception(f"Fatal connection error: {type(error).__name__}: {error}")
        current = self._transport
        self._transport = None
        if not self._state_machine.is_terminal:
            self._state_machine.transition(ConnectionState.CLOSED)

        if current is not None:
            with suppress(WebSocketException, OSError, RuntimeError):
                await current.close(close_code)

        for callback in self._error_callbacks:
            try:
                await callback(error)
            except Exception as e:
                # POLICY: a failing user callback doesn't mask the original error
                logger.error("Error callback failed: %s: %s", type(e).__name__, e)

        raise error

    def _discard_transport(self) -> None:
        self._transport = None
        if self._state_machine.state is ConnectionState.OPEN:
            self._state_machine.transition(ConnectionState.UNINITIALIZED)

    async def reader(self, transport: TransportProtocol) -> None:
        """Background task feeding incoming messages to the message handler.

        Runs until the transport closes, fails, or the task is cancelled.
        A closure ends the task quietly whatever its close code. Transport
        errors and message handling errors (unmatched or malformed replies)
        are fatal and end the task with the error, see wait_on_reader().
        """
        try:
            while True:
                message = await transport.recv()
                logger.debug("Received message via reader")
                self._message_handler(message)

        except asyncio.CancelledError:
            # Normal cancellation during close()
            logger.info("Read task was cancelled.")

        except ConnectionClosed as e:
            # Any close code, including an abnormal 1006 drop
            code, reason = _close_info(e, transport)
            self.on_close(code, reason, transport)

        except (WebSocketException, OSError) as e:
            await self.on_error(e, transport)

        except (WebsocketClientError, ValueError, TypeError, KeyError) as e:
            # Protocol desync or malformed reply - can't recover
            await self._handle_fatal(e, transport, WS_CLOSE_CODE_PROTOCOL_ERROR)

    async def send(self, message: str) -> None:
        """Transmit a serialized request.

        Raises
        ------
        NotConnectedError
            If there is no open transport.
        SendFailureError
            If the transport fails to send.
        """
        transport = self._transport
        if transport is None or transport.state is not State.OPEN:
            raise NotConnectedError("Websocket is not connected")
        try:
            await transport.send(message)
        except (WebSocketException, OSError) as e:
            raise SendFailureError(f"Failed to send message: {e}") from e

    async def wait_on_reader(self) -> None:
        """Wait for the reader task to complete.

        Re-raises the fatal error the reader ended with, if any.
        """
        if self._read_task:
            try:
                await self._read_task
            except asyncio.CancelledError:
                logger.info("Read task was cancelled.")

    async def cancel_reader_task(self) -> None:
        """Cancel the reader task if it exists and wait for it to finish."""
        task = self._read_task
        if task is None or task is asyncio.current_task():
            return
        logger.debug("Cancelling reader task...")
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        self._read_task = None

    async def close(self, code: int = WS_CLOSE_CODE_NORMAL, reason: str = "") -> None:
        """Close the connection for good.

        This method is idempotent and can be safely called multiple times.
        """
        if self._state_machine.is_terminal:
            logger.debug("Connection already closed, skipping duplicate call")
            return

        logger.info("Closing connection to %s...", self.url)
        transport = self._transport
        self._transport = None
        self._state_machine.transition(ConnectionState.CLOSED)

        connect_task = self._connect_task
        if (
            connect_task is not None
            and not connect_task.done()
            and connect_task is not asyncio.current_task()
        ):
            connect_task.cancel()
            with suppress(asyncio.CancelledError, WebsocketClientError):
                await connect_task

        await self.cancel_reader_task()

        if transport is not None:
            with suppress(WebSocketException, OSError, RuntimeError):
                await transport.close(code, reason)
            self._close_code = code
            self._close_reason = reason

    def add_error_callback(self, callback: OnErrorCallback) -> None:
        self._error_callbacks.append(callback)

    @property
    def transport(self) -> Any:
        return self._transport
