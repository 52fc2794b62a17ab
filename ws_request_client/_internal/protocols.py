"""
Protocol definitions for the transport seam.

These protocols let the connection manager depend on an abstract transport
rather than on the websockets library directly, so tests and alternative
transports can be plugged in.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing_extensions import TypeAlias
    from websockets.protocol import State

    from ..config import ClientConfig


@runtime_checkable
class TransportProtocol(Protocol):
    """
    Protocol defining the interface of an open WebSocket transport.

    The readiness state uses ``websockets.protocol.State``
    (CONNECTING, OPEN, CLOSING, CLOSED).

    Examples
    --------
    >>> if isinstance(my_transport, TransportProtocol):
    ...     await my_transport.send('{"id": 1}')

    See Also
    --------
    WebsocketsTransport : Implementation backed by the websockets library.
    """

    @property
    def state(self) -> State:
        """
        Current readiness state of the transport.
        """
        ...

    async def send(self, message: str) -> None:
        """
        Send a text frame.

        Notes
        -----
        Raises a websockets exception (or OSError) when the frame can't be sent.
        """
        ...

    async def recv(self) -> str | bytes:
        """
        Receive the next message, blocking until one is available.

        Notes
        -----
        Raises ``ConnectionClosedOK`` on a normal closure and
        ``ConnectionClosedError`` on an abnormal one.
        """
        ...

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """
        Close the transport with the given WebSocket close code.
        """
        ...

    @property
    def close_code(self) -> int | None:
        """Close code of the closing handshake, if any."""
        ...

    @property
    def close_reason(self) -> str | None:
        """Close reason of the closing handshake, if any."""
        ...


# Opens a transport for (url, config); raises on pre-open failure
TransportFactory: TypeAlias = Callable[[str, "ClientConfig"], Awaitable[Any]]

# Receives each raw incoming message
MessageHandler: TypeAlias = Callable[[Any], None]

# Notified of fatal lifecycle errors
OnErrorCallback: TypeAlias = Callable[[Exception], Awaitable[None]]
