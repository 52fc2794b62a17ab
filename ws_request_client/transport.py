"""
Transport adapter over the websockets library.

The connection manager only talks to the small TransportProtocol interface;
this module provides its default implementation and the mapping of
ClientConfig options onto websockets connection parameters.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection, connect, unix_connect
from websockets.extensions.permessage_deflate import ClientPerMessageDeflateFactory
from websockets.protocol import State

from .logger import get_logger
from .utils import is_mapping, is_unix_url, parse_unix_url

if TYPE_CHECKING:
    from .config import ClientConfig

logger = get_logger(__name__)

# The websockets library implements RFC 6455 only
SUPPORTED_PROTOCOL_VERSION = 13

# Used when no handshake timeout is configured
DEFAULT_OPEN_TIMEOUT = 30.0

# perMessageDeflate option names -> ClientPerMessageDeflateFactory arguments
_DEFLATE_OPTIONS = {
    "serverNoContextTakeover": "server_no_context_takeover",
    "clientNoContextTakeover": "client_no_context_takeover",
    "serverMaxWindowBits": "server_max_window_bits",
    "clientMaxWindowBits": "client_max_window_bits",
}


def _deflate_factory(options: dict[str, Any]) -> ClientPerMessageDeflateFactory:
    factory_kwargs: dict[str, Any] = {}
    for key, value in options.items():
        name = _DEFLATE_OPTIONS.get(key, key)
        if name in _DEFLATE_OPTIONS.values():
            factory_kwargs[name] = value
        else:
            logger.debug(f"Ignoring unsupported perMessageDeflate option: {key}")
    return ClientPerMessageDeflateFactory(**factory_kwargs)


def prepare_connection_kwargs(config: ClientConfig) -> dict[str, Any]:
    """Map a ClientConfig onto websockets connect() parameters.

    Parameters
    ----------
    config : ClientConfig
        The resolved client configuration.

    Returns
    -------
    dict[str, Any]
        Keyword arguments for ``websockets.asyncio.client.connect``.
        Unrecognized options from ``config.extra`` are not forwarded.
    """
    connect_kwargs: dict[str, Any] = {}

    # Reject oversized messages at protocol level
    connect_kwargs["max_size"] = config.max_payload

    if config.per_message_deflate is False:
        connect_kwargs["compression"] = None
        logger.debug("WebSocket compression disabled")
    elif is_mapping(config.per_message_deflate):
        connect_kwargs["compression"] = None
        connect_kwargs["extensions"] = [_deflate_factory(config.per_message_deflate)]
        logger.debug(
            f"Enabling WebSocket compression with options: {config.per_message_deflate}"
        )
    else:
        connect_kwargs["compression"] = "deflate"

    timeout = config.handshake_timeout_seconds
    connect_kwargs["open_timeout"] = timeout if timeout is not None else DEFAULT_OPEN_TIMEOUT

    if (
        config.protocol_version is not None
        and config.protocol_version != SUPPORTED_PROTOCOL_VERSION
    ):
        logger.warning(
            f"protocolVersion {config.protocol_version} is not supported, "
            f"using {SUPPORTED_PROTOCOL_VERSION}"
        )

    if config.auto_pong is False:
        logger.warning("autoPong=False is not supported, pings are answered automatically")

    # Kept on the config for callers, never handed to connect()
    if config.extra:
        logger.debug(f"Ignoring unrecognized options: {sorted(config.extra)}")

    logger.debug(f"Connection parameters: {connect_kwargs}")
    return connect_kwargs


class WebsocketsTransport:
    """
    TransportProtocol implementation backed by a websockets ClientConnection.

    Parameters
    ----------
    connection : ClientConnection
        An open connection from ``websockets.asyncio.client.connect``.

    Examples
    --------
    >>> transport = await WebsocketsTransport.connect("ws://localhost:8080/", config)
    >>> await transport.send('{"id": 1}')
    >>> reply = await transport.recv()
    """

    def __init__(self, connection: ClientConnection) -> None:
        self._connection = connection

    @classmethod
    async def connect(cls, url: str, config: ClientConfig) -> WebsocketsTransport:
        """
        Open a connection to ``url``, resolving once the handshake completes.

        ``ws+unix://`` and ``wss+unix://`` URLs connect through the unix
        socket named in the URL.

        Raises
        ------
        websockets.exceptions.WebSocketException
            If the handshake fails.
        OSError
            For network-level errors.
        TimeoutError
            If the handshake doesn't complete within the open timeout.
        """
        connect_kwargs = prepare_connection_kwargs(config)
        if is_unix_url(url):
            socket_path, uri = parse_unix_url(url)
            logger.debug(f"Connecting to {uri} through unix socket {socket_path}")
            connection = await unix_connect(socket_path, uri, **connect_kwargs)
        else:
            connection = await connect(url, **connect_kwargs)
        return cls(connection)

    @property
    def state(self) -> State:
        return self._connection.protocol.state

    @property
    def close_code(self) -> int | None:
        return self._connection.protocol.close_code

    @property
    def close_reason(self) -> str | None:
        return self._connection.protocol.close_reason

    async def send(self, message: str) -> None:
        await self._connection.send(message)

    async def recv(self) -> str | bytes:
        return await self._connection.recv()

    async def close(self, code: int = 1000, reason: str = "") -> None:
        await self._connection.close(code, reason)
