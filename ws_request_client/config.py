"""Configuration dataclasses for the WebSocket request/response client.

This module provides immutable configuration objects for the transport options
and the reconnect policy, plus the resolver that builds them from the raw,
user-supplied option mapping.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from .logger import get_logger
from .schemas import RawClientOptions, RawReconnectOptions
from .utils import pydantic_parse

logger = get_logger("ws_request_client.config")

DEFAULT_MAX_PAYLOAD = 100 * 1024 * 1024  # 100 MiB
DEFAULT_RECONNECT_DELAY = 1000  # milliseconds
DEFAULT_RECONNECT_ATTEMPTS = 5


@dataclass(frozen=True)
class ReconnectConfig:
    """Configuration for reconnecting after a failed connection attempt.

    Parameters
    ----------
    reconnect : bool, default False
        Whether a failed connection attempt is retried at all.
    delay : int, default 1000
        Delay in milliseconds before each reconnect attempt. The delay is
        fixed (linear backoff), it does not grow between attempts.
    attempts : int | None, default 5
        Maximum number of reconnect attempts. ``None`` means no maximum is
        configured, in which case reconnecting is refused outright.

    Examples
    --------
    >>> config = ReconnectConfig()
    >>> assert not config.reconnect
    >>> assert config.delay_seconds == 1.0

    >>> config = ReconnectConfig(reconnect=True, delay=10000, attempts=50)
    >>> assert config.attempts == 50
    """

    reconnect: bool = False
    delay: int = DEFAULT_RECONNECT_DELAY
    attempts: int | None = DEFAULT_RECONNECT_ATTEMPTS

    @property
    def delay_seconds(self) -> float:
        return self.delay / 1000


@dataclass(frozen=True)
class ClientConfig:
    """Complete configuration for the client.

    Parameters
    ----------
    max_payload : int, default 100 MiB
        Maximum size in bytes of a single incoming message. Larger messages
        make the transport close the connection.
    auto_pong : bool | None, default None
        Whether pings are answered automatically. The websockets transport
        always answers pings; ``False`` is logged and ignored.
    protocol_version : int | None, default None
        WebSocket protocol version. Only version 13 is supported by the
        websockets transport; other values are logged and ignored.
    per_message_deflate : bool | dict[str, Any] | None, default None
        permessage-deflate compression. ``None`` or ``True`` enables the
        transport default, ``False`` disables compression, a mapping tunes
        the extension (``serverNoContextTakeover``, ``clientNoContextTakeover``,
        ``serverMaxWindowBits``, ``clientMaxWindowBits``).
    handshake_timeout : int | None, default None
        Opening handshake timeout in milliseconds. ``None`` uses 30 seconds.
    request_timeout : float | None, default None
        Default time in seconds to wait for a reply. ``None`` waits forever.
    reconnect : ReconnectConfig, default ReconnectConfig()
        Reconnect policy configuration.
    extra : dict[str, Any], default {}
        Unrecognized options, kept untouched. The transport ignores them.
    """

    max_payload: int = DEFAULT_MAX_PAYLOAD
    auto_pong: bool | None = None
    protocol_version: int | None = None
    per_message_deflate: bool | dict[str, Any] | None = None
    handshake_timeout: int | None = None
    request_timeout: float | None = None
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def handshake_timeout_seconds(self) -> float | None:
        if self.handshake_timeout is None:
            return None
        return self.handshake_timeout / 1000


def resolve_reconnect_config(raw: RawReconnectOptions | None) -> ReconnectConfig:
    if raw is None:
        return ReconnectConfig()
    defaults = ReconnectConfig()
    return ReconnectConfig(
        reconnect=raw.reconnect if raw.reconnect is not None else defaults.reconnect,
        delay=raw.delay if raw.delay is not None else defaults.delay,
        attempts=raw.attempts if raw.attempts is not None else defaults.attempts,
    )


def resolve_client_config(
    raw: Mapping[str, Any] | ClientConfig | None = None,
) -> ClientConfig:
    """Build a ClientConfig from user-supplied options.

    Every recognized option is applied only if it passes its type and
    positivity check; otherwise the documented default is used. This
    function never raises.

    Parameters
    ----------
    raw : Mapping[str, Any] | ClientConfig | None
        Raw options using the camelCase keys (``maxPayload``, ``autoPong``,
        ``protocolVersion``, ``perMessageDeflate``, ``handshakeTimeout``,
        ``requestTimeout``, ``reconnectConfig``) or their snake_case names.
        A ClientConfig is returned unchanged.

    Returns
    -------
    ClientConfig
        The resolved, immutable configuration.

    Examples
    --------
    >>> config = resolve_client_config({"maxPayload": -1})
    >>> assert config.max_payload == DEFAULT_MAX_PAYLOAD

    >>> config = resolve_client_config(
    ...     {"reconnectConfig": {"reconnect": True, "delay": 10000, "attempts": 50}}
    ... )
    >>> assert config.reconnect.delay == 10000
    """
    if isinstance(raw, ClientConfig):
        return raw

    if not isinstance(raw, Mapping):
        if raw is not None:
            logger.warning(
                f"Ignoring client options of type {type(raw).__name__}, using defaults"
            )
        raw = {}

    data = {key: value for key, value in raw.items() if isinstance(key, str)}
    try:
        options = pydantic_parse(RawClientOptions, data)
    except ValidationError as e:
        logger.warning(f"Could not parse client options, using defaults: {e}")
        options = RawClientOptions()

    return ClientConfig(
        max_payload=(
            options.max_payload
            if options.max_payload is not None
            else DEFAULT_MAX_PAYLOAD
        ),
        auto_pong=options.auto_pong,
        protocol_version=options.protocol_version,
        per_message_deflate=options.per_message_deflate,
        handshake_timeout=options.handshake_timeout,
        request_timeout=options.request_timeout,
        reconnect=resolve_reconnect_config(options.reconnect_config),
        extra=options.extra,
    )
