"""
Pytest configuration and shared fixtures for ws_request_client tests.

This module provides:
- Custom pytest markers for test categorization
- FakeTransport, an in-memory transport driven by the test
- In-process websockets servers for end-to-end tests
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK
from websockets.frames import Close
from websockets.protocol import State


def pytest_configure(config: pytest.Config) -> None:
    """
    Register custom pytest markers.

    This function is called during pytest initialization to register
    custom markers that can be used to categorize and filter tests.
    """
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (runs a local websockets server)",
    )
    config.addinivalue_line(
        "markers",
        "network: mark test as network test (simulates network failures)",
    )


# ============================================================================
# Fake transport
# ============================================================================


class FakeTransport:
    """
    In-memory transport implementing TransportProtocol.

    Messages queued with feed() are returned by recv() in order; an exception
    queued with fail() is raised by recv() instead. With ``echo=True`` every
    sent message is fed straight back.
    """

    def __init__(self, echo: bool = False) -> None:
        self.state = State.OPEN
        self.sent: list[str] = []
        self.echo = echo
        self.send_error: BaseException | None = None
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self.close_calls = 0
        self._incoming: asyncio.Queue[Any] = asyncio.Queue()

    async def send(self, message: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(message)
        if self.echo:
            self.feed(message)

    async def recv(self) -> str | bytes:
        item = await self._incoming.get()
        if isinstance(item, BaseException):
            self.state = State.CLOSED
            raise item
        return item

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls += 1
        self.state = State.CLOSED
        self.close_code = code
        self.close_reason = reason

    def feed(self, message: Any) -> None:
        if not isinstance(message, (str, bytes)):
            message = json.dumps(message)
        self._incoming.put_nowait(message)

    def fail(self, error: BaseException) -> None:
        self._incoming.put_nowait(error)

    def close_by_peer(self, code: int = 1000, reason: str = "bye") -> None:
        """Closing handshake started by the peer; codes other than 1000/1001
        surface as ConnectionClosedError, like websockets does."""
        error_class = ConnectionClosedOK if code in (1000, 1001) else ConnectionClosedError
        self.fail(error_class(Close(code, reason), Close(code, reason), True))

    def drop(self) -> None:
        """Connection lost without a closing handshake (1006)."""
        self.close_code = 1006
        self.fail(ConnectionClosedError(None, None))

    def sent_json(self) -> list[Any]:
        return [json.loads(message) for message in self.sent]


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def echo_transport() -> FakeTransport:
    return FakeTransport(echo=True)


@pytest.fixture
def transport_factory(fake_transport: FakeTransport) -> AsyncMock:
    """Transport factory returning the shared fake transport."""
    return AsyncMock(return_value=fake_transport)


# ============================================================================
# Local websockets servers
# ============================================================================

ServerHandler = Callable[[ServerConnection], Awaitable[None]]


@pytest.fixture
def serve_handler() -> Callable[[ServerHandler], Any]:
    """
    Start a websockets server on a free local port.

    Usage::

        async with serve_handler(handler) as url:
            ...
    """

    def _serve(handler: ServerHandler) -> Any:
        return _ServerContext(handler)

    return _serve


class _ServerContext:
    def __init__(self, handler: ServerHandler) -> None:
        self._handler = handler
        self._server: Any = None

    async def __aenter__(self) -> str:
        self._server = await serve(self._handler, "127.0.0.1", 0)
        port = self._server.sockets[0].getsockname()[1]
        return f"ws://127.0.0.1:{port}/"

    async def __aexit__(self, *args: Any) -> None:
        self._server.close()
        await self._server.wait_closed()


async def echo_handler(websocket: ServerConnection) -> None:
    async for message in websocket:
        await websocket.send(message)


@pytest_asyncio.fixture
async def echo_server_url(
    serve_handler: Callable[[ServerHandler], Any],
) -> AsyncIterator[str]:
    async with serve_handler(echo_handler) as url:
        yield url
