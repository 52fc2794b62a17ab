"""
Tests for the connection state machine.
"""

from __future__ import annotations

import pytest

from ws_request_client._internal.state_machine import (
    ConnectionState,
    ConnectionStateMachine,
)
from ws_request_client.exceptions import RpcInvalidStateError


@pytest.fixture
def machine() -> ConnectionStateMachine:
    return ConnectionStateMachine()


class TestTransitions:
    def test_initial_state(self, machine: ConnectionStateMachine) -> None:
        assert machine.state is ConnectionState.UNINITIALIZED
        assert not machine.is_terminal

    def test_connect_then_peer_close(self, machine: ConnectionStateMachine) -> None:
        """
        Verifies that:
        - transition() returns the previous state
        - A closed connection can be opened again
        """
        assert machine.transition(ConnectionState.CONNECTING) is ConnectionState.UNINITIALIZED
        assert machine.transition(ConnectionState.OPEN) is ConnectionState.CONNECTING
        machine.transition(ConnectionState.UNINITIALIZED)
        machine.transition(ConnectionState.CONNECTING)

        assert machine.state is ConnectionState.CONNECTING

    def test_failed_connect_reverts(self, machine: ConnectionStateMachine) -> None:
        machine.transition(ConnectionState.CONNECTING)
        machine.transition(ConnectionState.UNINITIALIZED)
        assert machine.state is ConnectionState.UNINITIALIZED

    @pytest.mark.parametrize(
        "path",
        [
            [ConnectionState.CLOSED],
            [ConnectionState.CONNECTING, ConnectionState.CLOSED],
            [ConnectionState.CONNECTING, ConnectionState.OPEN, ConnectionState.CLOSED],
        ],
    )
    def test_closed_is_reachable(
        self, machine: ConnectionStateMachine, path: list[ConnectionState]
    ) -> None:
        for state in path:
            machine.transition(state)
        assert machine.is_terminal


class TestIllegalTransitions:
    @pytest.mark.parametrize(
        "target", [ConnectionState.OPEN, ConnectionState.UNINITIALIZED]
    )
    def test_from_uninitialized(
        self, machine: ConnectionStateMachine, target: ConnectionState
    ) -> None:
        assert not machine.can_transition(target)
        with pytest.raises(RpcInvalidStateError):
            machine.transition(target)
        assert machine.state is ConnectionState.UNINITIALIZED

    def test_open_cannot_connect_again(self, machine: ConnectionStateMachine) -> None:
        machine.transition(ConnectionState.CONNECTING)
        machine.transition(ConnectionState.OPEN)
        with pytest.raises(RpcInvalidStateError, match="open -> connecting"):
            machine.transition(ConnectionState.CONNECTING)

    @pytest.mark.parametrize("target", list(ConnectionState))
    def test_closed_is_terminal(
        self, machine: ConnectionStateMachine, target: ConnectionState
    ) -> None:
        machine.transition(ConnectionState.CLOSED)
        with pytest.raises(RpcInvalidStateError):
            machine.transition(target)
