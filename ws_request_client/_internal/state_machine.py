"""
Connection lifecycle state machine.

States and the transitions allowed between them::

    UNINITIALIZED -> CONNECTING -> OPEN
          ^              |          |
          +--------------+----------+   (failure / close: handle discarded)
    any non-terminal state -> CLOSED    (retries exhausted, fatal error, close())
"""

from __future__ import annotations

from enum import Enum

from ..exceptions import RpcInvalidStateError
from ..logger import get_logger

logger = get_logger("CONNECTION_STATE")


class ConnectionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.UNINITIALIZED: frozenset(
        {ConnectionState.CONNECTING, ConnectionState.CLOSED}
    ),
    ConnectionState.CONNECTING: frozenset(
        {
            ConnectionState.OPEN,
            ConnectionState.UNINITIALIZED,
            ConnectionState.CLOSED,
        }
    ),
    ConnectionState.OPEN: frozenset(
        {ConnectionState.UNINITIALIZED, ConnectionState.CLOSED}
    ),
    ConnectionState.CLOSED: frozenset(),
}


class ConnectionStateMachine:
    """
    Tracks the state of a single connection and enforces legal transitions.
    """

    def __init__(self) -> None:
        self._state = ConnectionState.UNINITIALIZED

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state is ConnectionState.CLOSED

    def can_transition(self, target: ConnectionState) -> bool:
        return target in _TRANSITIONS[self._state]

    def transition(self, target: ConnectionState) -> ConnectionState:
        """
        Move to the target state.

        Args:
            target: The state to move to

        Returns:
            The previous state

        Raises:
            RpcInvalidStateError: If the transition is not allowed
        """
        if not self.can_transition(target):
            raise RpcInvalidStateError(
                f"Invalid connection state transition: "
                f"{self._state.value} -> {target.value}"
            )
        previous = self._state
        self._state = target
        logger.debug(f"Connection state: {previous.value} -> {target.value}")
        return previous
