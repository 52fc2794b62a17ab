"""
Reconnect policy for failed connection attempts.

This module provides ReconnectPolicy, a bounded retry loop with a fixed
delay between attempts, built on tenacity.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import tenacity
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait
from websockets.exceptions import WebSocketException

from ..exceptions import ReconnectExhaustedError
from ..logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..config import ReconnectConfig

logger = get_logger(__name__)

# Errors a connection attempt may fail with before the transport is open
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    WebSocketException,
    OSError,
    asyncio.TimeoutError,
)


def _log_retry_error(retry_state: tenacity.RetryCallState) -> None:
    """
    Log the failure that triggered the next attempt.

    Parameters
    ----------
    retry_state : tenacity.RetryCallState
        The current retry state containing exception information.
    """
    outcome = retry_state.outcome
    if outcome is not None:
        error = outcome.exception()
        logger.warning(
            "Reconnect attempt failed: %s: %s", type(error).__name__, error
        )


class ReconnectPolicy:
    """
    Bounded, linear-backoff reconnect loop.

    Each attempt waits ``delay`` milliseconds, increments the attempt counter
    and calls the connection opener. The counter is reset to 0 after every
    successful reconnection, so a later failure gets the full budget again.

    Parameters
    ----------
    config : ReconnectConfig
        Delay and maximum number of attempts.
    connect_fn : Callable[[], Awaitable[None]]
        Opens the transport; raises one of ``retry_on`` on failure.
    retry_on : tuple[type[BaseException], ...], optional
        Exceptions that count as a failed attempt. Anything else propagates
        immediately.

    Usage
    -----
    ```python
    policy = ReconnectPolicy(ReconnectConfig(reconnect=True), manager.open)
    if policy.has_remaining_attempts():
        await policy.reconnect()
    ```
    """

    def __init__(
        self,
        config: ReconnectConfig,
        connect_fn: Callable[[], Awaitable[None]],
        retry_on: tuple[type[BaseException], ...] = TRANSPORT_ERRORS,
    ) -> None:
        self._config = config
        self._connect_fn = connect_fn
        self._retry_on = retry_on
        self._attempts = 0

    @property
    def enabled(self) -> bool:
        return self._config.reconnect

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def max_attempts(self) -> int | None:
        return self._config.attempts

    @property
    def delay(self) -> float:
        """Delay between attempts, in seconds."""
        return self._config.delay_seconds

    def has_remaining_attempts(self) -> bool:
        return self.max_attempts is not None and self._attempts < self.max_attempts

    def reset(self) -> None:
        self._attempts = 0

    async def reconnect(self) -> None:
        """
        Retry the connection until it opens or the attempts run out.

        Raises
        ------
        ReconnectExhaustedError
            If no maximum is configured, if the maximum was already reached,
            or once the remaining attempts all failed (chained to the last
            transport error).
        """
        if self.max_attempts is None:
            raise ReconnectExhaustedError("Reconnect attempts is not defined")

        if self._attempts >= self.max_attempts:
            raise ReconnectExhaustedError("Reconnect attempts exceeded")

        retrying = AsyncRetrying(
            wait=wait.wait_fixed(self.delay),
            stop=stop_after_attempt(self.max_attempts - self._attempts),
            retry=retry_if_exception_type(self._retry_on),
            before_sleep=_log_retry_error,
            reraise=True,
        )

        logger.info(
            "Reconnecting in %.3fs (attempt %d/%d)",
            self.delay,
            self._attempts + 1,
            self.max_attempts,
        )
        await asyncio.sleep(self.delay)

        try:
            async for attempt in retrying:
                with attempt:
                    self._attempts += 1
                    logger.debug(
                        "Reconnect attempt %d/%d", self._attempts, self.max_attempts
                    )
                    await self._connect_fn()
        except self._retry_on as e:
            logger.error(
                f"All {self.max_attempts} reconnect attempts exhausted: "
                f"{type(e).__name__}: {e}"
            )
            raise ReconnectExhaustedError(
                f"Reconnect attempts exceeded ({self._attempts}/{self.max_attempts})"
            ) from e

        logger.info("Reconnection successful after %d attempt(s)", self._attempts)
        self.reset()
