"""
Request correlation component for matching replies to outstanding requests.

This module assigns correlation ids, serializes outgoing requests, tracks
pending requests and resolves them when the reply carrying the same id
arrives, in whatever order replies come back.
"""

from __future__ import annotations

import asyncio
import itertools
import json
from collections import OrderedDict
from typing import Any, Union

from ..exceptions import (
    DuplicateRequestIdError,
    InvalidPayloadError,
    InvalidReplyError,
    RequestTimeoutError,
    UnmatchedReplyError,
)
from ..logger import get_logger
from ..utils import is_full_sequence, is_integer, is_mapping

logger = get_logger("REQUEST_CORRELATOR")

RequestId = Union[str, int]

# Maximum number of timed-out / cancelled request ids to remember.
# Late replies for these ids are dropped instead of being treated as
# a protocol desync.
MAX_ABANDONED_IDS = 1000


def is_request_id(value: Any) -> bool:
    # True would collide with the counter's 1 as a dict key
    return isinstance(value, str) or is_integer(value)


def extract_request_id(message: Any) -> RequestId | None:
    """
    Find the correlation id of a request or reply.

    For a non-empty sequence the id sits on its first element, otherwise
    at the top level. Returns None when there is no usable id.
    """
    if is_full_sequence(message):
        message = message[0]
    if not is_mapping(message):
        return None
    request_id = message.get("id")
    if is_request_id(request_id):
        return request_id
    return None


class RequestCorrelator:
    """
    Tracks pending requests keyed by correlation id.

    This component handles:
    - Allocating ids from a per-instance counter starting at 1
    - Building the serialized request message
    - Registering a single-fulfillment future per outstanding id
    - Resolving futures from incoming replies
    - Removing entries on timeout, cancellation, send failure or fail_all()
    """

    def __init__(self) -> None:
        # next() on the counter is the single allocation step
        self._counter = itertools.count(1)
        # Pending requests - id-mapped to their reply future
        self._pending: dict[RequestId, asyncio.Future[Any]] = {}
        # Ids given up on (timeout/cancel), oldest first
        self._abandoned: OrderedDict[RequestId, None] = OrderedDict()

    def create_request_id(self, payload: Any = None) -> RequestId:
        """
        Reuse the caller's id if the payload carries a truthy one, otherwise
        allocate the next counter value.

        A non-empty sequence is looked up by its first element's id, so a
        batch of sub-requests can be tagged under one id.
        """
        if is_full_sequence(payload) and is_mapping(payload[0]):
            if payload[0].get("id"):
                return payload[0]["id"]

        if is_mapping(payload) and payload.get("id"):
            return payload["id"]

        return next(self._counter)

    def create_request_message(self, request_id: RequestId, payload: Any) -> str:
        """
        Serialize the payload with the correlation id attached.

        Only the first element of a sequence receives the id; the others keep
        whatever ids they already carry. The caller's objects are left as is.

        Raises:
            InvalidPayloadError: If the payload can't carry an id
        """
        if is_full_sequence(payload):
            if not is_mapping(payload[0]):
                raise InvalidPayloadError(
                    "The first element of a batch payload must be an object, "
                    f"got {type(payload[0]).__name__}"
                )
            return json.dumps([{**payload[0], "id": request_id}, *payload[1:]])

        if payload is None:
            payload = {}
        if not is_mapping(payload):
            raise InvalidPayloadError(
                "Payload must be an object or a non-empty list of objects, "
                f"got {type(payload).__name__}"
            )
        return json.dumps({**payload, "id": request_id})

    def register(self, request_id: RequestId) -> asyncio.Future[Any]:
        """
        Create and store the future for an outgoing request.

        Raises:
            InvalidPayloadError: If the id is neither a string nor an integer
            DuplicateRequestIdError: If the id already has a pending entry
        """
        if not is_request_id(request_id):
            raise InvalidPayloadError(
                f"Request id must be a string or an integer, got {request_id!r}"
            )
        if request_id in self._pending:
            raise DuplicateRequestIdError(
                f'Request with id "{request_id}" is already pending'
            )
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        # A reused id is live again
        self._abandoned.pop(request_id, None)
        return future

    def discard(self, request_id: RequestId) -> None:
        """
        Remove a pending entry without resolving it (e.g. on send failure).
        """
        future = self._pending.pop(request_id, None)
        if future is not None and not future.done():
            future.cancel()

    def on_message(self, raw: str | bytes) -> None:
        """
        Resolve the pending request matching an incoming reply.

        Raises:
            InvalidReplyError: If the message is not valid JSON
            UnmatchedReplyError: If no pending request matches the reply id
        """
        reply = self.parse_reply(raw)
        request_id = extract_request_id(reply)
        future = self._pending.pop(request_id, None) if request_id is not None else None

        if future is None:
            if request_id is not None and request_id in self._abandoned:
                logger.warning(
                    f"Dropping late reply for abandoned request {request_id!r}"
                )
                return
            raise UnmatchedReplyError(f"No existing request: {json.dumps(reply)}")

        if not future.done():
            future.set_result(reply)
        logger.debug(f"Resolved request {request_id!r}, pending: {len(self._pending)}")

    @staticmethod
    def parse_reply(raw: str | bytes) -> Any:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return json.loads(raw)
        except ValueError as e:
            raise InvalidReplyError(f"Received message is not valid JSON: {e}") from e

    async def wait(
        self,
        request_id: RequestId,
        future: asyncio.Future[Any],
        timeout: float | None = None,
    ) -> Any:
        """
        Wait for the reply to a registered request.

        Args:
            request_id: The id the future was registered under
            future: The future returned by register()
            timeout: Optional timeout in seconds (None = wait forever)

        Returns:
            The full parsed reply

        Raises:
            RequestTimeoutError: If the timeout expires
        """
        try:
            if timeout is None:
                return await future
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError as e:
            self._abandon(request_id, future)
            raise RequestTimeoutError(
                f"Timeout waiting for reply to request {request_id!r} after {timeout}s"
            ) from e
        except asyncio.CancelledError:
            self._abandon(request_id, future)
            raise

    def _abandon(self, request_id: RequestId, future: asyncio.Future[Any]) -> None:
        if self._pending.get(request_id) is future:
            del self._pending[request_id]
        self._abandoned[request_id] = None
        self._abandoned.move_to_end(request_id)
        while len(self._abandoned) > MAX_ABANDONED_IDS:
            self._abandoned.popitem(last=False)

    def fail_all(self, error: BaseException) -> int:
        """
        Reject every pending request with the given error.

        Returns:
            Number of requests that were failed
        """
        pending = list(self._pending.items())
        self._pending.clear()
        for _, future in pending:
            if not future.done():
                future.set_exception(error)
        if pending:
            logger.warning(f"Failed {len(pending)} pending requests: {error}")
        return len(pending)

    def is_pending(self, request_id: RequestId) -> bool:
        return request_id in self._pending

    def is_empty(self) -> bool:
        return not self._pending

    @property
    def pending_count(self) -> int:
        return len(self._pending)
