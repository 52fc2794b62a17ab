from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import urlsplit

from .logger import get_logger

if TYPE_CHECKING:
    from pydantic import BaseModel

T = TypeVar("T", bound="BaseModel")

logger = get_logger("ws_request_client.utils")

VALID_URL_PREFIXES = ("wss://", "ws://", "wss+unix://", "ws+unix://")
UNIX_URL_PREFIXES = ("wss+unix://", "ws+unix://")


class TypeUtils:
    @staticmethod
    def is_boolean(value: Any) -> bool:
        return isinstance(value, bool)

    @staticmethod
    def is_integer(value: Any) -> bool:
        # bool is a subclass of int, but never a valid count or size
        return isinstance(value, int) and not isinstance(value, bool)

    @staticmethod
    def is_positive_integer(value: Any, greater_than_or_equal: int = 1) -> bool:
        return TypeUtils.is_integer(value) and value >= greater_than_or_equal

    @staticmethod
    def is_positive_number(value: Any) -> bool:
        return (
            isinstance(value, (int, float))
            and not isinstance(value, bool)
            and value > 0
        )

    @staticmethod
    def is_mapping(value: Any) -> bool:
        return isinstance(value, Mapping)

    @staticmethod
    def is_full_sequence(value: Any) -> bool:
        """
        True for a non-empty list or tuple.
        Strings and bytes are sequences too, but never a batch payload.
        """
        return isinstance(value, (list, tuple)) and len(value) > 0


is_boolean = TypeUtils.is_boolean
is_integer = TypeUtils.is_integer
is_positive_integer = TypeUtils.is_positive_integer
is_positive_number = TypeUtils.is_positive_number
is_mapping = TypeUtils.is_mapping
is_full_sequence = TypeUtils.is_full_sequence


class UrlUtils:
    @staticmethod
    def is_valid_url(url: Any) -> bool:
        return isinstance(url, str) and url.startswith(VALID_URL_PREFIXES)

    @staticmethod
    def is_unix_url(url: str) -> bool:
        return url.startswith(UNIX_URL_PREFIXES)

    @staticmethod
    def parse_unix_url(url: str) -> tuple[str, str]:
        """
        Split a unix socket URL into the socket path and a plain ws URI.

        The socket path and the request path are separated by a colon:
        ``ws+unix:///tmp/app.sock:/status`` connects to ``/tmp/app.sock``
        and requests ``/status``. Without a colon the request path is ``/``.

        :param str url: a ``ws+unix://`` or ``wss+unix://`` URL
        :return: (socket_path, uri) where uri uses the ``ws``/``wss`` scheme
        """
        if not UrlUtils.is_unix_url(url):
            raise ValueError(f"Not a unix socket URL: {url}")
        parts = urlsplit(url)
        scheme = "wss" if parts.scheme == "wss+unix" else "ws"
        target = parts.netloc + parts.path
        socket_path, sep, request_path = target.partition(":")
        if not socket_path:
            raise ValueError(f"Missing socket path in URL: {url}")
        if not sep or not request_path:
            request_path = "/"
        if parts.query:
            request_path = f"{request_path}?{parts.query}"
        return socket_path, f"{scheme}://localhost{request_path}"


is_valid_url = UrlUtils.is_valid_url
is_unix_url = UrlUtils.is_unix_url
parse_unix_url = UrlUtils.parse_unix_url


def pydantic_parse(model: type[T], data: dict[str, Any], **kwargs: Any) -> T:
    logger.debug(f"Using pydantic to parse: {data}")
    parsed_data = model.model_validate(data, **kwargs)
    logger.debug(f"Pydantic parsed data: {parsed_data}")
    return parsed_data
