"""
Pydantic models for the raw, user-facing option surface.

These models never reject input: every recognized option is checked for
its type and positivity, and an option that fails the check is treated as
unset so the documented default applies later on. Keys the models don't
recognize are kept as extra fields.
"""

from __future__ import annotations

from typing import Annotated, Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)

from .utils import is_positive_number

PositiveStrictInt = Annotated[int, Field(strict=True, gt=0)]


def _fallback_to_unset(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    try:
        return handler(value)
    except ValidationError:
        return None


class RawReconnectOptions(BaseModel):
    """
    The ``reconnectConfig`` block as supplied by the caller.

    Attributes:
        reconnect: Whether to reconnect after a failed connection attempt
        delay: Delay before each reconnect attempt, in milliseconds
        attempts: Maximum number of reconnect attempts
    """

    model_config = ConfigDict(extra="ignore")

    reconnect: Optional[StrictBool] = None
    delay: Optional[PositiveStrictInt] = None
    attempts: Optional[PositiveStrictInt] = None

    @field_validator("reconnect", "delay", "attempts", mode="wrap")
    @classmethod
    def fallback_to_default(
        cls, value: Any, handler: ValidatorFunctionWrapHandler
    ) -> Any:
        return _fallback_to_unset(value, handler)


class RawClientOptions(BaseModel):
    """
    The full client option surface as supplied by the caller.

    Options are accepted under their camelCase names (``maxPayload``) as well
    as their snake_case field names (``max_payload``).
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    max_payload: Optional[PositiveStrictInt] = Field(default=None, alias="maxPayload")
    auto_pong: Optional[StrictBool] = Field(default=None, alias="autoPong")
    protocol_version: Optional[PositiveStrictInt] = Field(
        default=None, alias="protocolVersion"
    )
    per_message_deflate: Optional[Union[StrictBool, dict[str, Any]]] = Field(
        default=None, alias="perMessageDeflate"
    )
    handshake_timeout: Optional[PositiveStrictInt] = Field(
        default=None, alias="handshakeTimeout"
    )
    request_timeout: Optional[float] = Field(default=None, alias="requestTimeout")
    reconnect_config: Optional[RawReconnectOptions] = Field(
        default=None, alias="reconnectConfig"
    )

    @field_validator(
        "max_payload",
        "auto_pong",
        "protocol_version",
        "per_message_deflate",
        "handshake_timeout",
        "reconnect_config",
        mode="wrap",
    )
    @classmethod
    def fallback_to_default(
        cls, value: Any, handler: ValidatorFunctionWrapHandler
    ) -> Any:
        return _fallback_to_unset(value, handler)

    @field_validator("request_timeout", mode="wrap")
    @classmethod
    def validate_request_timeout(
        cls, value: Any, handler: ValidatorFunctionWrapHandler
    ) -> Any:
        # strings like "5" are not a timeout
        if not is_positive_number(value):
            return None
        return handler(value)

    @property
    def extra(self) -> dict[str, Any]:
        return dict(self.model_extra or {})
