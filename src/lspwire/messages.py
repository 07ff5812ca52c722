"""JSON-RPC message types and shape-based classification.

A decoded frame body is turned into exactly one of ``Request``,
``Response``, ``Notification`` or ``InvalidMessage`` by ``classify``.
Callers then ``match`` on the result instead of probing fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class ErrorCodes(IntEnum):
    """JSON-RPC and LSP error codes."""

    ParseError = -32700
    InvalidRequest = -32600
    MethodNotFound = -32601
    InvalidParams = -32602
    InternalError = -32603
    ServerNotInitialized = -32002
    UnknownErrorCode = -32001
    RequestFailed = -32803
    ServerCancelled = -32802
    ContentModified = -32801
    RequestCancelled = -32800


# Error codes that acknowledge a cancellation race rather than a failure.
CANCELLATION_CODES = frozenset({ErrorCodes.RequestCancelled, ErrorCodes.ContentModified})


def error_code_name(code: int) -> str:
    """Canonical name for an error code, or the number if unknown."""
    try:
        return ErrorCodes(code).name
    except ValueError:
        return str(code)


class ResponseError(BaseModel):
    """JSON-RPC error object sent by this client.

    ``code`` must be a known ``ErrorCodes`` member. A missing message
    defaults to the code's name. Errors received from a server go through
    ``from_wire`` instead, which accepts any integer code.
    """

    model_config = ConfigDict(frozen=True)

    code: int
    message: str
    data: Any = None

    @model_validator(mode="before")
    @classmethod
    def _default_message(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("message") and "code" in data:
            data = {**data, "message": error_code_name(data["code"])}
        return data

    @field_validator("code")
    @classmethod
    def _known_code(cls, value: int) -> int:
        if value not in ErrorCodes._value2member_map_:
            raise ValueError(f"unknown error code {value}; use ErrorCodes")
        return value

    @classmethod
    def from_wire(cls, raw: dict[str, Any]) -> ResponseError:
        """Build an error object from a server payload without code checks.

        Raises:
            ValueError: If ``code`` is not an integer.
        """
        code = raw.get("code")
        if not isinstance(code, int) or isinstance(code, bool):
            raise ValueError(f"error code must be an integer, got {code!r}")
        message = raw.get("message")
        return cls.model_construct(
            code=code,
            message=message if isinstance(message, str) and message else error_code_name(code),
            data=raw.get("data"),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            d["data"] = self.data
        return d

    def __str__(self) -> str:
        text = f"{error_code_name(self.code)}: {self.message}"
        if self.data is not None:
            text += f"\n{self.data!r}"
        return text


@dataclass(frozen=True)
class Request:
    """Server-to-client request."""

    id: int | str
    method: str
    params: Any = None


@dataclass(frozen=True)
class Response:
    """Response to a request we sent. ``error`` is None on success."""

    id: int | str
    result: Any = None
    error: ResponseError | None = None

    @property
    def is_cancellation_ack(self) -> bool:
        return self.error is not None and self.error.code in CANCELLATION_CODES


@dataclass(frozen=True)
class Notification:
    """Server-to-client notification."""

    method: str
    params: Any = None


@dataclass(frozen=True)
class InvalidMessage:
    """A decoded value that fits no JSON-RPC shape."""

    raw: Any


Message = Union[Request, Response, Notification, InvalidMessage]


def _valid_id(value: Any) -> bool:
    # JSON-RPC ids are integers or strings; bool is an int subclass
    return isinstance(value, (int, str)) and not isinstance(value, bool)


def _response_id(value: Any) -> int | str:
    # We only send integer ids, but some servers echo them back as strings.
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


def classify(value: Any) -> Message:
    """Classify a decoded JSON value by shape.

    Priority order: request (method + id), response (id + result/error),
    notification (method, no id), otherwise invalid. An id that is neither
    an integer nor a string makes the whole message invalid.
    """
    if not isinstance(value, dict):
        return InvalidMessage(value)

    method = value.get("method")
    msg_id = value.get("id")
    if msg_id is not None and not _valid_id(msg_id):
        return InvalidMessage(value)

    if isinstance(method, str) and msg_id is not None:
        return Request(id=msg_id, method=method, params=value.get("params"))

    if msg_id is not None and ("result" in value or "error" in value):
        raw_error = value.get("error")
        error = None
        if raw_error is not None:
            if not isinstance(raw_error, dict):
                return InvalidMessage(value)
            try:
                error = ResponseError.from_wire(raw_error)
            except ValueError:
                return InvalidMessage(value)
        return Response(id=_response_id(msg_id), result=value.get("result"), error=error)

    if isinstance(method, str):
        return Notification(method=method, params=value.get("params"))

    return InvalidMessage(value)
