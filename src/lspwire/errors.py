"""Error taxonomy for the LSP client transport.

Every failure the transport can observe is an ``LSPClientError`` carrying a
``ClientErrorKind``. Framing and classification errors are raised by the
parsing layer; the transport catches them at the dispatch boundary and hands
them to an error observer instead of propagating them into the read path.

Only ``ReadError`` is fatal to a transport. Everything else drops a single
frame or a single handler invocation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum, IntEnum
from typing import Any

_log = logging.getLogger("lspwire.errors")


class ClientErrorKind(IntEnum):
    """Client-side error kinds reported to the error observer."""

    INVALID_SERVER_MESSAGE = 1
    INVALID_SERVER_JSON = 2
    NO_RESULT_CALLBACK_FOUND = 3
    READ_ERROR = 4
    NOTIFICATION_HANDLER_ERROR = 5
    SERVER_REQUEST_HANDLER_ERROR = 6
    SERVER_RESULT_CALLBACK_ERROR = 7
    MALFORMED_HEADER = 8
    RESPONSE_MISSING_PAYLOAD = 9


class HandlerKind(str, Enum):
    """Which user-supplied handler failed."""

    REQUEST = "request"
    NOTIFICATION = "notification"
    CALLBACK = "callback"


class LSPClientError(Exception):
    """Base class for all transport errors."""

    kind: ClientErrorKind | None = None


class LSPFramingError(LSPClientError):
    """Error in LSP message framing or payload encoding."""


class MalformedHeader(LSPFramingError):
    """Header block is malformed or lacks a numeric Content-Length."""

    kind = ClientErrorKind.MALFORMED_HEADER


class InvalidJSON(LSPFramingError):
    """Frame body is not valid UTF-8 JSON."""

    kind = ClientErrorKind.INVALID_SERVER_JSON


class InvalidServerMessage(LSPClientError):
    """Decoded value matches no JSON-RPC message shape."""

    kind = ClientErrorKind.INVALID_SERVER_MESSAGE

    def __init__(self, raw: Any) -> None:
        super().__init__(f"Invalid server message: {raw!r}")
        self.raw = raw


class NoCallbackForResponse(LSPClientError):
    """Response arrived for an id with no pending callback."""

    kind = ClientErrorKind.NO_RESULT_CALLBACK_FOUND

    def __init__(self, request_id: Any) -> None:
        super().__init__(f"No callback for response id {request_id!r}")
        self.request_id = request_id


_HANDLER_ERROR_KINDS = {
    HandlerKind.REQUEST: ClientErrorKind.SERVER_REQUEST_HANDLER_ERROR,
    HandlerKind.NOTIFICATION: ClientErrorKind.NOTIFICATION_HANDLER_ERROR,
    HandlerKind.CALLBACK: ClientErrorKind.SERVER_RESULT_CALLBACK_ERROR,
}


class HandlerFailure(LSPClientError):
    """A user-supplied handler or callback raised.

    The original exception is available as ``__cause__`` and ``cause``.
    """

    def __init__(self, handler: HandlerKind, cause: BaseException, method: str | None = None) -> None:
        target = f" for {method!r}" if method else ""
        super().__init__(f"{handler.value} handler{target} failed: {cause!r}")
        self.handler = handler
        self.cause = cause
        self.method = method
        self.kind = _HANDLER_ERROR_KINDS[handler]


class ResponseMissingPayload(LSPClientError):
    """A request handler returned neither a result nor an error."""

    kind = ClientErrorKind.RESPONSE_MISSING_PAYLOAD

    def __init__(self, method: str) -> None:
        super().__init__(
            f"method {method!r}: either a result or an error must be sent to the server in response"
        )
        self.method = method


class ReadError(LSPClientError):
    """Reading from the server's output failed. The transport is closed."""

    kind = ClientErrorKind.READ_ERROR


class RequestTimeout(LSPClientError):
    """No response arrived before the wait timed out."""

    def __init__(self, method: str, request_id: int, timeout: float) -> None:
        super().__init__(f"Request {method!r} (id {request_id}) timed out after {timeout}s")
        self.method = method
        self.request_id = request_id
        self.timeout = timeout


class RequestCancelled(LSPClientError):
    """The server acknowledged cancelling a request that was being awaited.

    Raised from ``request_and_wait`` when the response carries
    ``RequestCancelled`` or ``ContentModified``.
    """

    def __init__(self, method: str, request_id: int, error: Any) -> None:
        super().__init__(f"Request {method!r} (id {request_id}) was cancelled: {error}")
        self.method = method
        self.request_id = request_id
        self.error = error


class RequestError(LSPClientError):
    """The server answered a request with an error object."""

    def __init__(self, method: str, error: Any) -> None:
        super().__init__(f"Request {method!r} failed: {error}")
        self.method = method
        self.error = error


class TransportClosed(LSPClientError):
    """The transport was shut down or lost its server."""


ErrorObserver = Callable[[LSPClientError], None]


def log_error(error: LSPClientError) -> None:
    """Default error observer: log the error at a level matching its kind."""
    if isinstance(error, NoCallbackForResponse):
        _log.debug("%s", error)
    elif isinstance(error, HandlerFailure):
        _log.error("%s", error, exc_info=error.cause)
    elif isinstance(error, ReadError):
        _log.error("%s", error)
    else:
        _log.warning("%s", error)
