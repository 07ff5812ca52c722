"""lspwire: Language Server Protocol client transport over a child process's stdio."""

__version__ = "0.1.0"

# Public API
from lspwire.capabilities import default_capabilities, merge_capabilities
from lspwire.errors import (
    ClientErrorKind,
    HandlerFailure,
    HandlerKind,
    InvalidJSON,
    InvalidServerMessage,
    LSPClientError,
    LSPFramingError,
    MalformedHeader,
    NoCallbackForResponse,
    ReadError,
    RequestError,
    RequestCancelled,
    RequestTimeout,
    ResponseMissingPayload,
    TransportClosed,
)
from lspwire.framing import Frame, FrameReader, decode_body, encode_message, parse_headers
from lspwire.messages import (
    ErrorCodes,
    InvalidMessage,
    Notification,
    Request,
    Response,
    ResponseError,
    classify,
)
from lspwire.process import LanguageServerProcess, spawn_server
from lspwire.registry import RequestRegistry
from lspwire.transport import Transport

__all__ = [
    # Main entry points
    "Transport",
    "LanguageServerProcess",
    "spawn_server",
    # Framing
    "Frame",
    "FrameReader",
    "parse_headers",
    "encode_message",
    "decode_body",
    # Messages
    "ErrorCodes",
    "ResponseError",
    "Request",
    "Response",
    "Notification",
    "InvalidMessage",
    "classify",
    "RequestRegistry",
    # Capabilities
    "default_capabilities",
    "merge_capabilities",
    # Errors
    "ClientErrorKind",
    "HandlerKind",
    "LSPClientError",
    "LSPFramingError",
    "MalformedHeader",
    "InvalidJSON",
    "InvalidServerMessage",
    "NoCallbackForResponse",
    "HandlerFailure",
    "ResponseMissingPayload",
    "ReadError",
    "RequestCancelled",
    "RequestTimeout",
    "RequestError",
    "TransportClosed",
]
