"""LSP message framing with Content-Length headers.

This module implements the LSP base protocol framing:
- Header parsing (Content-Length required, other headers passed through)
- Incremental frame reading over arbitrarily split byte chunks
- Message encoding with Content-Length framing

LSP Header Format:
    Content-Length: <length>\r\n
    [Content-Type: <type>]\r\n
    \r\n
    <json-rpc-message>

The Content-Length header is required and specifies the byte count
of the JSON-RPC message body. Headers are separated from the body
by a blank line (double CRLF).
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from lspwire.errors import InvalidJSON, LSPFramingError, MalformedHeader

# Header constants
HEADER_ENCODING = "ascii"
CONTENT_ENCODING = "utf-8"
CRLF = "\r\n"
HEADER_SEPARATOR = b"\r\n\r\n"
CONTENT_LENGTH_KEY = "content_length"

# Larger bodies are treated as a corrupt header, not buffered
DEFAULT_MAX_MESSAGE_SIZE = 10 * 1024 * 1024

_HEADER_LINE = re.compile(r"^\s*([^\s:]+)\s*:\s*(.+?)\s*$")
_HEADER_START = re.compile(rb"content", re.IGNORECASE)


def normalize_header_key(key: str) -> str:
    """Normalize a header name: ``Content-Length`` -> ``content_length``."""
    return key.lower().replace("-", "_")


def parse_headers(header: bytes | str) -> dict[str, str]:
    """Parse LSP headers from a raw header block.

    Args:
        header: Raw header block without the trailing blank line.
            Should contain lines like "Content-Length: 123\r\nContent-Type: ..."

    Returns:
        Dictionary mapping normalized header names to values.
        Keys are lower-cased with ``-`` replaced by ``_``.

    Raises:
        MalformedHeader: If a line is not ``key: value`` or Content-Length
            is missing or not a non-negative integer.

    Example:
        >>> parse_headers(b"Content-Length: 42\\r\\nContent-Type: application/json")
        {'content_length': '42', 'content_type': 'application/json'}
    """
    if isinstance(header, bytes):
        try:
            header = header.decode(HEADER_ENCODING)
        except UnicodeDecodeError as e:
            raise MalformedHeader(f"Header contains non-ASCII characters: {e}") from e

    headers: dict[str, str] = {}
    for line in header.split(CRLF):
        if not line:
            continue
        match = _HEADER_LINE.match(line)
        if match is None:
            raise MalformedHeader(f"invalid header line {line!r}")
        headers[normalize_header_key(match.group(1))] = match.group(2)

    length = headers.get(CONTENT_LENGTH_KEY)
    if length is None:
        raise MalformedHeader(f"Content-Length not found in headers. {header!r}")
    if not length.isdigit():
        raise MalformedHeader(f"Invalid Content-Length value: {length!r}")

    return headers


def find_header_start(block: bytes) -> int:
    """Return the offset of the first header in ``block``.

    Servers launched through wrapper scripts sometimes write to stdout before
    speaking the protocol. Every header we know of starts with "Content", so
    anything before the first case-insensitive match is skipped.
    """
    match = _HEADER_START.search(block)
    return match.start() if match else 0


@dataclass(frozen=True)
class Frame:
    """A complete wire frame: parsed headers and exactly Content-Length body bytes."""

    headers: dict[str, str]
    body: bytes

    @property
    def content_length(self) -> int:
        return int(self.headers[CONTENT_LENGTH_KEY])


class ReaderState(str, Enum):
    """What the frame reader is waiting for."""

    HEADER = "header"
    BODY = "body"


class FrameReader:
    """Incremental frame parser.

    Holds an append-only buffer and resumes across calls: bytes may be split
    anywhere, including inside the header terminator or a multi-byte UTF-8
    sequence. Not thread-safe and not reentrant; drive it from one place.

    A header announcing more than ``max_message_size`` body bytes is
    rejected as malformed instead of being buffered.
    """

    def __init__(self, max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE) -> None:
        self._buffer = bytearray()
        self.max_message_size = max_message_size
        self.state = ReaderState.HEADER
        self.headers: dict[str, str] | None = None
        self.bytes_needed = 0

    @property
    def pending_bytes(self) -> int:
        """Bytes buffered but not yet part of an emitted frame."""
        return len(self._buffer)

    def reset(self) -> None:
        """Drop all buffered data and return to the header state."""
        self._buffer.clear()
        self.state = ReaderState.HEADER
        self.headers = None
        self.bytes_needed = 0

    def read_frame(self, chunk: bytes | None = None) -> Frame | None:
        """Append ``chunk`` and try to complete one frame.

        Args:
            chunk: Newly received bytes, or None to only drain the buffer.

        Returns:
            The next complete frame, or None if more input is needed.

        Raises:
            MalformedHeader: The buffered header block is invalid or announces
                an oversized body. The block is discarded and the reader stays
                usable.
        """
        if chunk:
            self._buffer += chunk

        if self.state is ReaderState.HEADER:
            end = self._buffer.find(HEADER_SEPARATOR)
            if end == -1:
                return None
            block = bytes(self._buffer[:end])
            del self._buffer[: end + len(HEADER_SEPARATOR)]
            headers = parse_headers(block[find_header_start(block) :])
            length = int(headers[CONTENT_LENGTH_KEY])
            if length > self.max_message_size:
                raise MalformedHeader(
                    f"Message size {length} exceeds maximum {self.max_message_size}"
                )
            self.headers = headers
            self.bytes_needed = length
            self.state = ReaderState.BODY

        if len(self._buffer) < self.bytes_needed:
            return None

        body = bytes(self._buffer[: self.bytes_needed])
        del self._buffer[: self.bytes_needed]
        frame = Frame(headers=self.headers or {}, body=body)
        self.state = ReaderState.HEADER
        self.headers = None
        self.bytes_needed = 0
        return frame

    def feed(
        self,
        chunk: bytes | None,
        errors: list[MalformedHeader] | None = None,
    ) -> list[Frame]:
        """Append ``chunk`` and return every frame it completes, in order.

        Malformed header blocks are skipped and draining continues past them,
        so frames on either side of a bad block are all returned. Each skipped
        block's error is appended to ``errors`` when a list is given.
        """
        frames: list[Frame] = []
        pending = chunk
        while True:
            try:
                frame = self.read_frame(pending)
            except MalformedHeader as e:
                if errors is not None:
                    errors.append(e)
                pending = None
                continue
            pending = None
            if frame is None:
                return frames
            frames.append(frame)


def encode_message(message: Mapping[str, Any]) -> bytes:
    """Encode a JSON-RPC message with Content-Length framing.

    ``jsonrpc`` is always set to ``"2.0"``. The declared length is the UTF-8
    byte count of the payload, not its character count.

    Raises:
        LSPFramingError: If the message cannot be serialized to JSON.
    """
    payload = dict(message)
    payload["jsonrpc"] = "2.0"
    try:
        body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        body_bytes = body.encode(CONTENT_ENCODING)
    except (TypeError, ValueError) as e:
        raise LSPFramingError(f"Message cannot be serialized to JSON: {e}") from e

    header = f"Content-Length: {len(body_bytes)}\r\n\r\n".encode(HEADER_ENCODING)
    return header + body_bytes


def decode_body(body: bytes) -> Any:
    """Decode a frame body into a JSON value.

    Raises:
        InvalidJSON: If the body is not valid UTF-8 or not valid JSON.
    """
    try:
        return json.loads(body.decode(CONTENT_ENCODING))
    except UnicodeDecodeError as e:
        raise InvalidJSON(f"Invalid UTF-8 in message body: {e}") from e
    except json.JSONDecodeError as e:
        raise InvalidJSON(f"Invalid JSON in message body: {e}") from e
    except (ValueError, RecursionError) as e:
        # integer digit limit, or nesting deeper than the parser allows
        raise InvalidJSON(f"Unparseable JSON in message body: {e!r}") from e
