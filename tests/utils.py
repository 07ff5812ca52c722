"""Shared test utilities for lspwire tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from lspwire.framing import FrameReader, decode_body


def frame(payload: Any, *, extra_headers: str = "") -> bytes:
    """Build a wire frame by hand, independent of the codec under test."""
    body = json.dumps(payload).encode("utf-8")
    return f"Content-Length: {len(body)}\r\n{extra_headers}\r\n".encode("ascii") + body


class WireRecorder:
    """Write sink that records every frame a transport sends."""

    def __init__(self) -> None:
        self.writes: list[bytes] = []

    def __call__(self, data: bytes) -> None:
        self.writes.append(data)

    def messages(self) -> list[Any]:
        reader = FrameReader()
        return [decode_body(f.body) for f in reader.feed(b"".join(self.writes))]

    def methods(self) -> list[str | None]:
        return [m.get("method") for m in self.messages()]

    def last(self) -> Any:
        return self.messages()[-1]

    def find(self, method: str) -> dict[str, Any]:
        for message in self.messages():
            if message.get("method") == method:
                return message
        raise AssertionError(f"{method!r} was not sent: {self.methods()}")


class ErrorCollector:
    """Error observer that keeps every reported error."""

    def __init__(self) -> None:
        self.errors: list[Exception] = []

    def __call__(self, error: Exception) -> None:
        self.errors.append(error)

    def of_type(self, cls: type) -> list[Any]:
        return [e for e in self.errors if isinstance(e, cls)]


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate()`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.001)
