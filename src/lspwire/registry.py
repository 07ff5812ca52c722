"""Pending request bookkeeping."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from typing import Any

from lspwire.messages import ResponseError

ResponseCallback = Callable[[ResponseError | None, Any], None]


class RequestRegistry:
    """Maps outstanding request ids to their completion callbacks.

    Ids start at 1 and increase per registry. An entry is removed exactly
    once, either when its response arrives or when a cancellation ack
    clears it. Not thread-safe: mutate it from the transport's event loop.
    """

    def __init__(self) -> None:
        self._callbacks: dict[int, ResponseCallback] = {}
        self._ids = itertools.count(1)

    def next_id(self) -> int:
        return next(self._ids)

    def register(self, request_id: int, callback: ResponseCallback) -> None:
        """Store ``callback`` for ``request_id``.

        Raises:
            ValueError: If the id is already pending.
        """
        if request_id in self._callbacks:
            raise ValueError(f"Request id {request_id} is already pending")
        self._callbacks[request_id] = callback

    def pop(self, request_id: Any) -> ResponseCallback | None:
        """Remove and return the callback for ``request_id``, if any."""
        return self._callbacks.pop(request_id, None)

    def discard(self, request_id: Any) -> bool:
        """Remove ``request_id`` without returning its callback."""
        return self._callbacks.pop(request_id, None) is not None

    def pending_ids(self) -> list[int]:
        return list(self._callbacks)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._callbacks

    def __len__(self) -> int:
        return len(self._callbacks)
