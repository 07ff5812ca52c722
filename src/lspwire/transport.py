"""Client transport: framing, correlation and dispatch over one byte stream pair.

The transport does not own a process. It is given a ``write`` function for
the server's stdin and is fed from the server's stdout through
``data_received``/``eof_received``/``read_error``/``process_exited``.
``lspwire.process`` wires those to an asyncio subprocess.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from collections.abc import Awaitable, Callable
from typing import Any

from lspwire.capabilities import merge_capabilities
from lspwire.dispatch import Dispatcher, NotificationHandler, RequestHandler
from lspwire.errors import (
    ErrorObserver,
    InvalidJSON,
    MalformedHeader,
    ReadError,
    RequestCancelled,
    RequestError,
    RequestTimeout,
    TransportClosed,
)
from lspwire.framing import (
    DEFAULT_MAX_MESSAGE_SIZE,
    Frame,
    FrameReader,
    decode_body,
    encode_message,
)
from lspwire.logging import TRACE
from lspwire.messages import Response, ResponseError, classify
from lspwire.registry import RequestRegistry, ResponseCallback

_log = logging.getLogger("lspwire.transport")

DEFAULT_REQUEST_TIMEOUT = 1.0  # seconds


def _ignore_response(error: ResponseError | None, result: Any) -> None:
    if error is not None:
        _log.debug("Ignored error response: %s", error)


class Transport:
    """JSON-RPC client over a server's stdio.

    All read-side methods and the request registry belong to one asyncio
    event loop. ``request``/``notify`` serialize their writes, so a frame is
    never interleaved with another, but registry access from other threads
    needs external locking.

    ``write`` must not block. When it buffers (an asyncio ``StreamWriter``),
    pass the writer's ``drain`` so awaiting callers wait for the server to
    keep up; see ``drain()``.
    """

    def __init__(
        self,
        write: Callable[[bytes], Any],
        *,
        drain: Callable[[], Awaitable[None]] | None = None,
        request_handler: RequestHandler | None = None,
        notification_handler: NotificationHandler | None = None,
        error_observer: ErrorObserver | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
    ) -> None:
        self._write = write
        self._drain = drain
        self._write_lock = threading.Lock()
        self.reader = FrameReader(max_message_size)
        self.registry = RequestRegistry()
        self.dispatcher = Dispatcher(
            self.registry,
            self._send_message,
            request_handler=request_handler,
            notification_handler=notification_handler,
            error_observer=error_observer,
            loop=loop,
            on_cancelled=self._request_cancelled,
        )
        self.request_timeout = request_timeout
        self.server_capabilities: dict[str, Any] | None = None
        self.server_info: dict[str, Any] | None = None
        self.is_closed = False
        self.is_shutdown = False
        self.returncode: int | None = None
        self._waiters: dict[int, tuple[str, asyncio.Future[tuple[ResponseError | None, Any]]]] = {}

    # -- write side ---------------------------------------------------------

    def _send_message(self, message: dict[str, Any]) -> None:
        if self.is_closed:
            raise TransportClosed("Transport is closed")
        data = encode_message(message)
        _log.log(TRACE, "--> %s", message)
        with self._write_lock:
            self._write(data)

    def request(
        self,
        method: str,
        params: Any = None,
        callback: ResponseCallback | None = None,
    ) -> int:
        """Send a request and return its id.

        ``callback(error, result)`` is registered before any bytes are
        written, so it cannot miss a fast response. It is called at most once,
        and never for a cancellation acknowledgement.

        Raises:
            TransportClosed: After shutdown or once the server is gone.
        """
        if self.is_shutdown:
            raise TransportClosed(f"Cannot send {method!r}: transport was shut down")

        request_id = self.registry.next_id()
        message: dict[str, Any] = {"id": request_id, "method": method}
        if params is not None:
            message["params"] = params

        self.registry.register(request_id, callback or _ignore_response)
        try:
            self._send_message(message)
        except Exception:
            self.registry.discard(request_id)
            raise
        return request_id

    def notify(self, method: str, params: Any = None) -> None:
        """Send a notification.

        Raises:
            TransportClosed: After shutdown or once the server is gone.
        """
        if self.is_shutdown:
            raise TransportClosed(f"Cannot send {method!r}: transport was shut down")
        message: dict[str, Any] = {"method": method}
        if params is not None:
            message["params"] = params
        self._send_message(message)

    async def request_and_wait(
        self,
        method: str,
        params: Any = None,
        timeout: float | None = None,
    ) -> tuple[ResponseError | None, Any]:
        """Send a request and wait for its ``(error, result)`` pair.

        Waiting yields to the event loop, so this is safe to await from an
        async request handler running on the same transport.

        Raises:
            RequestTimeout: No response within ``timeout`` seconds (default
                ``request_timeout``). The pending entry is dropped.
            RequestCancelled: The server acknowledged cancelling the request.
            TransportClosed: The server went away while waiting.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[tuple[ResponseError | None, Any]] = loop.create_future()

        def complete(error: ResponseError | None, result: Any) -> None:
            if not future.done():
                future.set_result((error, result))

        request_id = self.request(method, params, complete)
        self._waiters[request_id] = (method, future)
        wait = self.request_timeout if timeout is None else timeout
        try:
            await self.drain()
            return await asyncio.wait_for(future, wait)
        except asyncio.TimeoutError:
            self.registry.discard(request_id)
            raise RequestTimeout(method, request_id, wait) from None
        finally:
            self._waiters.pop(request_id, None)

    async def drain(self) -> None:
        """Wait until the write buffer is flushed to the server.

        A no-op without a ``drain`` function. A pipe the server already
        closed is left to the read side, which sees EOF.
        """
        if self._drain is None or self.is_closed:
            return
        try:
            await self._drain()
        except ConnectionError as e:
            _log.debug("Drain failed, server stopped reading: %s", e)

    async def initialize(
        self,
        capabilities: dict[str, Any] | None = None,
        *,
        root_uri: str | None = None,
        process_id: int | None = None,
        client_info: dict[str, Any] | None = None,
        initialization_options: Any = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Run the initialize handshake and return the server's result.

        ``capabilities`` are deep-merged over ``default_capabilities()``.
        ``initialized`` is sent only after the server answered.

        Raises:
            RequestError: The server answered with an error.
        """
        params: dict[str, Any] = {
            "processId": os.getpid() if process_id is None else process_id,
            "rootUri": root_uri,
            "capabilities": merge_capabilities(capabilities),
        }
        if client_info is not None:
            params["clientInfo"] = client_info
        if initialization_options is not None:
            params["initializationOptions"] = initialization_options

        error, result = await self.request_and_wait("initialize", params, timeout)
        if error is not None:
            raise RequestError("initialize", error)

        result = result if isinstance(result, dict) else {}
        self.server_capabilities = result.get("capabilities", {})
        self.server_info = result.get("serverInfo")
        _log.info("Server initialized: %s", self.server_info or "unnamed server")

        self.notify("initialized", {})
        return result

    async def shutdown(self, timeout: float | None = None) -> None:
        """Send ``shutdown`` then ``exit``. No requests may follow."""
        if self.is_shutdown:
            return
        try:
            error, _ = await self.request_and_wait("shutdown", timeout=timeout)
            if error is not None:
                _log.warning("Server rejected shutdown: %s", error)
        except RequestTimeout as e:
            _log.warning("%s", e)
        except TransportClosed:
            _log.debug("Transport closed before shutdown completed")

        self.is_shutdown = True
        if not self.is_closed:
            self._send_message({"method": "exit"})
            await self.drain()

    # -- read side ----------------------------------------------------------

    def data_received(self, chunk: bytes) -> None:
        """Feed a chunk of server output and dispatch every completed frame."""
        if self.is_closed:
            _log.debug("Dropping %d bytes received after close", len(chunk))
            return

        pending: bytes | None = chunk
        while True:
            try:
                frame = self.reader.read_frame(pending)
            except MalformedHeader as e:
                pending = None
                self.dispatcher.report(e)
                continue
            pending = None
            if frame is None:
                break
            self._handle_frame(frame)

    def _request_cancelled(self, response: Response) -> None:
        waiter = self._waiters.get(response.id)
        if waiter is None:
            return
        method, future = waiter
        if not future.done():
            future.set_exception(RequestCancelled(method, response.id, response.error))

    def _handle_frame(self, frame: Frame) -> None:
        try:
            value = decode_body(frame.body)
        except InvalidJSON as e:
            self.dispatcher.report(e)
            return
        _log.log(TRACE, "<-- %s", value)
        self.dispatcher.dispatch(classify(value))

    def eof_received(self) -> None:
        _log.info("Server closed its output")
        self._close()

    def read_error(self, exc: BaseException) -> None:
        """Report a fatal read failure and close the transport."""
        error = ReadError(f"Error reading from server: {exc}")
        error.__cause__ = exc
        self.dispatcher.report(error)
        self._close()

    def process_exited(self, returncode: int | None) -> None:
        self.returncode = returncode
        _log.info("Server exited with code %s", returncode)
        self._close()

    def _close(self) -> None:
        if self.is_closed:
            return
        self.is_closed = True
        for request_id, (_, future) in list(self._waiters.items()):
            if not future.done():
                future.set_exception(TransportClosed(f"Server went away before answering id {request_id}"))
