"""Routing of classified server messages to handlers and pending callbacks."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from lspwire.errors import (
    ErrorObserver,
    HandlerFailure,
    HandlerKind,
    InvalidServerMessage,
    LSPClientError,
    NoCallbackForResponse,
    ResponseMissingPayload,
    log_error,
)
from lspwire.messages import (
    ErrorCodes,
    InvalidMessage,
    Message,
    Notification,
    Request,
    Response,
    ResponseError,
)
from lspwire.registry import RequestRegistry

_log = logging.getLogger("lspwire.dispatch")

# (method, params) -> result | ResponseError, optionally awaitable
RequestHandler = Callable[[str, Any], Any]
NotificationHandler = Callable[[str, Any], None]
SendMessage = Callable[[dict[str, Any]], None]
CancellationHook = Callable[[Response], None]


class Dispatcher:
    """Routes ``Request``/``Response``/``Notification``/``InvalidMessage``.

    Failures in handlers and callbacks are reported to ``error_observer`` and
    never propagate to the caller of ``dispatch``. Server requests are run on
    the next turn of the event loop so they never execute inside the read
    callback that decoded them.

    ``on_cancelled(response)`` is told about cancellation acks that cleared a
    pending entry.
    """

    def __init__(
        self,
        registry: RequestRegistry,
        send: SendMessage,
        *,
        request_handler: RequestHandler | None = None,
        notification_handler: NotificationHandler | None = None,
        error_observer: ErrorObserver | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        on_cancelled: CancellationHook | None = None,
    ) -> None:
        self.registry = registry
        self.on_cancelled = on_cancelled
        self.request_handler = request_handler
        self.notification_handler = notification_handler
        self.error_observer = error_observer or log_error
        self._send = send
        self._loop = loop
        self._tasks: set[asyncio.Task[None]] = set()

    def report(self, error: LSPClientError) -> None:
        """Hand ``error`` to the observer. Observer failures are logged only."""
        try:
            self.error_observer(error)
        except Exception:
            _log.exception("Error observer failed while reporting %r", error)

    def dispatch(self, message: Message) -> None:
        match message:
            case Request():
                loop = self._loop or asyncio.get_running_loop()
                loop.call_soon(self._run_request_handler, message)
            case Response():
                self._handle_response(message)
            case Notification():
                self._handle_notification(message)
            case InvalidMessage(raw=raw):
                self.report(InvalidServerMessage(raw))

    def _handle_response(self, response: Response) -> None:
        if response.is_cancellation_ack:
            # The callback is never called for an ack; only on_cancelled hears
            # of it. The server sends nothing further for this id.
            _log.debug("Received %s ack for id %r", response.error.message, response.id)
            if self.registry.discard(response.id) and self.on_cancelled is not None:
                try:
                    self.on_cancelled(response)
                except Exception:
                    _log.exception("Cancellation hook failed for id %r", response.id)
            return

        callback = self.registry.pop(response.id)
        if callback is None:
            self.report(NoCallbackForResponse(response.id))
            return

        try:
            callback(response.error, response.result)
        except Exception as e:
            self.report(_failure(HandlerKind.CALLBACK, e))

    def _handle_notification(self, notification: Notification) -> None:
        if self.notification_handler is None:
            _log.debug("Unhandled notification %s", notification.method)
            return
        try:
            self.notification_handler(notification.method, notification.params)
        except Exception as e:
            self.report(_failure(HandlerKind.NOTIFICATION, e, notification.method))

    def _run_request_handler(self, request: Request) -> None:
        if self.request_handler is None:
            _log.debug("No request handler for %s", request.method)
            self._reply(
                request,
                error=ResponseError(
                    code=ErrorCodes.MethodNotFound,
                    message=f"Unhandled method {request.method}",
                ),
            )
            return

        try:
            outcome = self.request_handler(request.method, request.params)
        except Exception as e:
            self._request_failed(request, e)
            return

        if inspect.isawaitable(outcome):
            loop = self._loop or asyncio.get_running_loop()
            task = loop.create_task(self._await_request_handler(request, outcome))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return

        self._complete_request(request, outcome)

    async def _await_request_handler(self, request: Request, outcome: Awaitable[Any]) -> None:
        try:
            result = await outcome
        except Exception as e:
            self._request_failed(request, e)
            return
        self._complete_request(request, result)

    def _complete_request(self, request: Request, outcome: Any) -> None:
        if isinstance(outcome, ResponseError):
            self._reply(request, error=outcome)
        elif outcome is None:
            missing = ResponseMissingPayload(request.method)
            self.report(missing)
            self._reply(request, error=ResponseError(code=ErrorCodes.InternalError, message=str(missing)))
        else:
            self._reply(request, result=outcome)

    def _request_failed(self, request: Request, exc: Exception) -> None:
        self.report(_failure(HandlerKind.REQUEST, exc, request.method))
        self._reply(request, error=ResponseError(code=ErrorCodes.InternalError, message=str(exc)))

    def _reply(
        self,
        request: Request,
        *,
        result: Any = None,
        error: ResponseError | None = None,
    ) -> None:
        message: dict[str, Any] = {"id": request.id}
        if error is not None:
            message["error"] = error.to_dict()
        else:
            message["result"] = result
        try:
            self._send(message)
        except LSPClientError as e:
            _log.warning("Could not answer %s (id %r): %s", request.method, request.id, e)


def _failure(handler: HandlerKind, exc: Exception, method: str | None = None) -> HandlerFailure:
    failure = HandlerFailure(handler, exc, method)
    failure.__cause__ = exc
    return failure
