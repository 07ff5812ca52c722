"""Language server child process wired to a ``Transport``.

Spawns the server with piped stdio, pumps its stdout into the transport in
chunks, forwards stderr to the ``lspwire.server`` logger, and reports exit.
Closing runs the shutdown handshake, then escalates interrupt → terminate →
kill if the server does not leave on its own.
"""

from __future__ import annotations

import asyncio
import logging
import os
import platform
import signal
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from lspwire.framing import DEFAULT_MAX_MESSAGE_SIZE
from lspwire.transport import DEFAULT_REQUEST_TIMEOUT, Transport

if TYPE_CHECKING:
    from lspwire.config.schema import Config
    from lspwire.dispatch import NotificationHandler, RequestHandler
    from lspwire.errors import ErrorObserver

_log = logging.getLogger("lspwire.process")
_server_log = logging.getLogger("lspwire.server")

_WINDOWS = platform.system() == "Windows"
# New process group so Ctrl-Break reaches only the server on Windows
_CREATE_NEW_PROCESS_GROUP = 0x00000200 if _WINDOWS else 0

DEFAULT_CHUNK_SIZE = 4096


def _interrupt(process: asyncio.subprocess.Process) -> None:
    sig = signal.CTRL_BREAK_EVENT if _WINDOWS else signal.SIGINT  # type: ignore[attr-defined]
    try:
        os.kill(process.pid, sig)
    except OSError:
        _terminate(process)


def _terminate(process: asyncio.subprocess.Process) -> None:
    try:
        process.terminate()
    except ProcessLookupError:
        pass


def _kill(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        pass


async def graceful_shutdown(
    process: asyncio.subprocess.Process,
    interrupt_timeout: float = 2.0,
    terminate_timeout: float = 3.0,
) -> None:
    """Stop a server that did not exit after ``exit``.

    Sends an interrupt (SIGINT, Ctrl-Break on Windows), then terminate, each
    followed by a bounded wait, and finally kills and reaps the process.
    """
    steps = (
        ("interrupt", _interrupt, interrupt_timeout),
        ("terminate", _terminate, terminate_timeout),
    )
    for name, send, timeout in steps:
        if process.returncode is not None:
            return
        _log.debug("Sending %s to server pid %s", name, process.pid)
        send(process)
        try:
            await asyncio.wait_for(process.wait(), timeout=timeout)
            return
        except asyncio.TimeoutError:
            _log.debug("Server pid %s ignored %s after %.1fs", process.pid, name, timeout)

    _log.warning("Killing unresponsive server pid %s", process.pid)
    _kill(process)
    await process.wait()


async def pump_stdout(
    stream: asyncio.StreamReader,
    transport: Transport,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """Feed ``stream`` into ``transport`` chunk by chunk until EOF or a read error."""
    while True:
        try:
            chunk = await stream.read(chunk_size)
        except Exception as e:
            transport.read_error(e)
            return
        if not chunk:
            transport.eof_received()
            return
        transport.data_received(chunk)


async def pump_stderr(stream: asyncio.StreamReader) -> None:
    """Forward server stderr lines to the ``lspwire.server`` logger."""
    while True:
        line = await stream.readline()
        if not line:
            return
        _server_log.debug("%s", line.decode("utf-8", errors="replace").rstrip())


@dataclass
class LanguageServerProcess:
    """A running language server and the transport bound to its stdio."""

    process: asyncio.subprocess.Process
    transport: Transport
    interrupt_timeout: float = 2.0
    terminate_timeout: float = 3.0
    _tasks: list[asyncio.Task[None]] = field(default_factory=list)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    async def close(self) -> int | None:
        """Shut the server down and wait for it to exit. Returns its exit code."""
        if not self.transport.is_closed:
            await self.transport.shutdown()

        if self.process.stdin is not None and not self.process.stdin.is_closing():
            self.process.stdin.close()

        try:
            await asyncio.wait_for(self.process.wait(), timeout=self.interrupt_timeout)
        except asyncio.TimeoutError:
            _log.debug("Server still running after exit notification")
            await graceful_shutdown(self.process, self.interrupt_timeout, self.terminate_timeout)

        await asyncio.gather(*self._tasks, return_exceptions=True)
        return self.process.returncode

    async def __aenter__(self) -> LanguageServerProcess:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


async def spawn_server(
    command: list[str],
    *,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    request_handler: RequestHandler | None = None,
    notification_handler: NotificationHandler | None = None,
    error_observer: ErrorObserver | None = None,
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    read_chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
    interrupt_timeout: float = 2.0,
    terminate_timeout: float = 3.0,
) -> LanguageServerProcess:
    """Spawn a language server and attach a ``Transport`` to its stdio.

    Args:
        command: argv of the server, e.g. ``["pyright-langserver", "--stdio"]``.
        env: Extra environment variables layered over ``os.environ``.

    Raises:
        ValueError: If ``command`` is empty.
        OSError: If the executable cannot be started.
    """
    if not command:
        raise ValueError("Empty server command")

    process_env = {**os.environ, **env} if env else None
    _log.info("Spawning server: %s", " ".join(command))
    process = await asyncio.create_subprocess_exec(
        command[0],
        *command[1:],
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=cwd,
        env=process_env,
        creationflags=_CREATE_NEW_PROCESS_GROUP,  # type: ignore[arg-type]
    )
    assert process.stdin is not None and process.stdout is not None and process.stderr is not None

    stdin = process.stdin
    transport = Transport(
        stdin.write,
        drain=stdin.drain,
        request_handler=request_handler,
        notification_handler=notification_handler,
        error_observer=error_observer,
        loop=asyncio.get_running_loop(),
        request_timeout=request_timeout,
        max_message_size=max_message_size,
    )

    server = LanguageServerProcess(
        process=process,
        transport=transport,
        interrupt_timeout=interrupt_timeout,
        terminate_timeout=terminate_timeout,
    )
    reader = asyncio.create_task(pump_stdout(process.stdout, transport, read_chunk_size))

    async def watch_exit() -> None:
        await reader
        transport.process_exited(await process.wait())

    server._tasks.extend(
        [reader, asyncio.create_task(pump_stderr(process.stderr)), asyncio.create_task(watch_exit())]
    )
    return server


async def spawn_from_config(config: Config, **handlers: Any) -> LanguageServerProcess:
    """Spawn the server described by ``config.server`` with its transport settings."""
    return await spawn_server(
        config.server.command,
        cwd=config.server.cwd,
        env=config.server.env or None,
        request_timeout=config.transport.request_timeout,
        read_chunk_size=config.transport.read_chunk_size,
        max_message_size=config.transport.max_message_size,
        interrupt_timeout=config.transport.interrupt_timeout,
        terminate_timeout=config.transport.terminate_timeout,
        **handlers,
    )
