"""Command-line interface for lspwire."""

from __future__ import annotations

import argparse
import asyncio
import json
import shlex
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rich.console import Console

from lspwire import __version__

if TYPE_CHECKING:
    from lspwire.config.schema import Config

console = Console(stderr=True)
out = Console()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="lspwire",
        description="Drive a language server over stdio with Content-Length framed JSON-RPC",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase verbosity (can be repeated, up to -vvvv for wire traces)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Extra config file layered over the system/user/project configs",
    )
    parser.add_argument(
        "--project",
        help="Project root for .lspwire/config.yaml and the initialize rootUri",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    request_parser = subparsers.add_parser(
        "request",
        help="Initialize a server, send one request, print the result, shut down",
    )
    request_parser.add_argument(
        "--server",
        help="Server command line (default: server.command from config)",
    )
    request_parser.add_argument("method", help="Request method, e.g. textDocument/definition")
    request_parser.add_argument(
        "--params",
        default=None,
        help="Request params as a JSON document",
    )
    request_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for each response (default: transport.request_timeout)",
    )

    subparsers.add_parser(
        "capabilities",
        help="Print the client capabilities sent with initialize",
    )

    return parser


def _print_json(value: Any) -> None:
    out.print_json(json.dumps(value))


async def run_request(
    config: Config,
    method: str,
    params: Any,
    timeout: float | None,
    root_uri: str | None,
) -> int:
    """Spawn the configured server, run one request and shut it down."""
    from lspwire.errors import LSPClientError
    from lspwire.process import spawn_from_config

    def on_notification(method: str, params: Any) -> None:
        console.print(f"[dim]← {method}[/dim]")

    try:
        server = await spawn_from_config(config, notification_handler=on_notification)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error spawning server: {e}[/red]")
        return 1

    async with server:
        transport = server.transport
        try:
            await transport.initialize(config.capabilities, root_uri=root_uri, timeout=timeout)
            error, result = await transport.request_and_wait(method, params, timeout)
        except LSPClientError as e:
            console.print(f"[red]{e}[/red]")
            return 1

        if error is not None:
            console.print(f"[red]{error}[/red]")
            return 1
        _print_json(result)
        return 0


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 1

    from lspwire.config import load_config, load_config_file
    from lspwire.logging import setup_logging

    if parsed.config:
        config = load_config_file(parsed.config, project_root=parsed.project)
    else:
        config = load_config(project_root=parsed.project)
    if parsed.verbose is not None:
        config.logging.verbose = parsed.verbose
    setup_logging(config.logging, force_stderr=parsed.verbose is not None)

    if parsed.command == "capabilities":
        from lspwire.capabilities import merge_capabilities

        _print_json(merge_capabilities(config.capabilities))
        return 0

    if parsed.server:
        config.server.command = shlex.split(parsed.server)
    if not config.server.command:
        console.print("[red]Error: no server command (use --server or server.command)[/red]")
        return 1

    params = None
    if parsed.params is not None:
        try:
            params = json.loads(parsed.params)
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid --params JSON: {e}[/red]")
            return 1

    root_uri = Path(parsed.project).resolve().as_uri() if parsed.project else None
    return asyncio.run(run_request(config, parsed.method, params, parsed.timeout, root_uri))
