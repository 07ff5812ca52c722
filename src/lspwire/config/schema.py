"""Configuration schema dataclasses for lspwire.

Defines the structure of configuration at all levels (system, user, project).
All fields have defaults to support partial configs that merge together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from lspwire.framing import DEFAULT_MAX_MESSAGE_SIZE


@dataclass
class ServerConfig:
    """Language server process to spawn.

    Example config.yaml:
        server:
          command: ["pyright-langserver", "--stdio"]
          cwd: /path/to/project
          env:
            NODE_OPTIONS: --max-old-space-size=4096
    """

    command: list[str] = field(default_factory=list)
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)  # Added to the inherited environment


@dataclass
class TransportConfig:
    """Transport timing and buffering."""

    request_timeout: float = 1.0  # Seconds request_and_wait waits by default
    read_chunk_size: int = 4096  # Bytes per read from the server's stdout
    interrupt_timeout: float = 2.0  # Seconds to wait after SIGINT on close
    terminate_timeout: float = 3.0  # Seconds to wait after SIGTERM on close
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE  # Larger frames are rejected


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, takes precedence over level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    server: ServerConfig = field(default_factory=ServerConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    capabilities: dict[str, Any] = field(default_factory=dict)  # Merged over client defaults
    extra: dict[str, Any] = field(default_factory=dict)  # Unknown top-level keys
