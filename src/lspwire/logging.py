"""Logger hierarchy and handler setup for lspwire.

Everything logs under ``lspwire`` (``lspwire.transport``, ``lspwire.dispatch``,
``lspwire.server`` for the child's stderr, ...). Library use emits nothing
until an application calls ``setup_logging``; the CLI does so at startup.

Two extra levels sit between the standard ones: ``VERBOSE`` for detailed
lifecycle diagnostics and ``TRACE`` for a dump of every frame on the wire.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lspwire.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("lspwire")

# -v count -> level; anything past the end means TRACE
VERBOSITY_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"

_configured = False


class _LowercaseLevelFormatter(logging.Formatter):
    """``warning`` rather than ``WARNING`` in output lines."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Pick the effective level.

    ``verbose`` (0-4, from ``-v`` flags or config) takes priority over a
    named ``level``. Unknown names and a missing config fall back to INFO.
    """
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        return VERBOSITY_LEVELS[min(max(config.verbose, 0), len(VERBOSITY_LEVELS) - 1)]
    if config.level:
        level = logging.getLevelName(config.level.upper())
        if isinstance(level, int):
            return level
    return logging.INFO


def _install(handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(_LowercaseLevelFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)


def setup_logging(config: LoggingConfig | None = None, *, force_stderr: bool = False) -> None:
    """Attach handlers to the ``lspwire`` logger. Only the first call has effect.

    Output goes to ``config.file`` or ``$LSPWIRE_LOG`` when set. Otherwise it
    goes to stderr, but only when stderr is a terminal or ``force_stderr`` is
    given, so piping the CLI's JSON output stays clean.
    """
    global _configured
    if _configured:
        return
    _configured = True

    level = resolve_level(config)
    logger.setLevel(level)

    log_path = (config.file if config else None) or os.environ.get("LSPWIRE_LOG")
    if log_path:
        try:
            _install(logging.FileHandler(os.path.expanduser(log_path), mode="a", encoding="utf-8"), level)
            return
        except OSError as e:
            print(f"[lspwire] cannot open log file {log_path}: {e}", file=sys.stderr)
            force_stderr = True

    if force_stderr or sys.stderr.isatty():
        _install(logging.StreamHandler(sys.stderr), level)


def get_logger(name: str | None = None) -> logging.Logger:
    """``lspwire`` itself, or its child ``lspwire.<name>``."""
    return logger.getChild(name) if name else logger
