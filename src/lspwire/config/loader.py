"""Reading the config cascade into a typed ``Config``.

Layers, lowest first: system file, user file, project file, an explicit file
given on the command line, then ``LSPWIRE_*`` environment variables.
"""

from __future__ import annotations

import logging
import os
import shlex
from pathlib import Path
from typing import Any

import yaml

from lspwire.config.merge import merge_configs
from lspwire.config.paths import get_config_paths
from lspwire.config.schema import Config, LoggingConfig, ServerConfig, TransportConfig

_log = logging.getLogger("lspwire.config")

# Top-level sections with a schema; anything else lands in Config.extra
_KNOWN_KEYS = {"server", "transport", "logging", "capabilities"}

_cached_config: Config | None = None


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Parse one YAML layer. Missing, unreadable or non-mapping files count as empty."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as e:
        _log.warning("Ignoring %s: invalid YAML: %s", path, e)
        return {}
    except OSError as e:
        _log.warning("Ignoring %s: %s", path, e)
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        _log.warning("Ignoring %s: top level is %s, not a mapping", path, type(data).__name__)
        return {}
    _log.debug("Loaded config layer %s", path)
    return data


def env_overrides() -> dict[str, Any]:
    """The environment layer.

    ``LSPWIRE_LOG`` sets ``logging.file``; ``LSPWIRE_REQUEST_TIMEOUT`` sets
    ``transport.request_timeout`` in seconds.
    """
    layer: dict[str, Any] = {}

    log_file = os.environ.get("LSPWIRE_LOG")
    if log_file:
        layer["logging"] = {"file": log_file}

    raw_timeout = os.environ.get("LSPWIRE_REQUEST_TIMEOUT")
    if raw_timeout:
        try:
            layer["transport"] = {"request_timeout": float(raw_timeout)}
        except ValueError:
            _log.warning("Ignoring non-numeric LSPWIRE_REQUEST_TIMEOUT=%r", raw_timeout)

    return layer


def _command(value: Any) -> list[str]:
    # argv list, or a shell-style string
    if isinstance(value, str):
        return shlex.split(value)
    if isinstance(value, list):
        return [str(v) for v in value]
    return []


def dict_to_config(data: dict[str, Any]) -> Config:
    """Build the typed config from a merged mapping, filling in defaults."""
    server = data.get("server") or {}
    transport = data.get("transport") or {}
    log = data.get("logging") or {}
    capabilities = data.get("capabilities")
    defaults = TransportConfig()

    return Config(
        server=ServerConfig(
            command=_command(server.get("command")),
            cwd=server.get("cwd"),
            env={str(k): str(v) for k, v in (server.get("env") or {}).items()},
        ),
        transport=TransportConfig(
            request_timeout=float(transport.get("request_timeout", defaults.request_timeout)),
            read_chunk_size=int(transport.get("read_chunk_size", defaults.read_chunk_size)),
            interrupt_timeout=float(transport.get("interrupt_timeout", defaults.interrupt_timeout)),
            terminate_timeout=float(transport.get("terminate_timeout", defaults.terminate_timeout)),
            max_message_size=int(transport.get("max_message_size", defaults.max_message_size)),
        ),
        logging=LoggingConfig(
            level=log.get("level"),
            verbose=log.get("verbose"),
            file=log.get("file"),
        ),
        capabilities=capabilities if isinstance(capabilities, dict) else {},
        extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
    )


def _layers(project_root: str | None, explicit: Path | None = None) -> list[dict[str, Any]]:
    layers = [load_yaml_file(path) for path in get_config_paths(project_root)]
    if explicit is not None:
        layers.append(load_yaml_file(explicit))
    layers.append(env_overrides())
    return layers


def load_config(project_root: str | None = None, reload: bool = False) -> Config:
    """Load the cascade, optionally including ``<project_root>/.lspwire/config.yaml``.

    Without a project root the result is cached for ``get_config``; pass
    ``reload=True`` to bypass the cache.
    """
    global _cached_config

    if project_root is None and _cached_config is not None and not reload:
        return _cached_config

    config = dict_to_config(merge_configs(*_layers(project_root)))
    if project_root is None:
        _cached_config = config
    return config


def load_config_file(path: Path, project_root: str | None = None) -> Config:
    """Load the cascade with ``path`` layered just below the environment."""
    return dict_to_config(merge_configs(*_layers(project_root, path)))


def get_config() -> Config:
    """The cached global config, loaded on first use."""
    return _cached_config if _cached_config is not None else load_config()


def reset_config() -> None:
    """Forget the cached config so the next ``get_config`` reloads."""
    global _cached_config
    _cached_config = None
