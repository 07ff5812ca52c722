"""YAML configuration for lspwire.

Layers merge lowest first: system, user, project, an explicit ``--config``
file, then ``LSPWIRE_LOG`` / ``LSPWIRE_REQUEST_TIMEOUT`` from the environment.

    from lspwire.config import load_config

    config = load_config(project_root="/path/to/project")
    server = await spawn_from_config(config)
"""

from lspwire.config.loader import get_config, load_config, load_config_file, reset_config
from lspwire.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from lspwire.config.schema import Config, LoggingConfig, ServerConfig, TransportConfig

__all__ = [
    "Config",
    "LoggingConfig",
    "ServerConfig",
    "TransportConfig",
    "get_config",
    "get_config_paths",
    "get_project_config_path",
    "get_system_config_path",
    "get_user_config_path",
    "load_config",
    "load_config_file",
    "reset_config",
]
