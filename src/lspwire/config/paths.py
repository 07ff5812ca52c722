"""Where config layers live on each platform.

System: ``/etc/lspwire/config.yaml``, or ``%PROGRAMDATA%\\lspwire`` on Windows.
User: ``$XDG_CONFIG_HOME/lspwire``, ``~/.config/lspwire`` when ``~/.config``
exists, else ``~/.lspwire``; ``%APPDATA%\\lspwire`` on Windows.
Project: ``<project_root>/.lspwire/config.yaml``.

None of these functions check that the file exists.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "lspwire"
SHORT_NAME = ".lspwire"


def _under_env(var: str) -> Path | None:
    base = os.environ.get(var)
    return Path(base) / APP_NAME / CONFIG_FILENAME if base else None


def get_system_config_path() -> Path | None:
    if sys.platform == "win32":
        return _under_env("PROGRAMDATA")
    return Path("/etc") / APP_NAME / CONFIG_FILENAME


def get_user_config_path() -> Path | None:
    if sys.platform == "win32":
        return _under_env("APPDATA")

    xdg = _under_env("XDG_CONFIG_HOME")
    if xdg is not None:
        return xdg

    home = Path.home()
    if (home / ".config").exists():
        return home / ".config" / APP_NAME / CONFIG_FILENAME
    return home / SHORT_NAME / CONFIG_FILENAME


def get_project_config_path(project_root: str) -> Path:
    return Path(project_root) / SHORT_NAME / CONFIG_FILENAME


def get_config_paths(project_root: str | None = None) -> list[Path]:
    """Candidate config files, lowest priority first."""
    candidates = [get_system_config_path(), get_user_config_path()]
    if project_root:
        candidates.append(get_project_config_path(project_root))
    return [path for path in candidates if path is not None]
