"""Root pytest configuration for all tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from lspwire.config import reset_config

pytest_plugins = ("pytest_asyncio",)

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def fake_server_command() -> list[str]:
    """argv for the scripted stdio language server used by process tests."""
    return [sys.executable, str(FIXTURES / "fake_server.py")]


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point config lookup at an empty temp dir and clear the cache."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("LSPWIRE_LOG", raising=False)
    monkeypatch.delenv("LSPWIRE_REQUEST_TIMEOUT", raising=False)
    monkeypatch.setattr("lspwire.config.paths.get_system_config_path", lambda: None)
    reset_config()
    yield tmp_path
    reset_config()
