"""Tests for the configuration module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from lspwire.config import (
    Config,
    get_config,
    load_config,
    load_config_file,
    reset_config,
)
from lspwire.config.loader import dict_to_config, env_overrides, load_yaml_file
from lspwire.config.merge import deep_merge, merge_configs
from lspwire.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)


class TestDeepMerge:
    """Test the deep merge algorithm."""

    def test_simple_override(self) -> None:
        assert deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        base = {"transport": {"request_timeout": 1.0, "read_chunk_size": 4096}}
        result = deep_merge(base, {"transport": {"request_timeout": 5.0}})
        assert result["transport"] == {"request_timeout": 5.0, "read_chunk_size": 4096}

    def test_none_does_not_override(self) -> None:
        assert deep_merge({"a": 1}, {"a": None}) == {"a": 1}

    def test_list_replaced_not_merged(self) -> None:
        result = deep_merge({"command": ["a", "b"]}, {"command": ["c"]})
        assert result["command"] == ["c"]

    def test_base_not_mutated(self) -> None:
        base = {"x": {"y": 1}}
        deep_merge(base, {"x": {"y": 2}})
        assert base == {"x": {"y": 1}}

    def test_merge_configs_order(self) -> None:
        result = merge_configs({"a": 1}, {}, {"a": 2, "b": 1}, {"b": 3})
        assert result == {"a": 2, "b": 3}


class TestPaths:
    def test_project_path(self, tmp_path) -> None:
        assert get_project_config_path(str(tmp_path)) == tmp_path / ".lspwire" / "config.yaml"

    @pytest.mark.skipif(sys.platform == "win32", reason="Unix paths")
    def test_system_path_unix(self) -> None:
        assert get_system_config_path() == Path("/etc/lspwire/config.yaml")

    @pytest.mark.skipif(sys.platform == "win32", reason="Unix paths")
    def test_user_path_honors_xdg(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert get_user_config_path() == tmp_path / "lspwire" / "config.yaml"

    def test_project_path_last(self, tmp_path) -> None:
        paths = get_config_paths(str(tmp_path))
        assert paths[-1] == get_project_config_path(str(tmp_path))


class TestLoading:
    def test_missing_file_is_empty(self, tmp_path) -> None:
        assert load_yaml_file(tmp_path / "nope.yaml") == {}

    def test_invalid_yaml_is_empty(self, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("server: [unclosed\n")
        assert load_yaml_file(path) == {}

    def test_defaults(self) -> None:
        config = dict_to_config({})
        assert isinstance(config, Config)
        assert config.server.command == []
        assert config.transport.request_timeout == 1.0
        assert config.transport.read_chunk_size == 4096
        assert config.transport.max_message_size == 10 * 1024 * 1024
        assert config.capabilities == {}

    def test_max_message_size(self) -> None:
        config = dict_to_config({"transport": {"max_message_size": "2048"}})
        assert config.transport.max_message_size == 2048

    def test_command_string_is_split(self) -> None:
        config = dict_to_config({"server": {"command": "clangd --log=error"}})
        assert config.server.command == ["clangd", "--log=error"]

    def test_unknown_keys_kept_as_extra(self) -> None:
        config = dict_to_config({"editor": {"theme": "dark"}})
        assert config.extra == {"editor": {"theme": "dark"}}

    def test_env_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("LSPWIRE_LOG", "/tmp/lspwire.log")
        monkeypatch.setenv("LSPWIRE_REQUEST_TIMEOUT", "2.5")
        assert env_overrides() == {
            "logging": {"file": "/tmp/lspwire.log"},
            "transport": {"request_timeout": 2.5},
        }

    def test_bad_timeout_env_ignored(self, monkeypatch) -> None:
        monkeypatch.delenv("LSPWIRE_LOG", raising=False)
        monkeypatch.setenv("LSPWIRE_REQUEST_TIMEOUT", "soon")
        assert env_overrides() == {}


class TestCascade:
    def test_user_then_project(self, isolated_config) -> None:
        user_dir = isolated_config / "xdg" / "lspwire"
        user_dir.mkdir(parents=True)
        (user_dir / "config.yaml").write_text(
            "server:\n  command: [pylsp]\ntransport:\n  request_timeout: 3\n"
            "capabilities:\n  workspace:\n    configuration: true\n"
        )
        project = isolated_config / "project"
        (project / ".lspwire").mkdir(parents=True)
        (project / ".lspwire" / "config.yaml").write_text("transport:\n  request_timeout: 9\n")

        config = load_config(project_root=str(project))

        assert config.server.command == ["pylsp"]
        assert config.transport.request_timeout == 9.0
        assert config.capabilities == {"workspace": {"configuration": True}}

    def test_environment_wins(self, isolated_config, monkeypatch) -> None:
        project = isolated_config / "project"
        (project / ".lspwire").mkdir(parents=True)
        (project / ".lspwire" / "config.yaml").write_text("transport:\n  request_timeout: 9\n")
        monkeypatch.setenv("LSPWIRE_REQUEST_TIMEOUT", "0.5")

        assert load_config(project_root=str(project)).transport.request_timeout == 0.5

    def test_explicit_file(self, isolated_config) -> None:
        path = isolated_config / "extra.yaml"
        path.write_text("logging:\n  verbose: 4\n")
        assert load_config_file(path).logging.verbose == 4

    def test_global_config_cached(self, isolated_config) -> None:
        first = get_config()
        assert get_config() is first
        reset_config()
        assert get_config() is not first
