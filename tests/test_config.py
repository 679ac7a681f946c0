"""Tests for deviceauth.config -- XDG paths, atomic writes, precedence."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from deviceauth.config import (
    _atomic_write,
    get_config_dir,
    get_data_dir,
    load_global_config,
    load_project_config,
    resolve_config,
    save_global_config,
)
from deviceauth.exceptions import ConfigError
from deviceauth.models import GlobalConfig, RequestConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write *data* as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPaths:
    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("deviceauth.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "deviceauth"
        assert result.is_dir()

    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_config"
        monkeypatch.setattr("deviceauth.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(custom))

        assert get_config_dir() == custom / "deviceauth"

    def test_data_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("deviceauth.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_data_dir()
        assert result == tmp_path / ".local" / "share" / "deviceauth"
        assert result.is_dir()

    def test_fallback_dirs(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("deviceauth.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".deviceauth"
        assert get_data_dir() == tmp_path / ".deviceauth" / "data"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_and_parents(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "config.json"
        _atomic_write(target, '{"x": 1}')
        assert target.read_text(encoding="utf-8") == '{"x": 1}'

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "config.json"
        target.write_text("old", encoding="utf-8")
        _atomic_write(target, "new")
        assert target.read_text(encoding="utf-8") == "new"

    def test_no_temp_files_left_on_error(self, tmp_path: Path) -> None:
        target = tmp_path / "config.json"
        with patch("deviceauth.config.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                _atomic_write(target, "data")
        assert os.listdir(tmp_path) == []


# ---------------------------------------------------------------------------
# Global config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_load_returns_defaults_when_missing(self, isolated_config: Path) -> None:
        config = load_global_config()
        assert config == GlobalConfig()
        assert config.base_url == "https://playkit.ai"
        assert config.scope == "developer:full"
        assert config.open_browser is True

    def test_save_and_load_roundtrip(self, isolated_config: Path) -> None:
        config = GlobalConfig(
            base_url="https://staging.example.com",
            game_id="g_1",
            request=RequestConfig(timeout=5.0),
        )
        save_global_config(config)
        assert load_global_config() == config

    def test_load_invalid_json_raises_config_error(self, isolated_config: Path) -> None:
        path = get_config_dir() / "config.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()

    def test_load_invalid_schema_raises_config_error(self, isolated_config: Path) -> None:
        _write_json(get_config_dir() / "config.json", {"request": {"timeout": "soon"}})
        with pytest.raises(ConfigError):
            load_global_config()


# ---------------------------------------------------------------------------
# Project config
# ---------------------------------------------------------------------------


class TestProjectConfig:
    def test_load_returns_none_when_missing(self, isolated_config: Path) -> None:
        assert load_project_config() is None

    def test_load_valid_project_config(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "deviceauth.json", {"scope": "player:play"})
        assert load_project_config() == {"scope": "player:play"}

    def test_non_object_raises_config_error(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "deviceauth.json", ["scope"])
        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_project_config()


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_defaults(self, isolated_config: Path) -> None:
        assert resolve_config() == GlobalConfig()

    def test_project_overrides_global(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(base_url="https://global.example.com", scope="a"))
        _write_json(isolated_config / "deviceauth.json", {"scope": "b"})

        config = resolve_config()
        assert config.base_url == "https://global.example.com"
        assert config.scope == "b"

    def test_project_nested_merge(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(request=RequestConfig(timeout=5.0, verify_ssl=False)))
        _write_json(isolated_config / "deviceauth.json", {"request": {"timeout": 9}})

        config = resolve_config()
        assert config.request.timeout == 9.0
        assert config.request.verify_ssl is False

    def test_env_overrides_project(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_json(isolated_config / "deviceauth.json", {"base_url": "https://project.example.com"})
        monkeypatch.setenv("DEVICEAUTH_BASE_URL", "https://env.example.com")
        monkeypatch.setenv("DEVICEAUTH_GAME_ID", "g_env")

        config = resolve_config()
        assert config.base_url == "https://env.example.com"
        assert config.game_id == "g_env"

    def test_cli_overrides_env(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DEVICEAUTH_SCOPE", "env:scope")
        config = resolve_config(cli_scope="cli:scope", cli_game_id="g_cli")
        assert config.scope == "cli:scope"
        assert config.game_id == "g_cli"

    def test_cli_format(self, isolated_config: Path) -> None:
        assert resolve_config(cli_format="json").output.format == "json"

    def test_scalar_for_nested_section_raises_config_error(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "deviceauth.json", {"output": "json"})
        with pytest.raises(ConfigError, match="Invalid configuration"):
            resolve_config(cli_format="json")

    def test_invalid_merged_value_raises_config_error(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "deviceauth.json", {"open_browser": "sometimes"})
        with pytest.raises(ConfigError, match="Invalid configuration"):
            resolve_config()
