"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles the persistent settings used by the ``deviceauth`` CLI.
The library API (:class:`~deviceauth.flow.DeviceAuthFlow`) never reads
them: callers pass ``base_url`` and ``scope`` explicitly.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.deviceauth/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- a single :class:`~deviceauth.models.GlobalConfig`
  JSON file.
* **Project config** -- an optional ``./deviceauth.json`` with the same
  keys, for repositories that pin a server or scope.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project config, and global config.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`).
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from deviceauth.exceptions import ConfigError
from deviceauth.models import GlobalConfig

_APP_NAME = "deviceauth"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "deviceauth.json"

ENV_BASE_URL = "DEVICEAUTH_BASE_URL"
ENV_SCOPE = "DEVICEAUTH_SCOPE"
ENV_GAME_ID = "DEVICEAUTH_GAME_ID"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True on platforms that follow the XDG Base Directory spec (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/deviceauth/`` (default
    ``~/.config/deviceauth/``). On macOS/Windows: ``~/.deviceauth/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/deviceauth/`` (default
    ``~/.local/share/deviceauth/``). On macOS/Windows: ``~/.deviceauth/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* via a sibling temp file and ``os.replace``.

    The temp file is removed on any failure, including KeyboardInterrupt.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp = tempfile.NamedTemporaryFile(
        mode="w",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
        encoding="utf-8",
    )
    try:
        with tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, path)
    except BaseException:
        try:
            os.unlink(tmp.name)
        except OSError:
            pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def _read_json(path: Path, label: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid {label} at {path}: {exc}") from exc


def load_global_config() -> GlobalConfig:
    """Load the user configuration, or defaults if no file exists.

    Raises:
        ConfigError: If the file exists but is not valid JSON or fails
            validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the user configuration atomically."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./deviceauth.json`` if present.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path, "project config")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def resolve_config(
    cli_base_url: Optional[str] = None,
    cli_scope: Optional[str] = None,
    cli_game_id: Optional[str] = None,
    cli_format: Optional[str] = None,
) -> GlobalConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``DEVICEAUTH_BASE_URL``,
           ``DEVICEAUTH_SCOPE``, ``DEVICEAUTH_GAME_ID``)
        3. Project config (``./deviceauth.json``)
        4. User config (``~/.config/deviceauth/config.json``)
        5. Defaults

    Returns:
        A new :class:`~deviceauth.models.GlobalConfig`; nothing is saved.

    Raises:
        ConfigError: If a config file is invalid or the merged values fail
            validation.
    """
    data = load_global_config().model_dump(mode="json")

    project = load_project_config()
    if project is not None:
        for key, value in project.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value

    for env_var, key in ((ENV_BASE_URL, "base_url"), (ENV_SCOPE, "scope"), (ENV_GAME_ID, "game_id")):
        env_value = os.environ.get(env_var)
        if env_value:
            data[key] = env_value

    if cli_base_url is not None:
        data["base_url"] = cli_base_url
    if cli_scope is not None:
        data["scope"] = cli_scope
    if cli_game_id is not None:
        data["game_id"] = cli_game_id
    if cli_format is not None and isinstance(data.get("output"), dict):
        data["output"]["format"] = cli_format

    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
