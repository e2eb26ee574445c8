"""Settings file discovery and loading.

A deployment describes its key material and token lifetimes in a settings
file (see :class:`~warden.models.ServerSettings`). The file is YAML or JSON
and is located with the following precedence (high to low):

1. An explicit path (``warden check --config PATH``).
2. The ``WARDEN_CONFIG`` environment variable.
3. ``./warden.yaml``, ``./warden.yml`` or ``./warden.json`` in the working
   directory.
4. ``config.yaml`` in the user config directory: ``$XDG_CONFIG_HOME/warden/``
   (default ``~/.config/warden/``) on Linux/BSD, ``~/.warden/`` elsewhere.

Relative key paths inside a settings file are resolved against the file's
directory.
"""

from __future__ import annotations

import json
import logging
import os
import platform
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from warden.exceptions import ConfigurationError
from warden.models import ServerSettings, SigningKey

logger = logging.getLogger(__name__)

_APP_NAME = "warden"
_ENV_VAR = "WARDEN_CONFIG"
_USER_CONFIG_FILENAME = "config.yaml"
_PROJECT_CONFIG_FILENAMES = ("warden.yaml", "warden.yml", "warden.json")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the user configuration directory (not created)."""
    if _is_xdg_platform():
        return _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/warden/`` (default ``~/.local/share/warden/``).
    On macOS/Windows: ``~/.warden/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Discovery ---


def find_settings_file(path: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Locate the settings file following the documented precedence.

    An explicit *path* or ``WARDEN_CONFIG`` value is returned even when the
    file does not exist, so the loader can report it. Returns ``None`` when
    no candidate is found.
    """
    if path is not None:
        return Path(path)
    env_value = os.environ.get(_ENV_VAR, "")
    if env_value:
        return Path(env_value)
    for name in _PROJECT_CONFIG_FILENAMES:
        candidate = Path.cwd() / name
        if candidate.is_file():
            return candidate
    candidate = get_config_dir() / _USER_CONFIG_FILENAME
    if candidate.is_file():
        return candidate
    return None


# --- Loading ---


def _parse(text: str, suffix: str) -> Any:
    if suffix == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def _anchor(key: Optional[SigningKey], base: Path) -> Optional[SigningKey]:
    if key is None or key.path is None or key.path.is_absolute():
        return key
    return SigningKey(path=base / key.path)


def load_settings(path: Optional[Union[str, Path]] = None) -> ServerSettings:
    """Find, parse and validate the settings file.

    Args:
        path: Explicit settings file; see the module docstring for the
            fallbacks.

    Returns:
        The validated :class:`~warden.models.ServerSettings`.

    Raises:
        ConfigurationError: If no file is found, or the file cannot be read,
            parsed or validated.
    """
    settings_path = find_settings_file(path)
    if settings_path is None:
        raise ConfigurationError(
            f"No settings file found. Pass --config, set {_ENV_VAR}, "
            f"or create ./{_PROJECT_CONFIG_FILENAMES[0]}"
        )
    if not settings_path.is_file():
        raise ConfigurationError(f"Settings file not found: {settings_path}")

    try:
        data = _parse(settings_path.read_text(encoding="utf-8"), settings_path.suffix.lower())
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read settings at {settings_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings at {settings_path} must be a mapping")

    try:
        settings = ServerSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings at {settings_path}: {exc}") from exc

    base = settings_path.parent
    logger.debug("Loaded settings from %s", settings_path)
    return settings.model_copy(
        update={
            "signing_key": _anchor(settings.signing_key, base),
            "public_key": _anchor(settings.public_key, base),
        }
    )
