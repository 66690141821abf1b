"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles persistent configuration for swrfetch:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.swrfetch/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_cache_dir`.
* **Config file** -- a single :class:`~swrfetch.models.CacheConfig` JSON
  file (``config.json``) loaded by :func:`load_config` and written by
  :func:`save_config`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, the config file and defaults.

Writes use a temp-file-then-rename strategy (:func:`_atomic_write`) so a
crash never leaves a half-written config behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from swrfetch.exceptions import ConfigError
from swrfetch.models import CacheConfig

_APP_NAME = "swrfetch"
_CONFIG_FILENAME = "config.json"

ENV_KEY_PREFIX = "SWRFETCH_KEY_PREFIX"
ENV_CACHE_DIR = "SWRFETCH_CACHE_DIR"
ENV_DISABLED = "SWRFETCH_DISABLED"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


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
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/swrfetch/`` (default ``~/.config/swrfetch/``).
    On macOS/Windows: ``~/.swrfetch/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the default directory for the disk store, creating it if necessary.

    Cached responses can be safely deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/swrfetch/`` (default ``~/.cache/swrfetch/``).
    On macOS/Windows: ``~/.swrfetch/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file lives in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config file ---


def config_path() -> Path:
    """Path to the config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_config(path: Optional[Path] = None) -> CacheConfig:
    """Load :class:`~swrfetch.models.CacheConfig` from *path* (default: :func:`config_path`).

    Returns:
        The deserialised config, or defaults if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            validation.
    """
    path = path or config_path()
    if not path.is_file():
        return CacheConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return CacheConfig.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: CacheConfig, path: Optional[Path] = None) -> None:
    """Persist *config* atomically."""
    data = config.model_dump(mode="json")
    _atomic_write(path or config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(
    cli_cache_dir: Optional[str] = None,
    cli_key_prefix: Optional[str] = None,
    path: Optional[Path] = None,
) -> CacheConfig:
    """Resolve config with the full precedence chain.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``SWRFETCH_KEY_PREFIX``,
           ``SWRFETCH_CACHE_DIR``, ``SWRFETCH_DISABLED``)
        3. Config file
        4. Defaults

    ``cache_dir`` always comes back filled in, falling back to
    :func:`get_cache_dir`.
    """
    config = load_config(path)
    updates: dict[str, Any] = {}

    env_prefix = os.environ.get(ENV_KEY_PREFIX)
    if env_prefix is not None:
        updates["key_prefix"] = env_prefix
    env_dir = os.environ.get(ENV_CACHE_DIR)
    if env_dir:
        updates["cache_dir"] = env_dir
    env_disabled = os.environ.get(ENV_DISABLED)
    if env_disabled is not None and env_disabled.strip().lower() in _TRUTHY:
        updates["enabled"] = False

    if cli_key_prefix is not None:
        updates["key_prefix"] = cli_key_prefix
    if cli_cache_dir is not None:
        updates["cache_dir"] = cli_cache_dir

    config = config.model_copy(update=updates)
    if config.cache_dir is None:
        config = config.model_copy(update={"cache_dir": str(get_cache_dir())})
    return config
