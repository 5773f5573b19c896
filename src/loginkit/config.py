"""Where loginkit keeps its files, and how settings are resolved.

Three directories, following XDG on Linux/BSD and a single ``~/.loginkit``
tree elsewhere:

==========  ===============================  ======================
kind        XDG                              fallback
==========  ===============================  ======================
config      ``$XDG_CONFIG_HOME/loginkit``    ``~/.loginkit``
cache       ``$XDG_CACHE_HOME/loginkit``     ``~/.loginkit/cache``
data        ``$XDG_DATA_HOME/loginkit``      ``~/.loginkit/data``
==========  ===============================  ======================

``config.json`` in the config directory holds non-secret defaults
(:class:`~loginkit.models.GlobalConfig`); the cache directory holds
discovery metadata; the data directory holds the token, saved client
registrations, and crash logs. Every file is replaced atomically with
:func:`atomic_write`.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from loginkit.exceptions import ConfigError
from loginkit.models import GlobalConfig, LoginSettings

_APP_NAME = "loginkit"
_CONFIG_FILENAME = "config.json"

ENV_DOMAIN = "LOGINKIT_DOMAIN"
ENV_CLIENT_ID = "LOGINKIT_CLIENT_ID"
ENV_CLIENT_SECRET = "LOGINKIT_CLIENT_SECRET"
ENV_REDIRECT_URI = "LOGINKIT_REDIRECT_URI"
ENV_CLIENT_NAME = "LOGINKIT_CLIENT_NAME"
ENV_USE_PKCE = "LOGINKIT_USE_PKCE"

# kind -> (XDG variable, default under $HOME, subdirectory of ~/.loginkit)
_DIRS = {
    "config": ("XDG_CONFIG_HOME", (".config",), None),
    "cache": ("XDG_CACHE_HOME", (".cache",), "cache"),
    "data": ("XDG_DATA_HOME", (".local", "share"), "data"),
}


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, home_default, fallback_sub = _DIRS[kind]
    if _is_xdg_platform():
        root = os.environ.get(env_var) or Path.home().joinpath(*home_default)
        path = Path(root) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback_sub:
            path = path / fallback_sub
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    return _app_dir("config")


def get_cache_dir() -> Path:
    """Discovery cache; safe to delete at any time."""
    return _app_dir("cache")


def get_data_dir() -> Path:
    return _app_dir("data")


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Replace *path* with *data* via a sibling temp file and ``os.replace``.

    *mode*, when given, is set on the temp file before anything is written,
    so a token file is never readable by others even briefly. On failure
    the temp file is removed and *path* is left untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if mode is not None:
            os.chmod(tmp_name, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def _config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Read ``config.json``; defaults when it does not exist.

    Raises:
        ConfigError: The file is not valid JSON or has invalid values.
    """
    path = _config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        return GlobalConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    atomic_write(_config_path(), json.dumps(config.model_dump(mode="json"), indent=2) + "\n")


def _first(*values: Optional[str]) -> Optional[str]:
    return next((value for value in values if value), None)


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes")


def resolve_settings(
    cli_domain: Optional[str] = None,
    cli_client_id: Optional[str] = None,
    cli_client_secret: Optional[str] = None,
    cli_redirect_uri: Optional[str] = None,
    cli_client_name: Optional[str] = None,
    cli_use_pkce: bool = False,
) -> LoginSettings:
    """Merge CLI flags, ``LOGINKIT_*`` variables, ``config.json``, and defaults.

    Earlier sources win and empty values are skipped. The client ID, the
    client secret, and the PKCE switch never come from ``config.json``.
    """
    cfg = load_global_config()
    env = os.environ
    return LoginSettings(
        domain=_first(cli_domain, env.get(ENV_DOMAIN), cfg.domain),
        client_id=_first(cli_client_id, env.get(ENV_CLIENT_ID)),
        client_secret=_first(cli_client_secret, env.get(ENV_CLIENT_SECRET)),
        use_pkce=cli_use_pkce or _truthy(env.get(ENV_USE_PKCE)),
        redirect_uri=_first(cli_redirect_uri, env.get(ENV_REDIRECT_URI)) or cfg.redirect_uri,
        client_name=_first(cli_client_name, env.get(ENV_CLIENT_NAME)) or cfg.client_name,
        callback_timeout=cfg.callback_timeout,
        discovery_cache_enabled=cfg.discovery_cache_enabled,
        discovery_cache_ttl=cfg.discovery_cache_ttl,
    )
