"""``loginkit config`` -- defaults stored in ``config.json``.

Only non-secret defaults live here: provider domain, redirect URI,
client_name for registration, callback timeout, and discovery cache
settings. Client IDs and secrets come from flags or the environment.
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from loginkit.exceptions import ConfigError, InvalidUsageError
from loginkit.models import GlobalConfig
from loginkit.output import error, info, show_record, success

config_app = typer.Typer(no_args_is_help=True)

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


def _load() -> GlobalConfig:
    from loginkit.config import load_global_config

    try:
        return load_global_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _parse_value(key: str, raw: str) -> Any:
    """Convert *raw* to the type of the ``GlobalConfig`` field named *key*.

    Raises:
        InvalidUsageError: Unknown key or a value of the wrong type.
    """
    field = GlobalConfig.model_fields.get(key)
    if field is None:
        raise InvalidUsageError(f"Unknown config key: {key}")
    if field.default is None and raw.lower() == "none":
        return None
    if field.annotation is bool:
        if raw.lower() in _TRUE:
            return True
        if raw.lower() in _FALSE:
            return False
        raise InvalidUsageError(f"Expected true or false for {key}, got: {raw}")
    if field.annotation is int:
        try:
            return int(raw)
        except ValueError:
            raise InvalidUsageError(f"Expected integer for {key}, got: {raw}") from None
    return raw


@config_app.command("show")
def config_show() -> None:
    """Show the effective defaults and where they are stored."""
    from loginkit.config import get_config_dir

    config = _load()
    info(f"Config directory: {get_config_dir()}")
    show_record(config.model_dump(mode="json"), title="Configuration")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key, e.g. 'domain' or 'callback_timeout'."),
    value: str = typer.Argument(help="New value. 'none' clears an optional key."),
) -> None:
    """Change one default.

    Example::

        loginkit config set domain acme.example
        loginkit config set discovery_cache_enabled false
    """
    from loginkit.config import save_global_config

    config = _load()
    try:
        parsed = _parse_value(key, value)
        updated = GlobalConfig.model_validate({**config.model_dump(), key: parsed})
    except InvalidUsageError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    except ValidationError as exc:
        error(f"Invalid value for {key}: {exc.errors()[0]['msg']}")
        raise typer.Exit(code=InvalidUsageError.exit_code) from None

    save_global_config(updated)
    success(f"Set {key} = {parsed}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Restore every default. Asks first unless --force is given."""
    from loginkit.config import save_global_config

    if not (ctx.obj or {}).get("force") and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()
    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
