"""Config commands -- view and modify saved settings.

Provides the ``deviceauth config`` sub-command group for reading,
updating, and resetting the user's configuration file
(:class:`~deviceauth.models.GlobalConfig`): default server URL, scope,
game id, browser behaviour, and HTTP settings.
"""

from __future__ import annotations

from typing import Any

import typer

from deviceauth.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


def _flatten(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{name}."))
        else:
            flat[name] = value
    return flat


@config_app.command("show")
def config_show() -> None:
    """Show the saved configuration, one dotted key per row.

    Example::

        deviceauth config show
        deviceauth --json config show
    """
    from deviceauth.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(_flatten(config.model_dump(mode="json")))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'request.timeout')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the type of the existing field (bool, int,
    float, or str) and the result is validated before saving.

    Raises:
        typer.Exit: With code 2 if the key is unknown, the value cannot be
            coerced, or validation fails.

    Example::

        deviceauth config set base_url https://staging.playkit.ai
        deviceauth config set open_browser false
        deviceauth config set request.timeout 10
    """
    from deviceauth.config import load_global_config, save_global_config
    from deviceauth.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = target[final_key]
    coerced: Any = value
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, (int, float)):
        try:
            coerced = type(current)(value)
        except ValueError:
            error(f"Expected {type(current).__name__} for {key}, got: {value}")
            raise typer.Exit(code=2) from None

    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except Exception as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip the confirmation prompt."
    ),
) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        deviceauth config reset --force
    """
    from deviceauth.config import save_global_config
    from deviceauth.models import GlobalConfig

    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
