"""Typer application and CLI entry point for deviceauth.

Registers the built-in sub-commands (``login``, ``config``) on the root
Typer app. :func:`main` is the console-script entry point declared in
``pyproject.toml``; unhandled exceptions are written to a crash log under
the data directory.

See Also:
    :mod:`deviceauth.config`: Configuration resolution.
    :mod:`deviceauth.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import sys
import traceback
from datetime import datetime

import typer

from deviceauth import __version__
from deviceauth.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="deviceauth",
    help="Authorize this machine with a device-auth server using PKCE.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"deviceauth {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~deviceauth.output.OutputManager` and stores
    shared options in ``ctx.obj`` for sub-commands.
    """
    from deviceauth.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    )

    ctx.ensure_object(dict)
    ctx.obj["format"] = None if fmt == OutputFormat.AUTO else fmt.value
    ctx.obj["quiet"] = quiet
    ctx.obj["verbose"] = verbose
    ctx.obj["no_color"] = no_color


def _write_crash_log() -> str:
    """Write the current traceback to disk and return the log file path."""
    from deviceauth.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def _register_commands() -> None:
    from deviceauth.commands.config import config_app
    from deviceauth.commands.login import login_command

    app.command("login")(login_command)
    app.add_typer(config_app, name="config", help="Configuration management.")


_register_commands()


def main() -> None:
    """CLI entry point invoked by the ``deviceauth`` console script.

    :class:`~deviceauth.exceptions.DeviceAuthError` exits with the error's
    ``exit_code``; Ctrl-C exits 130; anything else writes a crash log and
    exits with :data:`~deviceauth.exit_codes.EXIT_GENERIC_FAILURE`.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)
    except Exception as exc:
        from deviceauth.exceptions import DeviceAuthError
        from deviceauth.output import error

        if isinstance(exc, DeviceAuthError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log()
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
