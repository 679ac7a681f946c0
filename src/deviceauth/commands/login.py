"""Login command -- run the device authorization flow from a terminal.

Status lines stream to stderr while the flow waits for approval; the
issued token is the only thing written to stdout, so it can be piped::

    deviceauth login
    deviceauth --json login --scope player:play --game-id g_123 | jq -r .access_token

Exit codes: 0 authorized, 3 denied or expired, 5 initiation rejected by
the server, 6 server unreachable, 130 cancelled.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from deviceauth.exceptions import AuthError, DeviceAuthError, InvalidUsageError
from deviceauth.exit_codes import EXIT_CANCELLED
from deviceauth.flow import DeviceAuthFlow
from deviceauth.models import FlowOutcome, FlowResult, FlowStatus, GlobalConfig
from deviceauth.notifier import FlowCallbacks
from deviceauth.output import (
    OutputFormat,
    OutputManager,
    error,
    format_response,
    info,
    set_output,
    status,
    success,
    suggest,
)


def _apply_output_format(ctx: typer.Context, config: GlobalConfig) -> None:
    """Honour ``output.format`` from config files when no flag was given."""
    obj = ctx.obj or {}
    if obj.get("format") is not None or config.output.format == OutputFormat.AUTO.value:
        return
    try:
        fmt = OutputFormat(config.output.format)
    except ValueError:
        raise InvalidUsageError(
            f"Invalid output format '{config.output.format}': "
            "must be 'auto', 'json', 'plain', or 'rich'"
        ) from None
    set_output(
        OutputManager(
            format=fmt,
            no_color=obj.get("no_color", False),
            quiet=obj.get("quiet", False),
            verbose=obj.get("verbose", False),
        )
    )


def _check_outcome(result: FlowResult, flow: DeviceAuthFlow) -> None:
    """Raise the exception matching a non-authorized outcome."""
    if result.outcome in (FlowOutcome.DENIED, FlowOutcome.EXPIRED):
        raise AuthError(result.message or result.outcome.value)
    if result.outcome == FlowOutcome.ERROR:
        if flow.error is not None:
            raise flow.error
        raise DeviceAuthError(result.message or "Device authorization failed")


def login_command(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Authorization server URL."
    ),
    scope: Optional[str] = typer.Option(
        None, "--scope", help="Scope to request (e.g. developer:full)."
    ),
    game_id: Optional[str] = typer.Option(
        None, "--game-id", help="Game to authorize for (player scopes)."
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the approval URL instead of opening it."
    ),
) -> None:
    """Authorize with the server and print the issued token.

    Opens the approval page in the default browser (the URL is also
    printed so it can be opened on another device), then waits until
    the request is approved, denied, or expires.

    Raises:
        typer.Exit: With the exit code matching the flow outcome.
    """
    from deviceauth.config import resolve_config

    try:
        config = resolve_config(
            cli_base_url=base_url,
            cli_scope=scope,
            cli_game_id=game_id,
            cli_format=(ctx.obj or {}).get("format"),
        )
        _apply_output_format(ctx, config)
        if not config.base_url.startswith(("http://", "https://")):
            raise InvalidUsageError(
                f"Invalid base URL '{config.base_url}': must start with http:// or https://"
            )
    except DeviceAuthError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    flow: DeviceAuthFlow

    def _on_state_change(new_status: FlowStatus) -> None:
        if new_status == FlowStatus.WAITING_FOR_BROWSER and flow.auth_url:
            info(f"Approve this request in your browser: {flow.auth_url}")

    flow = DeviceAuthFlow(
        config.base_url,
        scope=config.scope,
        game_id=config.game_id,
        callbacks=FlowCallbacks(on_status=status, on_state_change=_on_state_change),
        open_browser=config.open_browser and not no_browser,
        timeout=config.request.timeout,
        verify_ssl=config.request.verify_ssl,
    )

    try:
        result = asyncio.run(flow.start())
    except KeyboardInterrupt:
        info("Cancelled.")
        raise typer.Exit(code=EXIT_CANCELLED) from None

    if result.outcome == FlowOutcome.CANCELLED:
        info("Cancelled.")
        raise typer.Exit(code=EXIT_CANCELLED)

    try:
        _check_outcome(result, flow)
    except DeviceAuthError as exc:
        error(str(exc))
        if isinstance(exc, AuthError):
            suggest("Run 'deviceauth login' again to start a new session.")
        raise typer.Exit(code=exc.exit_code) from None

    if result.token is not None:
        format_response(result.token.model_dump(mode="json"))
    success("Authorized.")
