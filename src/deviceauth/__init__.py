"""deviceauth -- OAuth2-style Device Authorization Grant client with PKCE.

This package lets a CLI, desktop tool, or service obtain an access token
by sending the user to an approval page in their browser and polling the
authorization server until the request is approved, denied, or expires.

Typical usage::

    from deviceauth import DeviceAuthFlow

    flow = DeviceAuthFlow("https://playkit.ai", scope="developer:full")
    result = await flow.start()
    if result.ok:
        print(result.token.access_token)

Modules:
    pkce: Verifier / challenge generation (S256).
    session: Registers a device-auth session with the server.
    polling: Adaptive polling loop with dual deadlines.
    notifier: Callback channels for status and terminal outcomes.
    flow: :class:`DeviceAuthFlow`, the single entry point tying it together.
    app: Typer application and CLI entry point.
"""

__version__ = "0.3.0"

from deviceauth.flow import DeviceAuthFlow, run_device_auth  # noqa: E402
from deviceauth.models import (  # noqa: E402
    AuthorizationResult,
    FlowOutcome,
    FlowResult,
    FlowStatus,
)
from deviceauth.notifier import FlowCallbacks  # noqa: E402

__all__ = [
    "AuthorizationResult",
    "DeviceAuthFlow",
    "FlowCallbacks",
    "FlowOutcome",
    "FlowResult",
    "FlowStatus",
    "run_device_auth",
]
