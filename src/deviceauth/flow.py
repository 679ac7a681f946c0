"""Device Authorization Grant flow with PKCE.

:class:`DeviceAuthFlow` runs the whole client side of the protocol as a
single coroutine:

1. Generate a PKCE verifier / challenge pair.
2. ``POST /api/device-auth/initiate`` with the challenge to obtain a
   session id, approval URL, poll interval and expiry.
3. Open the approval URL in the user's browser.
4. Poll ``GET /api/device-auth/poll`` (disclosing the verifier) until the
   user approves or denies, the session expires, or the caller cancels.

The coroutine always resolves to a :class:`~deviceauth.models.FlowResult`;
progress can additionally be observed through
:class:`~deviceauth.notifier.FlowCallbacks`.

A flow object is one-shot. To retry after any outcome, create a new one:
a fresh PKCE pair and session are required per attempt.

See Also:
    :mod:`deviceauth.polling` for the polling rules.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

import httpx

from deviceauth.browser import open_url
from deviceauth.exceptions import DeviceAuthError, FlowStateError, InitiationError, PKCEError
from deviceauth.models import FlowOutcome, FlowResult, FlowStatus, Session
from deviceauth.notifier import FlowCallbacks, Notifier
from deviceauth.output import debug, warning
from deviceauth.pkce import generate_pkce_pair
from deviceauth.polling import poll_for_authorization
from deviceauth.session import initiate
from deviceauth.transport import DeviceAuthClient

DEFAULT_SCOPE = "developer:full"

_STATUS_FOR_OUTCOME = {
    FlowOutcome.AUTHORIZED: FlowStatus.AUTHORIZED,
    FlowOutcome.DENIED: FlowStatus.DENIED,
    FlowOutcome.EXPIRED: FlowStatus.EXPIRED,
    FlowOutcome.CANCELLED: FlowStatus.CANCELLED,
    FlowOutcome.ERROR: FlowStatus.ERROR,
}


class DeviceAuthFlow:
    """Client for one device authorization attempt.

    Args:
        base_url: Root URL of the authorization server.
        scope: Requested authorization scope.
        game_id: Optional game the token is bound to (player scopes).
        callbacks: Optional progress / outcome listeners.
        open_browser: Open the approval URL automatically. When ``False``
            the caller is expected to show :attr:`auth_url` to the user,
            e.g. from an ``on_state_change`` listener.
        timeout: Per-request HTTP timeout in seconds.
        verify_ssl: Verify TLS certificates.
        transport: Optional :mod:`httpx` transport override.
        browser: Callable used to open the approval URL; defaults to
            :func:`~deviceauth.browser.open_url`. Exceptions it raises are reported
            as a warning and polling continues.

    Example::

        flow = DeviceAuthFlow("https://playkit.ai")
        task = asyncio.create_task(flow.start())
        ...
        flow.cancel()          # from a UI "Cancel" button
        result = await task    # FlowResult(outcome=CANCELLED)
    """

    def __init__(
        self,
        base_url: str,
        scope: str = DEFAULT_SCOPE,
        game_id: Optional[str] = None,
        callbacks: Optional[FlowCallbacks] = None,
        open_browser: bool = True,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        browser: Callable[[str], Any] = open_url,
    ) -> None:
        self._base_url = base_url
        self._scope = scope
        self._game_id = game_id
        self._notifier = Notifier(callbacks)
        self._open_browser = open_browser
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._transport = transport
        self._browser = browser

        self._cancelled = asyncio.Event()
        self._status = FlowStatus.IDLE
        self._started = False
        self._running = False
        self._session: Optional[Session] = None
        self.error: Optional[DeviceAuthError] = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    @property
    def status(self) -> FlowStatus:
        """Current :class:`~deviceauth.models.FlowStatus`."""
        return self._status

    @property
    def is_running(self) -> bool:
        """Whether :meth:`start` is in progress."""
        return self._running

    @property
    def is_polling(self) -> bool:
        """Whether the flow is waiting for the user's approval."""
        return self._running and self._status == FlowStatus.POLLING

    @property
    def auth_url(self) -> Optional[str]:
        """Approval URL, available once the session has been registered."""
        return self._session.auth_url if self._session else None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def cancel(self) -> None:
        """Request cancellation.

        Takes effect at the next iteration boundary of the polling loop or
        immediately if the loop is sleeping between polls. A request that
        is already in flight is allowed to finish.
        """
        self._cancelled.set()

    async def start(self) -> FlowResult:
        """Run the flow to a terminal outcome.

        Returns:
            The :class:`~deviceauth.models.FlowResult`. Setup failures
            (no secure random source, session initiation failure) resolve
            to ``FlowOutcome.ERROR``; :attr:`error` keeps the exception.

        Raises:
            FlowStateError: If this flow object was already started.
            asyncio.CancelledError: If the task running the flow is
                cancelled; ``on_cancelled`` fires before it propagates.
        """
        if self._started:
            raise FlowStateError(
                "Device auth flow already started; create a new flow to retry"
            )
        self._started = True
        self._running = True

        try:
            result = await self._run()
        except asyncio.CancelledError:
            self._set_status(FlowStatus.CANCELLED)
            self._notifier.cancelled()
            raise
        finally:
            self._running = False

        self._set_status(_STATUS_FOR_OUTCOME[result.outcome])
        self._notifier.finish(result)
        return result

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _run(self) -> FlowResult:
        try:
            self._set_status(FlowStatus.PREPARING_PKCE)
            self._notifier.status("Preparing...")
            pkce = generate_pkce_pair()

            async with DeviceAuthClient(
                self._base_url,
                timeout=self._timeout,
                verify_ssl=self._verify_ssl,
                transport=self._transport,
            ) as client:
                self._set_status(FlowStatus.INITIATING_SESSION)
                self._session = await initiate(
                    client, self._scope, pkce.challenge, self._game_id
                )

                self._set_status(FlowStatus.WAITING_FOR_BROWSER)
                self._notifier.status("Opening browser for authorization...")
                if self._open_browser:
                    try:
                        self._browser(self._session.auth_url)
                    except Exception as exc:
                        warning(f"Could not open a browser: {exc}")

                self._set_status(FlowStatus.POLLING)
                self._notifier.status("Waiting for browser authorization...")
                return await poll_for_authorization(
                    client,
                    self._session,
                    pkce.verifier,
                    self._cancelled,
                    self._notifier,
                )
        except (PKCEError, InitiationError) as exc:
            debug(f"Device auth setup failed: {exc}")
            self.error = exc
            return FlowResult.failed(FlowOutcome.ERROR, str(exc))

    def _set_status(self, status: FlowStatus) -> None:
        if status != self._status:
            self._status = status
            self._notifier.state(status)


async def run_device_auth(
    base_url: str,
    scope: str = DEFAULT_SCOPE,
    **kwargs: Any,
) -> FlowResult:
    """Run a complete device flow with a throwaway :class:`DeviceAuthFlow`.

    Args:
        base_url: Root URL of the authorization server.
        scope: Requested authorization scope.
        **kwargs: Forwarded to :class:`DeviceAuthFlow`.

    Returns:
        The terminal :class:`~deviceauth.models.FlowResult`.
    """
    return await DeviceAuthFlow(base_url, scope=scope, **kwargs).start()
