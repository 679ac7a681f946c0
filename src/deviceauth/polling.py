"""Polling engine -- waits for the user to approve a device-auth session.

Repeatedly calls ``GET /api/device-auth/poll`` until the server reports
a terminal status, the caller cancels, or the session's effective
deadline (the earlier of server expiry and the 300 s client timeout)
passes.

Per-response handling:

* ``200 {"status": "pending"}`` -- keep polling; a supplied
  ``poll_interval`` replaces the current interval as-is (the initiation
  floor is not re-applied).
* ``200 {"status": "authorized", ...}`` -- done, tokens returned.
* ``4xx {"error": "slow_down"}`` -- double the interval, capped at 30 s.
* ``4xx {"error": "access_denied"}`` -- done, denied.
* ``4xx {"error": "expired_token"}`` -- done, expired.
* Anything else, including network errors and unparseable bodies, is
  treated as transient (see :func:`is_transient_poll_error`): it is
  reported on the debug channel and polling continues until the deadline.

Cancellation is observed at the top of each iteration and ends the
inter-poll wait early. An in-flight request is never aborted.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

import httpx
from pydantic import ValidationError

from deviceauth.models import (
    MAX_POLL_INTERVAL_MS,
    AuthorizationResult,
    FlowOutcome,
    FlowResult,
    PollResponse,
    Session,
)
from deviceauth.notifier import Notifier
from deviceauth.output import debug
from deviceauth.transport import DeviceAuthClient

STATUS_PENDING = "pending"
STATUS_AUTHORIZED = "authorized"

ERROR_SLOW_DOWN = "slow_down"
ERROR_ACCESS_DENIED = "access_denied"
ERROR_EXPIRED_TOKEN = "expired_token"

_TERMINAL_ERRORS = {ERROR_SLOW_DOWN, ERROR_ACCESS_DENIED, ERROR_EXPIRED_TOKEN}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_slow_down_interval(current_ms: int) -> int:
    """Return the poll interval to use after a ``slow_down`` response."""
    return min(current_ms * 2, MAX_POLL_INTERVAL_MS)


def parse_poll_response(response: httpx.Response) -> Optional[PollResponse]:
    """Parse a poll response body, or return ``None`` if it is not a JSON object."""
    try:
        return PollResponse.model_validate_json(response.content)
    except ValidationError:
        return None


def is_transient_poll_error(
    response: Optional[httpx.Response], body: Optional[PollResponse]
) -> bool:
    """Decide whether a poll attempt should simply be retried.

    A poll attempt is transient when it produced nothing the protocol
    defines: no response at all (network failure), a body that did not
    parse, a 2xx with an unknown status or an ``authorized`` status
    without a token, or an error status with an unknown or missing
    ``error`` code. Genuine network blips and malformed server responses
    are deliberately not distinguished.

    Args:
        response: The HTTP response, or ``None`` if the request raised.
        body: The parsed body, or ``None`` if it could not be parsed.

    Returns:
        ``True`` if the loop should log and continue.
    """
    if response is None or body is None:
        return True
    if response.is_success:
        if body.status == STATUS_PENDING:
            return False
        if body.status == STATUS_AUTHORIZED:
            return not body.access_token
        return True
    return body.error not in _TERMINAL_ERRORS


async def _wait(seconds: float, cancelled: asyncio.Event) -> None:
    """Sleep for *seconds*, waking early once *cancelled* is set."""
    try:
        await asyncio.wait_for(cancelled.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        # interval elapsed
        return


def _token_from(access_token: str, body: PollResponse) -> AuthorizationResult:
    return AuthorizationResult(
        access_token=access_token,
        refresh_token=body.refresh_token,
        token_type=body.token_type,
        expires_in=body.expires_in if body.expires_in is not None else 0,
        scope=body.scope,
    )


async def _poll_once(
    client: DeviceAuthClient,
    session: Session,
    verifier: str,
    notifier: Notifier,
) -> Optional[FlowResult]:
    """Send one poll request and apply its effect.

    Returns:
        A terminal :class:`FlowResult`, or ``None`` to keep polling.
    """
    try:
        response = await client.get_poll(session.session_id, verifier)
    except httpx.HTTPError as exc:
        debug(f"Poll request failed, retrying: {exc}")
        return None

    body = parse_poll_response(response)
    if body is None or is_transient_poll_error(response, body):
        detail = body.error if body is not None and body.error else response.text[:200]
        debug(f"Unexpected poll response (HTTP {response.status_code}), retrying: {detail}")
        return None

    if response.is_success:
        if body.status == STATUS_AUTHORIZED and body.access_token:
            return FlowResult.authorized(_token_from(body.access_token, body))
        notifier.status("Waiting for user authorization...")
        if body.poll_interval is not None:
            session.poll_interval_ms = body.poll_interval * 1000
        return None

    if body.error == ERROR_SLOW_DOWN:
        session.poll_interval_ms = next_slow_down_interval(session.poll_interval_ms)
        notifier.status("Slowing down polling rate...")
        return None
    if body.error == ERROR_ACCESS_DENIED:
        return FlowResult.failed(FlowOutcome.DENIED, "User denied authorization")
    return FlowResult.failed(FlowOutcome.EXPIRED, "Session expired")


async def poll_for_authorization(
    client: DeviceAuthClient,
    session: Session,
    verifier: str,
    cancelled: asyncio.Event,
    notifier: Notifier,
) -> FlowResult:
    """Poll until the session reaches a terminal state.

    Args:
        client: An open :class:`~deviceauth.transport.DeviceAuthClient`.
        session: The session to poll; its ``poll_interval_ms`` is updated
            in place as the server asks for faster or slower polling.
        verifier: The PKCE verifier matching the session's challenge.
        cancelled: Set by the caller to stop polling.
        notifier: Receives status messages for pending / slow_down.

    Returns:
        An ``authorized``, ``denied``, ``expired`` or ``cancelled``
        :class:`FlowResult`. Never raises for protocol or network errors.
    """
    deadline = session.effective_deadline

    while not cancelled.is_set() and _utcnow() < deadline:
        result = await _poll_once(client, session, verifier, notifier)
        if result is not None:
            return result
        await _wait(session.poll_interval_ms / 1000, cancelled)

    if cancelled.is_set():
        return FlowResult.cancelled()
    return FlowResult.failed(FlowOutcome.EXPIRED, "Authorization session expired")
