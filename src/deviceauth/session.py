"""Session initiator -- registers a device-auth session with the server.

One ``POST /api/device-auth/initiate`` carrying the PKCE challenge. The
response yields the session id, the URL the user must open, the poll
interval and the session lifetime. Any failure here is terminal for the
flow attempt and is never retried.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
from pydantic import ValidationError

from deviceauth.exceptions import InitiationError
from deviceauth.exit_codes import EXIT_CONNECTION_ERROR
from deviceauth.models import (
    DEFAULT_EXPIRES_IN_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    MIN_POLL_INTERVAL_MS,
    SDK_TIMEOUT_SECONDS,
    InitiateRequest,
    InitiateResponse,
    Session,
)
from deviceauth.output import debug
from deviceauth.transport import DeviceAuthClient


_MAX_UTC = datetime.max.replace(tzinfo=timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_session(response: InitiateResponse, now: datetime) -> Session:
    """Build a :class:`~deviceauth.models.Session` from an initiation response.

    Missing ``poll_interval`` / ``expires_in`` fall back to 5 s and 600 s.
    The poll interval is floored at 8000 ms. ``expires_at`` is *now* plus
    the server lifetime, saturating at the largest representable time when
    that lifetime is out of range; ``sdk_timeout_at`` is *now* plus 300 s,
    so the effective deadline stays bounded either way.

    Args:
        response: The parsed initiation response.
        now: Timezone-aware time the response was received.

    Returns:
        The new session.
    """
    poll_interval = response.poll_interval
    if poll_interval is None:
        poll_interval = DEFAULT_POLL_INTERVAL_SECONDS
    expires_in = response.expires_in
    if expires_in is None:
        expires_in = DEFAULT_EXPIRES_IN_SECONDS
    try:
        expires_at = now + timedelta(seconds=expires_in)
    except OverflowError:
        expires_at = _MAX_UTC if expires_in > 0 else now

    return Session(
        session_id=response.session_id,
        auth_url=response.auth_url,
        poll_interval_ms=max(poll_interval * 1000, MIN_POLL_INTERVAL_MS),
        expires_at=expires_at,
        sdk_timeout_at=now + timedelta(seconds=SDK_TIMEOUT_SECONDS),
    )


async def initiate(
    client: DeviceAuthClient,
    scope: str,
    challenge: str,
    game_id: Optional[str] = None,
) -> Session:
    """Register a device-auth session for *challenge*.

    Args:
        client: An open :class:`~deviceauth.transport.DeviceAuthClient`.
        scope: Requested authorization scope.
        challenge: The PKCE S256 code challenge.
        game_id: Optional game the authorization is bound to; omitted from
            the request body when ``None``.

    Returns:
        The registered :class:`~deviceauth.models.Session`.

    Raises:
        InitiationError: On network failure, a non-2xx status, or a
            response body that is not a valid initiation response.
    """
    request = InitiateRequest(code_challenge=challenge, scope=scope, game_id=game_id)

    try:
        response = await client.post_initiate(request.model_dump(exclude_none=True))
    except httpx.HTTPError as exc:
        raise InitiationError(
            f"Device auth initiation failed: {exc}",
            transport_error=exc,
            exit_code=EXIT_CONNECTION_ERROR,
        ) from exc

    if not response.is_success:
        raise InitiationError(
            f"API Error: HTTP {response.status_code} - {response.text}",
            status_code=response.status_code,
            body=response.text,
        )

    try:
        parsed = InitiateResponse.model_validate_json(response.content)
    except ValidationError as exc:
        raise InitiationError(
            f"Malformed device auth initiation response: {response.text[:200]}",
            status_code=response.status_code,
            body=response.text,
        ) from exc

    session = build_session(parsed, _utcnow())
    debug(
        f"Device auth session {session.session_id} registered "
        f"(poll every {session.poll_interval_ms} ms, "
        f"deadline {session.effective_deadline.isoformat()})"
    )
    return session
