"""Asynchronous HTTP transport for the device-auth endpoints.

:class:`DeviceAuthClient` wraps :class:`httpx.AsyncClient` and knows the
two endpoints the flow talks to. It returns raw :class:`httpx.Response`
objects without raising on error statuses: the session initiator and the
polling engine each decide what a non-2xx response means for them.

Network failures surface as :class:`httpx.HTTPError` subclasses.

Example::

    async with DeviceAuthClient("https://playkit.ai") as client:
        response = await client.get_poll(session_id, verifier)
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

INITIATE_PATH = "/api/device-auth/initiate"
POLL_PATH = "/api/device-auth/poll"


class DeviceAuthClient:
    """Asynchronous client for the device-auth API of one authorization server.

    Must be used as an async context manager; the underlying connection
    pool is opened on entry and closed on exit.

    Args:
        base_url: Server root, e.g. ``https://playkit.ai``. A trailing
            slash is ignored.
        timeout: Per-request timeout in seconds.
        verify_ssl: Verify TLS certificates.
        transport: Optional custom :mod:`httpx` transport (tests pass an
            :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._base_url

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> DeviceAuthClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            verify=self._verify_ssl,
            follow_redirects=True,
            headers={"Accept": "application/json"},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Endpoints
    # ------------------------------------------------------------------ #

    async def post_initiate(self, payload: dict[str, Any]) -> httpx.Response:
        """``POST /api/device-auth/initiate`` with a JSON body.

        Args:
            payload: The serialised initiation request.

        Returns:
            The server response, whatever its status code.
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"
        return await self._client.post(INITIATE_PATH, json=payload)

    async def get_poll(self, session_id: str, code_verifier: str) -> httpx.Response:
        """``GET /api/device-auth/poll`` for one session.

        Both values travel as query parameters and are percent-encoded by
        :mod:`httpx`.

        Args:
            session_id: The server-issued session identifier.
            code_verifier: The PKCE verifier matching the session's
                challenge.

        Returns:
            The server response, whatever its status code.
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"
        return await self._client.get(
            POLL_PATH,
            params={"session_id": session_id, "code_verifier": code_verifier},
        )
