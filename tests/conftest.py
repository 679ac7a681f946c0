"""Shared test fixtures for deviceauth.

Provides a scripted fake authorization server built on
:class:`httpx.MockTransport`, a controllable clock / sleep pair for the
polling loop, and isolation for configuration and global output state.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import httpx
import pytest

from deviceauth.output import reset_output


T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> Iterator[None]:
    """Reset the global OutputManager after every test.

    The manager caches sys.stdout/sys.stderr at creation time; CliRunner
    swaps those streams, so a stale manager would write to closed files.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Fake authorization server
# ---------------------------------------------------------------------------


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        headers={"content-type": "application/json"},
        content=json.dumps(data).encode("utf-8"),
    )


def _copy(response: httpx.Response) -> httpx.Response:
    """Fresh response with the same status, headers and body."""
    return httpx.Response(
        response.status_code, headers=response.headers, content=response.content
    )


class FakeAuthServer:
    """Scripted device-auth server.

    ``initiate`` is the response to the initiation request; ``polls`` is a
    queue of responses (or exceptions to raise) for successive poll
    requests. The last poll entry repeats once the queue is exhausted.
    Every request received is recorded in ``requests``.
    """

    def __init__(
        self,
        initiate: Optional[httpx.Response] = None,
        polls: Optional[list[Any]] = None,
    ) -> None:
        self.initiate = initiate or json_response(
            {
                "session_id": "sess-123",
                "auth_url": "https://auth.example.com/device?s=sess-123",
                "poll_interval": 5,
                "expires_in": 600,
            }
        )
        self.polls: list[Any] = list(polls or [])
        self.requests: list[httpx.Request] = []
        self.on_poll: Optional[Callable[[httpx.Request], None]] = None

    @property
    def poll_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/api/device-auth/poll"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/device-auth/initiate":
            return _copy(self.initiate)
        if request.url.path == "/api/device-auth/poll":
            if self.on_poll is not None:
                self.on_poll(request)
            item = self.polls.pop(0) if len(self.polls) > 1 else self.polls[0]
            if isinstance(item, Exception):
                raise item
            return _copy(item)
        return httpx.Response(404, json={"error": "not_found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


# ---------------------------------------------------------------------------
# Controllable time
# ---------------------------------------------------------------------------


class FakeClock:
    """Wall clock advanced only by the fake inter-poll wait."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start
        self.waits: list[float] = []
        self.on_wait: Optional[Callable[[], None]] = None

    def utcnow(self) -> datetime:
        return self.now

    async def wait(self, seconds: float, cancelled: Any) -> None:
        self.waits.append(seconds)
        if self.on_wait is not None:
            self.on_wait()
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Install a :class:`FakeClock` for session creation and the polling loop."""
    fake = FakeClock()
    monkeypatch.setattr("deviceauth.session._utcnow", fake.utcnow)
    monkeypatch.setattr("deviceauth.polling._utcnow", fake.utcnow)
    monkeypatch.setattr("deviceauth.polling._wait", fake.wait)
    return fake


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG dirs at tmp_path, clear DEVICEAUTH_* vars, and chdir there."""
    monkeypatch.setattr("deviceauth.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["DEVICEAUTH_BASE_URL", "DEVICEAUTH_SCOPE", "DEVICEAUTH_GAME_ID"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def make_server() -> Callable[..., FakeAuthServer]:
    """Factory for a :class:`FakeAuthServer` with custom responses."""
    return FakeAuthServer
