"""Canonical Pydantic models shared across all deviceauth modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Wire models** -- JSON bodies exchanged with the authorization server:
    :class:`InitiateRequest`, :class:`InitiateResponse`, and
    :class:`PollResponse`.

**Flow models** -- in-memory state of one device flow run:
    :class:`PKCEPair`, :class:`Session`, :class:`FlowStatus`,
    :class:`FlowOutcome`, :class:`AuthorizationResult`, and
    :class:`FlowResult`.

**Configuration models** -- serialised as JSON in the user's config
directory: :class:`RequestConfig`, :class:`OutputConfig`, and
:class:`GlobalConfig`.

All models use Pydantic v2. Wire models ignore unknown keys so that a
server adding fields never breaks an older client.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


SDK_TIMEOUT_SECONDS = 300
"""Client-side limit on a single flow, counted from session initiation."""

MIN_POLL_INTERVAL_MS = 8000
"""Floor applied to the server-declared poll interval at initiation."""

MAX_POLL_INTERVAL_MS = 30000
"""Ceiling applied when ``slow_down`` doubles the poll interval."""

DEFAULT_POLL_INTERVAL_SECONDS = 5
"""Assumed poll interval when the server omits ``poll_interval``."""

DEFAULT_EXPIRES_IN_SECONDS = 600
"""Assumed session lifetime when the server omits ``expires_in``."""


# --- Wire models ---


class InitiateRequest(BaseModel):
    """Body of ``POST /api/device-auth/initiate``."""

    code_challenge: str
    code_challenge_method: str = "S256"
    scope: str
    game_id: Optional[str] = None


class InitiateResponse(BaseModel):
    """Successful body of ``POST /api/device-auth/initiate``."""

    model_config = ConfigDict(extra="ignore")

    session_id: str
    auth_url: str
    poll_interval: Optional[int] = None
    expires_in: Optional[int] = None


class PollResponse(BaseModel):
    """Any body returned by ``GET /api/device-auth/poll``.

    The same shape covers pending, authorized, and error responses; which
    fields are populated depends on ``status`` / ``error``.
    """

    model_config = ConfigDict(extra="ignore")

    status: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    poll_interval: Optional[int] = None
    scope: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None


# --- Flow models ---


class PKCEPair(BaseModel):
    """A PKCE verifier and its S256 challenge.

    Generated once per flow run and never persisted. The challenge is sent
    at initiation; the verifier is disclosed only on poll requests.
    """

    model_config = ConfigDict(frozen=True)

    verifier: str
    challenge: str


class Session(BaseModel):
    """A registered device-auth session.

    Created by :func:`~deviceauth.session.build_session`; only
    ``poll_interval_ms`` changes afterwards, driven by the polling loop.
    """

    session_id: str
    auth_url: str
    poll_interval_ms: int
    expires_at: datetime
    sdk_timeout_at: datetime

    @property
    def effective_deadline(self) -> datetime:
        """The earlier of server expiry and the client-side timeout."""
        return min(self.expires_at, self.sdk_timeout_at)


class FlowStatus(str, enum.Enum):
    """Observable state of a :class:`~deviceauth.flow.DeviceAuthFlow`."""

    IDLE = "idle"
    PREPARING_PKCE = "preparing_pkce"
    INITIATING_SESSION = "initiating_session"
    WAITING_FOR_BROWSER = "waiting_for_browser"
    POLLING = "polling"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    ERROR = "error"


class FlowOutcome(str, enum.Enum):
    """Terminal outcome of a device flow run."""

    AUTHORIZED = "authorized"
    DENIED = "denied"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    ERROR = "error"


class AuthorizationResult(BaseModel):
    """Tokens issued once the user approves the request."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: int = 0
    scope: Optional[str] = None


class FlowResult(BaseModel):
    """Tagged outcome returned by :meth:`~deviceauth.flow.DeviceAuthFlow.start`.

    ``token`` is set only for :attr:`FlowOutcome.AUTHORIZED`; ``message``
    carries the human-readable reason for denied, expired, and error
    outcomes.
    """

    model_config = ConfigDict(frozen=True)

    outcome: FlowOutcome
    token: Optional[AuthorizationResult] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        """Whether the flow ended with an issued token."""
        return self.outcome == FlowOutcome.AUTHORIZED

    @classmethod
    def authorized(cls, token: AuthorizationResult) -> FlowResult:
        return cls(outcome=FlowOutcome.AUTHORIZED, token=token)

    @classmethod
    def failed(cls, outcome: FlowOutcome, message: str) -> FlowResult:
        return cls(outcome=outcome, message=message)

    @classmethod
    def cancelled(cls) -> FlowResult:
        return cls(outcome=FlowOutcome.CANCELLED)


# --- Configuration models ---


class RequestConfig(BaseModel):
    """HTTP settings applied to every request the flow sends."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/deviceauth/config.json``.

    Loaded and saved by :func:`~deviceauth.config.load_global_config` and
    :func:`~deviceauth.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~deviceauth.config.resolve_config`
    for the full precedence chain.
    """

    base_url: str = Field(
        default="https://playkit.ai",
        description="Authorization server base URL",
    )
    scope: str = Field(default="developer:full", description="Requested scope")
    game_id: Optional[str] = Field(
        default=None, description="Game to authorize for (player scopes only)"
    )
    open_browser: bool = Field(
        default=True, description="Open the approval URL automatically"
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
