"""Exception hierarchy for deviceauth.

All exceptions inherit from :class:`DeviceAuthError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`deviceauth.exit_codes`. The top-level error handler in
:func:`deviceauth.app.main` catches ``DeviceAuthError`` and exits with the
appropriate code, while unexpected exceptions produce a crash log and
exit with :data:`EXIT_GENERIC_FAILURE`.

Protocol outcomes of a device flow (denied, expired, cancelled) are *not*
raised by the library; they are returned as a
:class:`~deviceauth.models.FlowResult`. The CLI converts them into
:class:`AuthError` so that the process exit code reflects them.

Subclass hierarchy::

    DeviceAuthError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- AuthError           (exit 3)
    +-- InitiationError     (exit 5, or 6 on network failure)
    +-- PKCEError           (exit 1)
    +-- FlowStateError      (exit 1)
    +-- ConfigError         (exit 1)
"""

from __future__ import annotations

from typing import Optional

from deviceauth.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SERVER_ERROR,
)


class DeviceAuthError(Exception):
    """Base exception for all deviceauth errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`deviceauth.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(DeviceAuthError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(DeviceAuthError):
    """Raised by the CLI when authorization was denied or the session expired."""

    exit_code = EXIT_AUTH_FAILURE


class InitiationError(DeviceAuthError):
    """Raised when the device-auth session cannot be registered.

    Terminal for the flow attempt: the initiation request is never retried.

    Args:
        message: Human-readable description.
        status_code: HTTP status of the response, or ``None`` when the
            request never produced one.
        body: Raw response body text (empty when unavailable).
        transport_error: The underlying :mod:`httpx` exception, if any.
        exit_code: Optional override; network failures use
            :data:`~deviceauth.exit_codes.EXIT_CONNECTION_ERROR`.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
        transport_error: Optional[Exception] = None,
        exit_code: int | None = None,
    ):
        super().__init__(message, exit_code)
        self.status_code = status_code
        self.body = body
        self.transport_error = transport_error


class PKCEError(DeviceAuthError):
    """Raised when no cryptographically secure random source is available."""

    exit_code = EXIT_GENERIC_FAILURE


class FlowStateError(DeviceAuthError):
    """Raised when a one-shot :class:`~deviceauth.flow.DeviceAuthFlow` is started twice."""

    exit_code = EXIT_GENERIC_FAILURE


class ConfigError(DeviceAuthError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE
