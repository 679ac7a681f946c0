"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~deviceauth.exceptions.DeviceAuthError` subclass.
Shell wrappers can inspect the exit code of ``deviceauth login`` to tell
a denied request from an unreachable server without parsing stderr.

Example::

    $ deviceauth login
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the user denied the request
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""Authorization was denied or the session expired before approval."""

EXIT_SERVER_ERROR = 5
"""The authorization server rejected or failed the session initiation request."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CANCELLED = 130
"""The user cancelled the flow (Ctrl-C)."""
