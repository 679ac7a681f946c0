"""Callback channels for device flow progress and outcomes.

A caller that only needs the final answer can ignore this module and use
the :class:`~deviceauth.models.FlowResult` returned by
:meth:`~deviceauth.flow.DeviceAuthFlow.start`. Callers that drive a UI
register a :class:`FlowCallbacks` to receive status lines as they happen.

Delivery rules enforced by :class:`Notifier`:

* ``on_status`` fires zero or more times, in the order poll responses
  arrive, and never after a terminal notification.
* Exactly one of ``on_success``, ``on_error``, ``on_cancelled`` fires per
  completed run, always last. Later terminal notifications are dropped.

Exceptions raised by a callback propagate to the caller of ``start()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from deviceauth.models import AuthorizationResult, FlowOutcome, FlowResult, FlowStatus


@dataclass
class FlowCallbacks:
    """Optional listeners for one device flow run.

    Attributes:
        on_status: Informational progress message.
        on_success: Tokens issued after user approval.
        on_error: Human-readable reason the flow failed (denied, expired,
            setup failure).
        on_cancelled: The flow was cancelled by the caller.
        on_state_change: The flow moved to a new :class:`FlowStatus`.
    """

    on_status: Optional[Callable[[str], None]] = None
    on_success: Optional[Callable[[AuthorizationResult], None]] = None
    on_error: Optional[Callable[[str], None]] = None
    on_cancelled: Optional[Callable[[], None]] = None
    on_state_change: Optional[Callable[[FlowStatus], None]] = None


class Notifier:
    """Dispatches flow events to a :class:`FlowCallbacks` instance."""

    def __init__(self, callbacks: Optional[FlowCallbacks] = None) -> None:
        self._callbacks = callbacks or FlowCallbacks()
        self._finished = False

    @property
    def finished(self) -> bool:
        """Whether a terminal notification has been delivered."""
        return self._finished

    def status(self, message: str) -> None:
        if self._finished:
            return
        if self._callbacks.on_status:
            self._callbacks.on_status(message)

    def state(self, status: FlowStatus) -> None:
        if self._callbacks.on_state_change:
            self._callbacks.on_state_change(status)

    def success(self, result: AuthorizationResult) -> None:
        if self._claim_terminal() and self._callbacks.on_success:
            self._callbacks.on_success(result)

    def error(self, message: str) -> None:
        if self._claim_terminal() and self._callbacks.on_error:
            self._callbacks.on_error(message)

    def cancelled(self) -> None:
        if self._claim_terminal() and self._callbacks.on_cancelled:
            self._callbacks.on_cancelled()

    def finish(self, result: FlowResult) -> None:
        """Deliver the terminal notification matching *result*."""
        if result.outcome == FlowOutcome.AUTHORIZED and result.token is not None:
            self.success(result.token)
        elif result.outcome == FlowOutcome.CANCELLED:
            self.cancelled()
        else:
            self.error(result.message or result.outcome.value)

    def _claim_terminal(self) -> bool:
        if self._finished:
            return False
        self._finished = True
        return True
