"""Custom exception hierarchy for opwait.

All opwait-specific exceptions inherit from OpWaitError, enabling
users to catch every wait failure with a single except clause.
"""

from __future__ import annotations

from collections.abc import Iterable


class OpWaitError(Exception):
    """Base exception for all opwait errors."""


class ConfigurationError(OpWaitError):
    """Raised for invalid timeouts, poll policies or config files."""


class WaitError(OpWaitError):
    """Base for failures that abort a wait.

    ``activity`` is filled in by the poll loop once the error leaves it, so
    the message names what the caller was waiting for.
    """

    activity: str | None = None

    def with_activity(self, activity: str) -> WaitError:
        if self.activity is None:
            self.activity = activity
            self.args = (f"error waiting for {activity}: {self}",)
        return self


class TransportError(OpWaitError):
    """Raised by a status query when the request itself failed.

    Attributes:
        retryable: Explicit classification. ``None`` leaves the decision to
            the retry predicate.
        payload: Raw operation payload returned alongside the failure, if any.
        status: HTTP-ish status code, if the transport exposes one.
    """

    def __init__(
        self,
        message: str,
        *,
        retryable: bool | None = None,
        payload: object | None = None,
        status: int | None = None,
    ) -> None:
        self.retryable = retryable
        self.payload = payload
        self.status = status
        super().__init__(message)


class NotRetriableError(WaitError):
    """Raised when a status query fails in a way that will not self-heal."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"not retriable error: {cause}")


class NilOperationError(WaitError):
    """Raised when there is no operation payload to make progress with."""

    def __init__(self, reason: str = "") -> None:
        message = "cannot continue, operation is nil"
        super().__init__(f"{message}: {reason}" if reason else message)


class ConversionError(WaitError):
    """Raised when a raw payload cannot be mapped into an operation handle."""

    def __init__(self, kind: str, reason: str) -> None:
        self.kind = kind
        self.reason = reason
        super().__init__(f"cannot continue, {kind} conversion failed: {reason}")


class OperationError(WaitError):
    """Raised when the operation finished with a server-reported failure."""

    def __init__(self, code: int, message: str, operation: str = "") -> None:
        self.code = code
        self.message = message
        self.operation = operation
        super().__init__(f"error code {code}, message: {message}")


class UnexpectedStateError(WaitError):
    """Raised when a refresh yields a state outside the pending and target sets."""

    def __init__(self, state: str, targets: Iterable[str]) -> None:
        self.state = state
        self.targets = tuple(sorted(targets))
        super().__init__(
            f"unexpected state {state!r}, wanted target {', '.join(self.targets)!r}"
        )


class OperationTimeoutError(WaitError, TimeoutError):
    """Raised when the deadline passes while the operation is still pending."""

    def __init__(
        self,
        activity: str,
        last_state: str,
        targets: Iterable[str],
        timeout: float,
        operation: str = "",
        *,
        last_error: BaseException | None = None,
    ) -> None:
        self.last_state = last_state
        self.targets = tuple(sorted(targets))
        self.timeout = timeout
        self.operation = operation
        self.last_error = last_error
        message = (
            f"timeout while waiting for state to become {', '.join(self.targets)!r} "
            f"(last state: {last_state!r}, operation: {operation or '<nil>'}, "
            f"timeout: {timeout:.0f}s)"
        )
        if last_error is not None:
            message += f"; last error: {last_error}"
        super().__init__(message)
        self.with_activity(activity)


class OperationCancelledError(WaitError):
    """Raised when the caller cancels a wait between polls."""

    def __init__(self, operation: str = "") -> None:
        self.operation = operation
        super().__init__(f"wait cancelled for operation {operation or '<nil>'}")
