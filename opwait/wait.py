"""Poll loop: turn a long-running operation into a blocking call.

The loop drives a waiter's refresh step with non-decreasing backoff until the
waiter reports a target state, a fatal error surfaces or the deadline passes.

Failure classes:

- transport errors the retry predicate accepts are dismissed and polling
  continues with whatever payload came back with them
- every other transport error aborts with NotRetriableError
- conversion errors, embedded operation errors and unexpected states abort
  immediately and are never retried
- running out of time raises OperationTimeoutError
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import NamedTuple, TypeAlias

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_result,
    wait_exponential,
)

from opwait.core.exceptions import (
    ConfigurationError,
    NilOperationError,
    NotRetriableError,
    OperationCancelledError,
    OperationTimeoutError,
    UnexpectedStateError,
    WaitError,
)
from opwait.retryable import RetryPredicate, is_retryable_error
from opwait.waiter import Waiter, operation_done

MIN_POLL_INTERVAL = 2.0
"""Floor on the time between two status queries, in seconds."""

Clock: TypeAlias = Callable[[], float]


@dataclass(frozen=True, slots=True)
class PollPolicy:
    """Backoff between status queries.

    The n-th sleep is ``initial_interval * multiplier ** (n - 1)`` clamped to
    ``[min_interval, max_interval]``, so the sequence never decreases and never
    drops under the floor.

    Attributes:
        initial_interval: Unclamped first interval in seconds.
        min_interval: Floor in seconds. Values under 2s need ``allow_fast``.
        max_interval: Cap in seconds.
        multiplier: Growth factor per attempt.
        allow_fast: Accept a floor under MIN_POLL_INTERVAL.
    """

    initial_interval: float = 0.1
    min_interval: float = MIN_POLL_INTERVAL
    max_interval: float = 10.0
    multiplier: float = 2.0
    allow_fast: bool = False

    def __post_init__(self) -> None:
        if self.initial_interval <= 0 or self.min_interval <= 0:
            raise ConfigurationError("Poll intervals must be positive")
        if self.min_interval < MIN_POLL_INTERVAL and not self.allow_fast:
            raise ConfigurationError(
                f"min_interval {self.min_interval}s is under the {MIN_POLL_INTERVAL}s floor; "
                "pass allow_fast=True to override"
            )
        if self.max_interval < self.min_interval:
            raise ConfigurationError(
                f"max_interval {self.max_interval}s is under min_interval {self.min_interval}s"
            )
        if self.multiplier < 1:
            raise ConfigurationError(f"multiplier must be >= 1, got {self.multiplier}")

    def wait_strategy(self) -> wait_exponential:
        return wait_exponential(
            multiplier=self.initial_interval,
            exp_base=self.multiplier,
            min=self.min_interval,
            max=self.max_interval,
        )


DEFAULT_POLICY = PollPolicy()


class Refresh(NamedTuple):
    """Outcome of one refresh step.

    ``last_error`` is the most recent query failure the step dismissed as
    retryable, kept so a later timeout can report it.
    """

    raw: object
    state: str
    last_error: BaseException | None = None


def refresh_func(
    waiter: Waiter,
    is_retryable: RetryPredicate = is_retryable_error,
    *,
    cancel: threading.Event | None = None,
) -> Callable[[], Refresh]:
    """Build the refresh step for ``waiter``.

    Each call queries the operation once, classifies any failure, stores the
    payload in the waiter and returns the resulting state. Fatal outcomes are
    raised as WaitError subclasses.
    """

    last_error: BaseException | None = None

    def refresh() -> Refresh:
        nonlocal last_error

        if cancel is not None and cancel.is_set():
            raise OperationCancelledError(waiter.op_name())

        log = logger.bind(operation=waiter.op_name())

        try:
            raw = waiter.query_op()
        except WaitError:
            raise
        except Exception as e:
            if not is_retryable(e):
                raise NotRetriableError(e) from e

            log.debug("Saw error polling for op, but dismissed as retriable: {err}", err=e)
            last_error = e
            raw = getattr(e, "payload", None)
            if raw is None:
                raise NilOperationError(str(e)) from e

        waiter.set_op(raw)

        if (err := waiter.error()) is not None:
            raise err

        state = waiter.state()
        log.debug("Got {state!r} while polling for operation {name}'s status",
                  state=state, name=waiter.op_name())
        return Refresh(raw, state, last_error)

    return refresh


def _timeout_seconds(timeout_minutes: float) -> float:
    if timeout_minutes <= 0:
        raise ConfigurationError(f"timeout_minutes must be positive, got {timeout_minutes}")
    return timeout_minutes * 60.0


def _stop_before_deadline(deadline: float, clock: Clock) -> Callable[[RetryCallState], bool]:
    # wait runs before stop, so upcoming_sleep is the pause ahead of the next query
    def stop(retry_state: RetryCallState) -> bool:
        return clock() + retry_state.upcoming_sleep >= deadline

    return stop


def _checked(waiter: Waiter, refresh: Callable[[], Refresh]) -> Callable[[], Refresh]:
    allowed = waiter.pending_states() | waiter.target_states()

    def step() -> Refresh:
        result = refresh()
        if result.state not in allowed:
            raise UnexpectedStateError(result.state, waiter.target_states())
        return result

    return step


def _log_before_sleep(waiter: Waiter) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        logger.bind(operation=waiter.op_name(), attempt=retry_state.attempt_number).debug(
            "Operation still {state!r}, polling again in {sleep:.1f}s",
            state=waiter.state(),
            sleep=retry_state.upcoming_sleep,
        )

    return before_sleep


def _retry_kwargs(
    waiter: Waiter,
    timeout: float,
    policy: PollPolicy,
    clock: Clock,
) -> dict[str, object]:
    pending = waiter.pending_states()
    return {
        "retry": retry_if_result(lambda r: r.state in pending),
        "wait": policy.wait_strategy(),
        "stop": _stop_before_deadline(clock() + timeout, clock),
        "before_sleep": _log_before_sleep(waiter),
    }


def _timed_out(waiter: Waiter, activity: str, timeout: float, e: RetryError) -> WaitError:
    last: Refresh = e.last_attempt.result()
    return OperationTimeoutError(
        activity,
        last.state,
        waiter.target_states(),
        timeout,
        waiter.op_name(),
        last_error=last.last_error,
    )


def _finish(waiter: Waiter, activity: str, last: Refresh) -> None:
    waiter.set_op(last.raw)
    if (err := waiter.error()) is not None:
        raise err
    logger.bind(operation=waiter.op_name(), activity=activity).info(
        "Operation reached {state!r}", state=waiter.state(),
    )


def operation_wait(
    waiter: Waiter,
    activity: str,
    timeout_minutes: float,
    *,
    is_retryable: RetryPredicate = is_retryable_error,
    policy: PollPolicy = DEFAULT_POLICY,
    cancel: threading.Event | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Clock = time.monotonic,
) -> None:
    """Block until ``waiter`` reaches a target state.

    Args:
        waiter: Waiter already holding the initial operation payload.
        activity: What is being waited for; used only in error messages.
        timeout_minutes: Upper bound on the whole wait.
        is_retryable: Classifies status-query failures.
        policy: Backoff between queries.
        cancel: Checked before each query; once set the wait aborts.
        sleep: Blocking sleep used between queries.
        clock: Monotonic clock the deadline is measured against.

    Raises:
        OperationError: The operation finished with an embedded error.
        OperationTimeoutError: The deadline passed while still pending.
        WaitError: Any other fatal failure (not retriable, nil operation,
            conversion, unexpected state, cancellation).
        ConfigurationError: ``timeout_minutes`` is not positive.
    """
    timeout = _timeout_seconds(timeout_minutes)

    if operation_done(waiter):
        if (err := waiter.error()) is not None:
            raise err
        return

    logger.bind(operation=waiter.op_name(), activity=activity).debug(
        "Waiting up to {timeout:.0f}s for {targets}",
        timeout=timeout, targets=sorted(waiter.target_states()),
    )

    retrying = Retrying(sleep=sleep, **_retry_kwargs(waiter, timeout, policy, clock))
    step = _checked(waiter, refresh_func(waiter, is_retryable, cancel=cancel))

    try:
        last = retrying(step)
    except RetryError as e:
        raise _timed_out(waiter, activity, timeout, e) from None
    except WaitError as e:
        raise e.with_activity(activity)

    _finish(waiter, activity, last)


async def operation_wait_async(
    waiter: Waiter,
    activity: str,
    timeout_minutes: float,
    *,
    is_retryable: RetryPredicate = is_retryable_error,
    policy: PollPolicy = DEFAULT_POLICY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Clock = time.monotonic,
) -> None:
    """Async counterpart of operation_wait.

    The refresh step runs in a worker thread so blocking clients do not stall
    the event loop. Cancelling the calling task cancels the wait.
    """
    timeout = _timeout_seconds(timeout_minutes)

    if operation_done(waiter):
        if (err := waiter.error()) is not None:
            raise err
        return

    logger.bind(operation=waiter.op_name(), activity=activity).debug(
        "Waiting up to {timeout:.0f}s for {targets}",
        timeout=timeout, targets=sorted(waiter.target_states()),
    )

    retrying = AsyncRetrying(sleep=sleep, **_retry_kwargs(waiter, timeout, policy, clock))
    step = _checked(waiter, refresh_func(waiter, is_retryable))

    async def astep() -> Refresh:
        return await asyncio.to_thread(step)

    try:
        last = await retrying(astep)
    except RetryError as e:
        raise _timed_out(waiter, activity, timeout, e) from None
    except WaitError as e:
        raise e.with_activity(activity)

    _finish(waiter, activity, last)
