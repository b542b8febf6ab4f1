"""Retryability predicates for status-query failures.

A predicate takes the exception raised by ``Waiter.query_op`` and answers
whether the poll loop should keep going. The loop never consults a global
classifier: callers pass the predicate for the API they are talking to.

Example:
    from opwait.retryable import any_of, on_exception_message, on_status_code

    is_retryable = any_of(
        on_status_code(429, 503),
        on_exception_message("backend busy"),
    )
    operation_wait(waiter, "disk snapshot", 10, is_retryable=is_retryable)
"""

from __future__ import annotations

import builtins
from collections.abc import Callable
from typing import TypeAlias

from opwait.core.exceptions import TransportError

RetryPredicate: TypeAlias = Callable[[BaseException], bool]

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


def status_code(e: BaseException) -> int | None:
    """Best-effort HTTP status of a client exception.

    Reads ``status`` (aiohttp, TransportError), ``status_code`` (httpx,
    requests responses), ``code`` (google-api-core) and finally
    ``response.status_code`` (httpx.HTTPStatusError, requests.HTTPError).
    """
    for attr in ("status", "status_code", "code"):
        value = getattr(e, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(e, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


# =============================================================================
# Common Predicates
# =============================================================================


def on_status_code(*codes: int) -> RetryPredicate:
    """Create a predicate that retries on specific HTTP status codes."""

    def predicate(e: BaseException) -> bool:
        return status_code(e) in codes

    return predicate


def on_exception_message(*patterns: str, case_sensitive: bool = False) -> RetryPredicate:
    """Create a predicate that retries when the exception message matches patterns."""

    def predicate(e: BaseException) -> bool:
        msg = str(e)
        if not case_sensitive:
            msg = msg.lower()
            return any(p.lower() in msg for p in patterns)
        return any(p in msg for p in patterns)

    return predicate


def on_exception_type(*types: type[BaseException]) -> RetryPredicate:
    """Create a predicate that retries on instances of the given exception types."""

    def predicate(e: BaseException) -> bool:
        return isinstance(e, types)

    return predicate


def on_conflict_in_progress() -> RetryPredicate:
    """Retry 409s that only mean another operation still holds the resource."""
    in_progress = on_exception_message(
        "operation in progress",
        "operationinprogress",
        "resource is not ready",
    )

    def predicate(e: BaseException) -> bool:
        return status_code(e) == 409 and in_progress(e)

    return predicate


# =============================================================================
# Combining Predicates
# =============================================================================


def any_of(*predicates: RetryPredicate) -> RetryPredicate:
    """Combine predicates with OR logic (retry if ANY predicate matches)."""

    def combined(e: BaseException) -> bool:
        return any(p(e) for p in predicates)

    return combined


def all_of(*predicates: RetryPredicate) -> RetryPredicate:
    """Combine predicates with AND logic (retry only if ALL predicates match)."""

    def combined(e: BaseException) -> bool:
        return all(p(e) for p in predicates)

    return combined


def explicit_first(fallback: RetryPredicate) -> RetryPredicate:
    """Honor ``TransportError.retryable`` when set, otherwise ask ``fallback``."""

    def predicate(e: BaseException) -> bool:
        if isinstance(e, TransportError) and e.retryable is not None:
            return e.retryable
        return fallback(e)

    return predicate


is_retryable_error: RetryPredicate = explicit_first(
    any_of(
        on_status_code(*RETRYABLE_STATUS_CODES),
        on_conflict_in_progress(),
        on_exception_type(builtins.ConnectionError, builtins.TimeoutError),
        on_exception_message("connection reset", "unexpected eof"),
    )
)
"""Default classifier: rate limits, transient 5xx, in-progress conflicts and
dropped connections are retried; everything else aborts the wait."""


def never_retry(e: BaseException) -> bool:
    return False
