"""Waiter capability contract and the built-in operation adapters.

A waiter binds one operation handle to everything the poll loop needs:
querying fresh status, interpreting done/error, naming the operation and
declaring which state labels mean "keep polling" and "stop".

Adapters are composed rather than subclassed from a concrete client: each
holds its current handle plus a ``query`` callable that fetches the raw
payload for an operation name. The client behind that callable is the
caller's business.

Example:
    from google.cloud import compute_v1

    waiter = compute_waiter(compute_v1.ZoneOperationsClient(), "my-project", zone="us-central1-a")
    waiter.set_op(instances_client.insert(...))
    operation_wait(waiter, "instance creation", timeout_minutes=4)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, Protocol, TypeAlias, TypeVar, runtime_checkable

from opwait.core.exceptions import NilOperationError, OperationError
from opwait.operation import (
    COMPUTE_DONE,
    COMPUTE_PENDING,
    COMPUTE_RUNNING,
    ComputeOperation,
    Operation,
    decode_compute_operation,
    decode_operation,
)

NIL_STATE = "operation is nil"
NIL_NAME = "<nil>"

PENDING = "pending"
COMPLETE = "complete"

QueryFn: TypeAlias = Callable[[str], object]


@runtime_checkable
class Waiter(Protocol):
    """Capabilities the poll loop drives."""

    def state(self) -> str:
        """Label derived from the held handle, or the nil sentinel before set_op."""
        ...

    def error(self) -> OperationError | None:
        """Error embedded in the held handle, or None."""
        ...

    def set_op(self, raw: object) -> None:
        """Replace the held handle from a raw payload.

        Raises:
            ConversionError: If the payload cannot be mapped onto the handle.
        """
        ...

    def query_op(self) -> object:
        """Fetch fresh status for the held operation and return the raw payload."""
        ...

    def op_name(self) -> str:
        """Name of the held operation, for diagnostics."""
        ...

    def pending_states(self) -> frozenset[str]: ...

    def target_states(self) -> frozenset[str]: ...


def operation_done(waiter: Waiter) -> bool:
    """True when the waiter's current state is one of its target states."""
    return waiter.state() in waiter.target_states()


H = TypeVar("H")


class _BoundWaiter(Generic[H]):
    """Shared plumbing: the held handle, the query callable and the name."""

    __slots__ = ("op", "_query")

    def __init__(self, query: QueryFn, op: H | None = None) -> None:
        self.op: H | None = op
        self._query = query

    def query_op(self) -> object:
        if self.op is None:
            raise NilOperationError("no operation to query")
        return self._query(self.op.name)  # type: ignore[attr-defined]

    def op_name(self) -> str:
        if self.op is None:
            return NIL_NAME
        return self.op.name  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(op={self.op!r})"


class OperationWaiter(_BoundWaiter[Operation]):
    """Waiter for the common done/error operation shape.

    States are ``pending`` while ``done`` is false and ``complete`` once it
    is true; an embedded error is reported regardless of ``done``.
    """

    __slots__ = ()

    def state(self) -> str:
        if self.op is None:
            return NIL_STATE
        return COMPLETE if self.op.done else PENDING

    def error(self) -> OperationError | None:
        if self.op is not None and self.op.error is not None:
            return OperationError(self.op.error.code, self.op.error.message, self.op.name)
        return None

    def set_op(self, raw: object) -> None:
        self.op = decode_operation(raw)

    def pending_states(self) -> frozenset[str]:
        return frozenset({PENDING})

    def target_states(self) -> frozenset[str]:
        return frozenset({COMPLETE})


class ComputeOperationWaiter(_BoundWaiter[ComputeOperation]):
    """Waiter for Compute Engine operations (``PENDING``/``RUNNING``/``DONE``).

    The numeric code of a failure is the HTTP status the API attached to the
    operation; the message joins every reported error entry.
    """

    __slots__ = ()

    def state(self) -> str:
        if self.op is None:
            return NIL_STATE
        return self.op.status

    def error(self) -> OperationError | None:
        op = self.op
        if op is None or not op.errors:
            return None
        message = "; ".join(
            f"{e.code}: {e.message}" if e.code else e.message for e in op.errors
        )
        code = op.http_error_status_code or 0
        return OperationError(code, message, op.name)

    def set_op(self, raw: object) -> None:
        self.op = decode_compute_operation(raw)

    def pending_states(self) -> frozenset[str]:
        return frozenset({COMPUTE_PENDING, COMPUTE_RUNNING})

    def target_states(self) -> frozenset[str]:
        return frozenset({COMPUTE_DONE})


# =============================================================================
# Client bindings
# =============================================================================


def compute_waiter(
    operations_client: Any,
    project: str,
    *,
    zone: str | None = None,
    region: str | None = None,
) -> ComputeOperationWaiter:
    """Waiter backed by a Compute Engine operations client.

    Pass a zone for ``ZoneOperationsClient``, a region for
    ``RegionOperationsClient`` and neither for ``GlobalOperationsClient``.
    """
    if zone and region:
        raise ValueError("Pass either zone or region, not both")

    scope: dict[str, str] = {}
    if zone:
        scope["zone"] = zone
    elif region:
        scope["region"] = region

    def query(name: str) -> object:
        return operations_client.get(project=project, operation=name, **scope)

    return ComputeOperationWaiter(query)


def resource_manager_waiter(operations_client: Any) -> OperationWaiter:
    """Waiter backed by a ``google.api_core.operations_v1.OperationsClient``."""

    def query(name: str) -> object:
        return operations_client.get_operation(name=name)

    return OperationWaiter(query)


def discovery_waiter(operations_resource: Any) -> OperationWaiter:
    """Waiter backed by a discovery client's ``operations()`` resource.

    Example:
        crm = googleapiclient.discovery.build("cloudresourcemanager", "v1")
        waiter = discovery_waiter(crm.operations())
    """

    def query(name: str) -> object:
        return operations_resource.get(name=name).execute()

    return OperationWaiter(query)
