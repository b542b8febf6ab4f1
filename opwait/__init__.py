"""opwait - Block until a remote long-running operation finishes.

Example:

    from opwait import compute_waiter, operation_wait

    operation = instances_client.insert(project=project, zone=zone, instance_resource=body)

    waiter = compute_waiter(zone_operations_client, project, zone=zone)
    waiter.set_op(operation)
    operation_wait(waiter, "instance creation", timeout_minutes=4)
"""

from opwait.config import WaitConfig, load_wait_config
from opwait.core.exceptions import (
    ConfigurationError,
    ConversionError,
    NilOperationError,
    NotRetriableError,
    OperationCancelledError,
    OperationError,
    OperationTimeoutError,
    OpWaitError,
    TransportError,
    UnexpectedStateError,
    WaitError,
)
from opwait.logging import LogConfig, setup_logging, teardown_logging
from opwait.operation import ComputeOperation, Operation, OperationStatus
from opwait.retryable import is_retryable_error
from opwait.wait import (
    MIN_POLL_INTERVAL,
    PollPolicy,
    Refresh,
    operation_wait,
    operation_wait_async,
    refresh_func,
)
from opwait.waiter import (
    ComputeOperationWaiter,
    OperationWaiter,
    Waiter,
    compute_waiter,
    discovery_waiter,
    operation_done,
    resource_manager_waiter,
)

__all__ = [
    # Engine
    "operation_wait",
    "operation_wait_async",
    "refresh_func",
    "operation_done",
    "PollPolicy",
    "Refresh",
    "MIN_POLL_INTERVAL",
    # Waiters
    "Waiter",
    "OperationWaiter",
    "ComputeOperationWaiter",
    "compute_waiter",
    "discovery_waiter",
    "resource_manager_waiter",
    # Handles
    "Operation",
    "OperationStatus",
    "ComputeOperation",
    # Retry classification
    "is_retryable_error",
    # Config & logging
    "WaitConfig",
    "load_wait_config",
    "LogConfig",
    "setup_logging",
    "teardown_logging",
    # Errors
    "OpWaitError",
    "WaitError",
    "ConfigurationError",
    "TransportError",
    "NotRetriableError",
    "NilOperationError",
    "ConversionError",
    "OperationError",
    "UnexpectedStateError",
    "OperationTimeoutError",
    "OperationCancelledError",
]
