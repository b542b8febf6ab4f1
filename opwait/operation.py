"""Operation handles and the decoders that build them from raw payloads.

A handle is an immutable snapshot of a long-running operation as last fetched
from the remote service. Payloads arrive in many shapes depending on the
client that fetched them:

- JSON REST responses (``dict`` with camelCase keys, ``done`` omitted while false)
- client-library message objects exposing the fields as attributes
- raw JSON text or bytes

Each operation kind has one decoder that maps any of those shapes onto its
fixed fields, raising ConversionError on a mismatch.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from opwait.core.exceptions import ConversionError

_CAMEL_BOUNDARY = re.compile(r"_([a-z])")


def _camel(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(lambda m: m.group(1).upper(), key)


class _Fields:
    """Uniform read access over mappings and attribute-bearing objects."""

    __slots__ = ("_raw", "_is_mapping")

    def __init__(self, raw: object) -> None:
        self._raw = raw
        self._is_mapping = isinstance(raw, Mapping)

    def has(self, key: str) -> bool:
        return any(self._lookup(k)[0] for k in (key, _camel(key)))

    def get(self, key: str, default: Any = None) -> Any:
        for k in (key, _camel(key)):
            found, value = self._lookup(k)
            if found:
                return value
        return default

    def _lookup(self, key: str) -> tuple[bool, Any]:
        if self._is_mapping:
            raw: Mapping[str, Any] = self._raw  # type: ignore[assignment]
            return (key in raw, raw.get(key))
        if hasattr(self._raw, key):
            return (True, getattr(self._raw, key))
        return (False, None)


def _fields(raw: object, kind: str, required: tuple[str, ...]) -> _Fields:
    if raw is None:
        raise ConversionError(kind, "payload is None")

    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise ConversionError(kind, f"invalid JSON payload: {e}") from e
        if not isinstance(raw, dict):
            raise ConversionError(kind, f"JSON payload is {type(raw).__name__}, not an object")

    fields = _Fields(raw)
    if not any(fields.has(key) for key in required):
        raise ConversionError(
            kind,
            f"{type(raw).__name__} payload has none of the fields {', '.join(required)}",
        )
    return fields


def _as_str(value: Any, kind: str, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    raise ConversionError(kind, f"field {field!r} must be a string, got {type(value).__name__}")


def _as_int(value: Any, kind: str, field: str) -> int:
    # JSON encodes int64 values as strings
    if isinstance(value, bool):
        raise ConversionError(kind, f"field {field!r} must be an integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.lstrip("-").isdigit():
        return int(value)
    raise ConversionError(kind, f"field {field!r} must be an integer, got {value!r}")


def _is_object(value: Any, keys: tuple[str, ...]) -> bool:
    if isinstance(value, Mapping):
        return True
    if isinstance(value, (str, bytes, bytearray, Sequence)):
        return False
    return any(hasattr(value, k) for k in keys)


def _as_list(value: Any, kind: str, field: str) -> tuple[Any, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, bytes, bytearray, Mapping)) or not isinstance(value, Iterable):
        raise ConversionError(kind, f"field {field!r} must be a list, got {type(value).__name__}")
    return tuple(value)


def _enum_label(value: Any) -> Any:
    # proto-plus enums carry the label on .name
    name = getattr(value, "name", None)
    return name if isinstance(name, str) and not isinstance(value, str) else value


# =============================================================================
# Common (google.longrunning style) operation
# =============================================================================


@dataclass(frozen=True, slots=True)
class OperationStatus:
    """Server-reported failure embedded in a finished operation."""

    code: int
    message: str
    details: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True)
class Operation:
    """Minimal handle: name, done flag and the embedded error if it failed."""

    name: str
    done: bool = False
    error: OperationStatus | None = None

    @classmethod
    def from_raw(cls, raw: object) -> Operation:
        return decode_operation(raw)


def _decode_status(raw: Any, kind: str) -> OperationStatus | None:
    if raw is None:
        return None
    if not _is_object(raw, ("code", "message")):
        raise ConversionError(kind, "field 'error' must be an object")
    fields = _Fields(raw)
    code = _as_int(fields.get("code", 0), kind, "error.code")
    message = _as_str(fields.get("message"), kind, "error.message")
    details = _as_list(fields.get("details"), kind, "error.details")
    # an unset google.rpc.Status decodes as code 0 with no message
    if code == 0 and not message:
        return None
    return OperationStatus(code=code, message=message, details=details)


def decode_operation(raw: object) -> Operation:
    """Map a raw payload onto an Operation.

    Raises:
        ConversionError: If the payload has the wrong shape.
    """
    if isinstance(raw, Operation):
        return raw

    kind = "operation"
    fields = _fields(raw, kind, ("name", "done"))

    done = fields.get("done", False)
    if done is None:
        done = False
    if not isinstance(done, bool):
        raise ConversionError(kind, f"field 'done' must be a bool, got {done!r}")

    return Operation(
        name=_as_str(fields.get("name"), kind, "name"),
        done=done,
        error=_decode_status(fields.get("error"), kind),
    )


# =============================================================================
# Compute Engine style operation
# =============================================================================

COMPUTE_PENDING = "PENDING"
COMPUTE_RUNNING = "RUNNING"
COMPUTE_DONE = "DONE"


@dataclass(frozen=True, slots=True)
class ComputeErrorEntry:
    code: str
    message: str


@dataclass(frozen=True, slots=True)
class ComputeOperation:
    """Compute Engine operation: a status label plus a list of errors."""

    name: str
    status: str
    errors: tuple[ComputeErrorEntry, ...] = ()
    http_error_status_code: int | None = None
    http_error_message: str = ""
    progress: int = 0

    @classmethod
    def from_raw(cls, raw: object) -> ComputeOperation:
        return decode_compute_operation(raw)


def _decode_compute_errors(raw: Any, kind: str) -> tuple[ComputeErrorEntry, ...]:
    if raw is None:
        return ()
    if not _is_object(raw, ("errors",)):
        raise ConversionError(kind, "field 'error' must be an object")
    entries = _as_list(_Fields(raw).get("errors"), kind, "error.errors")
    if not all(_is_object(e, ("code", "message")) for e in entries):
        raise ConversionError(kind, "entries of 'error.errors' must be objects")
    return tuple(
        ComputeErrorEntry(
            code=_as_str(_Fields(e).get("code"), kind, "error.errors.code"),
            message=_as_str(_Fields(e).get("message"), kind, "error.errors.message"),
        )
        for e in entries
    )


def decode_compute_operation(raw: object) -> ComputeOperation:
    """Map a raw payload onto a ComputeOperation.

    Raises:
        ConversionError: If the payload has the wrong shape or no status.
    """
    if isinstance(raw, ComputeOperation):
        return raw

    kind = "compute operation"
    fields = _fields(raw, kind, ("status",))

    status = _as_str(_enum_label(fields.get("status")), kind, "status")
    if not status:
        raise ConversionError(kind, "field 'status' is empty")

    http_code = fields.get("http_error_status_code")
    return ComputeOperation(
        name=_as_str(fields.get("name"), kind, "name"),
        status=status,
        errors=_decode_compute_errors(fields.get("error"), kind),
        http_error_status_code=(
            _as_int(http_code, kind, "http_error_status_code") if http_code else None
        ),
        http_error_message=_as_str(fields.get("http_error_message"), kind, "http_error_message"),
        progress=_as_int(fields.get("progress") or 0, kind, "progress"),
    )
