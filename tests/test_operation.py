from __future__ import annotations

import enum
import json
from types import SimpleNamespace

import pytest

from opwait.core.exceptions import ConversionError
from opwait.operation import (
    ComputeErrorEntry,
    ComputeOperation,
    Operation,
    OperationStatus,
    decode_compute_operation,
    decode_operation,
)

pytestmark = [pytest.mark.unit]


class TestDecodeOperation:
    def test_rest_payload_without_done(self):
        assert decode_operation({"name": "operations/cp.1"}) == Operation(name="operations/cp.1")

    def test_done_with_error(self):
        op = decode_operation({
            "name": "operations/cp.1",
            "done": True,
            "error": {"code": 9, "message": "Failed precondition", "details": [{"@type": "x"}]},
        })
        assert op.done
        assert op.error == OperationStatus(code=9, message="Failed precondition", details=({"@type": "x"},))

    def test_client_message_object(self):
        raw = SimpleNamespace(
            name="operations/cp.2",
            done=True,
            error=SimpleNamespace(code=0, message="", details=[]),
            metadata=None,
        )
        assert decode_operation(raw) == Operation(name="operations/cp.2", done=True, error=None)

    def test_json_text_and_bytes(self):
        text = json.dumps({"name": "operations/cp.3", "done": True})
        assert decode_operation(text).done
        assert decode_operation(text.encode()).done

    def test_string_error_code(self):
        op = decode_operation({"name": "op", "done": True, "error": {"code": "13", "message": "internal"}})
        assert op.error is not None and op.error.code == 13

    def test_details_are_kept(self):
        op = decode_operation(
            {"name": "op", "done": True, "error": {"code": 7, "message": "x", "details": [{"@type": "t"}]}}
        )
        assert op.error is not None and op.error.details == ({"@type": "t"},)

    def test_null_done_means_pending(self):
        assert not decode_operation({"name": "op", "done": None}).done

    def test_handle_passes_through(self):
        op = Operation(name="op", done=True)
        assert decode_operation(op) is op

    @pytest.mark.parametrize(
        ("raw", "reason"),
        [
            (None, "payload is None"),
            (42, "none of the fields"),
            ("not json", "invalid JSON"),
            ("[1, 2]", "not an object"),
            ({"metadata": {}}, "none of the fields"),
            ({"name": "op", "done": "yes"}, "'done' must be a bool"),
            ({"name": 7}, "'name' must be a string"),
            ({"name": "op", "done": True, "error": {"code": "x1", "message": "m"}}, "must be an integer"),
            ({"name": "op", "done": True, "error": {"code": True}}, "got bool"),
            ({"name": "op", "done": True, "error": "quota exceeded"}, "'error' must be an object"),
            ({"name": "op", "done": True, "error": [{"code": 7, "message": "denied"}]}, "'error' must be an object"),
            ({"name": "op", "done": True, "error": {"code": 7, "message": "x", "details": 5}}, "must be a list"),
            ({"name": "op", "done": True, "error": {"code": 7, "message": "x", "details": "oops"}}, "must be a list"),
        ],
    )
    def test_shape_mismatch(self, raw, reason):
        with pytest.raises(ConversionError, match=reason):
            decode_operation(raw)


class _Status(enum.IntEnum):
    PENDING = 1
    RUNNING = 2
    DONE = 3


class TestDecodeComputeOperation:
    def test_rest_payload(self):
        op = decode_compute_operation({
            "name": "operation-123",
            "status": "DONE",
            "progress": 100,
            "httpErrorStatusCode": 400,
            "httpErrorMessage": "BAD REQUEST",
            "error": {"errors": [{"code": "RESOURCE_ALREADY_EXISTS", "message": "exists"}]},
        })
        assert op == ComputeOperation(
            name="operation-123",
            status="DONE",
            errors=(ComputeErrorEntry(code="RESOURCE_ALREADY_EXISTS", message="exists"),),
            http_error_status_code=400,
            http_error_message="BAD REQUEST",
            progress=100,
        )

    def test_enum_status_from_client_object(self):
        raw = SimpleNamespace(
            name="operation-9",
            status=_Status.RUNNING,
            error=SimpleNamespace(errors=[]),
            http_error_status_code=0,
            http_error_message="",
            progress=40,
        )
        op = decode_compute_operation(raw)
        assert op.status == "RUNNING"
        assert op.http_error_status_code is None
        assert op.progress == 40

    def test_missing_status(self):
        with pytest.raises(ConversionError, match="status"):
            decode_compute_operation({"name": "operation-1"})

    def test_empty_status(self):
        with pytest.raises(ConversionError, match="'status' is empty"):
            decode_compute_operation({"name": "operation-1", "status": ""})

    def test_errors_must_be_list(self):
        with pytest.raises(ConversionError, match="must be a list"):
            decode_compute_operation({"status": "DONE", "error": {"errors": "boom"}})

    @pytest.mark.parametrize(
        "error",
        [{"errors": 5}, {"errors": [5]}, "boom", [{"code": "X", "message": "m"}]],
    )
    def test_malformed_error_block(self, error):
        with pytest.raises(ConversionError):
            decode_compute_operation({"status": "DONE", "error": error})
