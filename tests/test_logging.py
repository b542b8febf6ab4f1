from __future__ import annotations

from pathlib import Path

import pytest

from opwait.logging import LogConfig, setup_logging, teardown_logging
from opwait.wait import operation_wait, operation_wait_async
from opwait.waiter import OperationWaiter
from tests.conftest import FakeClock, ScriptedQuery, done, pending

pytestmark = [pytest.mark.unit]


class TestLogging:
    def test_wait_logs_to_file(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "opwait.log"
        clock = FakeClock()
        query = ScriptedQuery(clock, [pending(), done()])
        waiter = OperationWaiter(query)
        waiter.set_op(pending())

        handler_ids = setup_logging(LogConfig(file=str(log_file), console=False))
        try:
            operation_wait(waiter, "dataset import", 4, sleep=clock.sleep, clock=clock)
        finally:
            teardown_logging(handler_ids)

        text = log_file.read_text()
        assert "Operation reached 'complete'" in text
        assert "activity=dataset import" in text
        assert "operation=operations/op-1" in text
        assert "polling again in 2.0s" in text
        assert "Waiting up to 240s for ['complete']" in text

    @pytest.mark.asyncio
    async def test_async_wait_logs_like_sync_wait(self, tmp_path: Path):
        log_file = tmp_path / "opwait.log"
        clock = FakeClock()
        query = ScriptedQuery(clock, [pending(), done()])
        waiter = OperationWaiter(query)
        waiter.set_op(pending())

        handler_ids = setup_logging(LogConfig(file=str(log_file), console=False))
        try:
            await operation_wait_async(waiter, "dataset import", 4, sleep=clock.asleep, clock=clock)
        finally:
            teardown_logging(handler_ids)

        text = log_file.read_text()
        assert "Waiting up to 240s for ['complete']" in text
        assert "activity=dataset import" in text
        assert "Operation reached 'complete'" in text

    def test_console_only_returns_one_handler(self):
        handler_ids = setup_logging(LogConfig(console=True, file=None))
        try:
            assert len(handler_ids) == 1
        finally:
            teardown_logging(handler_ids)
