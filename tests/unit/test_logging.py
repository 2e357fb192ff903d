"""Tests for structured logging helpers."""

import asyncio
from uuid import uuid4

import pytest
import structlog

from contentgen.logging import bind_context, clear_context, get_logger, with_context
from contentgen.logging.structured import add_service_info


@pytest.fixture(autouse=True)
def clean_context():
    clear_context()
    yield
    clear_context()


class TestContextBinding:
    def test_bind_context_skips_empty_values(self):
        account_id = uuid4()
        bind_context(run_id="run-1", account_id=account_id)

        bound = structlog.contextvars.get_contextvars()
        assert bound == {"run_id": "run-1", "account_id": str(account_id)}

    def test_with_context_returns_bound_keys(self):
        bound = with_context(operation="batch_run", wave=2, skipped=None)
        assert bound == {"operation": "batch_run", "wave": "2"}

        structlog.contextvars.unbind_contextvars(*bound)
        assert structlog.contextvars.get_contextvars() == {}

    def test_context_is_isolated_per_task(self):
        async def run(account: str) -> dict:
            bind_context(account_id=account)
            await asyncio.sleep(0)
            return structlog.contextvars.get_contextvars()

        async def main():
            return await asyncio.gather(run("account-a"), run("account-b"))

        first, second = asyncio.run(main())
        assert first["account_id"] == "account-a"
        assert second["account_id"] == "account-b"


class TestLogger:
    def test_events_carry_fields(self):
        with structlog.testing.capture_logs() as logs:
            get_logger("contentgen.test").info("run_started", blog_id="b-1", steps=3)

        assert logs == [
            {"event": "run_started", "blog_id": "b-1", "steps": 3, "log_level": "info"}
        ]

    def test_service_info_processor(self):
        assert add_service_info(None, "info", {"event": "x"}) == {
            "event": "x",
            "service": "contentgen",
        }
