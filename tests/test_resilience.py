"""
Tests for the timeout and retry helpers.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from menu_api.core.exceptions import ConflictError, NotFoundError, OperationTimeoutError
from menu_api.core.resilience import (
    db_operation_with_timeout,
    is_client_error,
    with_retry,
    with_timeout,
)


class TransientError(Exception):
    pass


class HttpStatusError(Exception):
    def __init__(self, status):
        super().__init__(f"status {status}")
        self.status = status


def no_sleep():
    return AsyncMock(return_value=None)


class TestWithRetry:

    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        operation = AsyncMock(return_value="ok")

        assert await with_retry(operation, max_retries=3, sleep=no_sleep()) == "ok"
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_transient_failures_with_backoff(self):
        operation = AsyncMock(side_effect=[TransientError(), TransientError(), "ok"])
        sleep = no_sleep()

        result = await with_retry(operation, max_retries=3, base_delay=0.5, sleep=sleep)

        assert result == "ok"
        assert operation.await_count == 3
        assert [call.args[0] for call in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_max_retries_is_total_attempts(self):
        operation = AsyncMock(side_effect=TransientError("down"))
        sleep = no_sleep()

        with pytest.raises(TransientError):
            await with_retry(operation, max_retries=2, base_delay=0.5, sleep=sleep)

        assert operation.await_count == 2
        assert sleep.await_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [NotFoundError(), ConflictError(), HttpStatusError(422)])
    async def test_client_errors_are_not_retried(self, error):
        operation = AsyncMock(side_effect=error)
        sleep = no_sleep()

        with pytest.raises(type(error)):
            await with_retry(operation, max_retries=3, sleep=sleep)

        assert operation.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self):
        operation = AsyncMock(side_effect=[HttpStatusError(503), "ok"])

        assert await with_retry(operation, max_retries=2, sleep=no_sleep()) == "ok"
        assert operation.await_count == 2


def test_is_client_error():
    assert is_client_error(NotFoundError())
    assert is_client_error(HttpStatusError(400))
    assert not is_client_error(HttpStatusError(500))
    assert not is_client_error(ValueError("plain"))


class TestWithTimeout:

    @pytest.mark.asyncio
    async def test_returns_result_within_deadline(self):
        async def quick():
            return 42

        assert await with_timeout(quick(), 1.0) == 42

    @pytest.mark.asyncio
    async def test_timeout_cancels_operation(self):
        cancelled = asyncio.Event()

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(OperationTimeoutError) as exc_info:
            await with_timeout(slow(), 0.05, message="Database operation timeout")

        assert exc_info.value.message == "Database operation timeout"
        assert exc_info.value.status_code == 500
        assert cancelled.is_set()


class TestDbOperationWithTimeout:

    @pytest.mark.asyncio
    async def test_uses_configured_retries(self):
        # Settings default: 2 attempts
        operation = AsyncMock(side_effect=[TransientError(), {"id": "x"}])

        assert await db_operation_with_timeout(operation) == {"id": "x"}
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_deadline_overrides_retries(self):
        async def hangs():
            await asyncio.sleep(10)

        with pytest.raises(OperationTimeoutError):
            await db_operation_with_timeout(hangs, timeout_seconds=0.05)
