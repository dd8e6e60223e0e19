"""
Timeout and retry helpers for database calls.

Operations are passed as zero-argument callables returning an awaitable so
a retry can invoke them again:

    item = await db_operation_with_timeout(lambda: store.find_by_id(item_id))

A timed-out operation is cancelled through asyncio.wait_for rather than left
running in the background.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from menu_api.core.config import get_settings
from menu_api.core.exceptions import OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]


def is_client_error(error: BaseException) -> bool:
    """True when the failure carries a 4xx status code."""
    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    return isinstance(status, int) and 400 <= status < 500


async def with_timeout(
    awaitable: Awaitable[T],
    timeout_seconds: float,
    message: str = "Operation timeout",
) -> T:
    """
    Await with a deadline.

    Raises:
        OperationTimeoutError: The deadline passed first; the awaited work
            is cancelled.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning(f"{message} after {timeout_seconds}s")
        raise OperationTimeoutError(message)


async def with_retry(
    operation: Operation,
    max_retries: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Invoke an operation up to max_retries times with exponential backoff.

    The wait before attempt n+1 is base_delay * 2**n. Client errors (4xx)
    are re-raised straight away; anything else is retried until attempts
    run out, then the last failure is raised.
    """
    last_error: Optional[BaseException] = None

    for attempt in range(max_retries):
        try:
            return await operation()
        except Exception as e:
            if is_client_error(e):
                raise
            last_error = e
            if attempt < max_retries - 1:
                delay = base_delay * (2 ** attempt)
                logger.warning(
                    f"Attempt {attempt + 1}/{max_retries} failed ({e!r}), "
                    f"retrying in {delay:.2f}s"
                )
                await sleep(delay)

    if last_error is None:
        raise ValueError("max_retries must be at least 1")
    raise last_error


async def db_operation_with_timeout(
    operation: Operation,
    timeout_seconds: Optional[float] = None,
) -> T:
    """
    Guard a persistence call: retries inside an overall deadline.

    Defaults come from settings (2 attempts, 0.5s base delay, 20s deadline).
    """
    settings = get_settings()
    return await with_timeout(
        with_retry(
            operation,
            max_retries=settings.db_max_retries,
            base_delay=settings.db_retry_base_delay,
        ),
        timeout_seconds if timeout_seconds is not None else settings.db_timeout_seconds,
        message="Database operation timeout",
    )
