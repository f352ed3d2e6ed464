"""Bounded exponential backoff for voice requests.

Only transient failures are retried: the server could not be reached or
answered with a 5xx. A 404, including SESSION_EXPIRED, is returned to the
caller on the first attempt.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from convsync.client.errors import NetworkError, ServerError
from convsync.observability.logging import get_logger
from convsync.observability.metrics import REQUEST_RETRIES

logger = get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def is_transient(error: BaseException) -> bool:
    return isinstance(error, NetworkError | ServerError)


def backoff_delay(
    attempt: int,
    initial_delay: float,
    max_delay: float,
    multiplier: float = 2.0,
) -> float:
    """Delay before retry number ``attempt + 1``."""
    return min(initial_delay * multiplier**attempt, max_delay)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    name: str,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    should_retry: Callable[[BaseException], bool] = is_transient,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run ``operation``, retrying transient failures.

    Args:
        operation: Coroutine factory called once per attempt
        name: Operation label used in logs and metrics
        max_retries: Retries after the first attempt
        initial_delay: Seconds before the first retry; doubles each time
        max_delay: Upper bound on a single delay
        should_retry: Decides whether a failure is worth another attempt
        sleep: Awaitable delay, replaced in tests

    Raises:
        The last error once retries are exhausted or the error is not retryable
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= max_retries or not should_retry(e):
                raise

            delay = backoff_delay(attempt, initial_delay, max_delay)
            REQUEST_RETRIES.labels(operation=name).inc()
            logger.warning(
                "request_retry_scheduled",
                operation=name,
                attempt=attempt + 1,
                max_retries=max_retries,
                delay_seconds=delay,
                error=str(e),
            )
            await sleep(delay)
            attempt += 1
