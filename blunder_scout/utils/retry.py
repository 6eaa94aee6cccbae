# blunder_scout/utils/retry.py
"""
Provides a generic, asynchronous retry decorator for handling transient errors.

This utility makes calls to the remote evaluation service resilient to
temporary issues, such as network glitches or a briefly overloaded server, by
retrying a failed operation after a linearly growing delay. Every attempt runs
under its own hard timeout, so one hung request cannot eat the whole budget.
"""
import asyncio
import functools
from typing import Any, Awaitable, Callable, Coroutine, Tuple, Type, TYPE_CHECKING

import structlog

from blunder_scout.exceptions import EvaluationTimeoutError, RetryableEvaluationError
from blunder_scout.utils import metrics

if TYPE_CHECKING:
    from blunder_scout.config.settings import RetryPolicyModel

logger = structlog.get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]

# A tuple of default exception types that are considered "transient" and worth retrying.
DEFAULT_TRANSIENT_EXCEPTIONS: Tuple[Type[Exception], ...] = (RetryableEvaluationError,)


def retry_with_backoff(
    policy: "RetryPolicyModel",
    exceptions_to_catch: Tuple[Type[Exception], ...] = DEFAULT_TRANSIENT_EXCEPTIONS,
    sleep: SleepFunc = asyncio.sleep,
    operation: str = "unknown",
) -> Callable[[Callable[..., Coroutine]], Callable[..., Coroutine]]:
    """
    An async decorator to retry a function with linear backoff.

    The decorated function is attempted at most `policy.attempts` times. Each
    attempt is cancelled after `policy.timeout_s`; the timeout surfaces as an
    `EvaluationTimeoutError`, which is retryable. After a retryable failure the
    wrapper sleeps `policy.delay_for(attempt)` seconds and tries again. Any
    other exception propagates immediately, without sleeping. Once the budget
    is spent, the last error is re-raised unchanged.

    Args:
        policy: Attempts, delays and the per-attempt timeout.
        exceptions_to_catch: The exception classes that should trigger a retry.
        sleep: The coroutine used to wait between attempts.
        operation: A label for logs and Prometheus metrics.

    Returns:
        A decorated asynchronous function.
    """
    def decorator(func: Callable[..., Coroutine]) -> Callable[..., Coroutine]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, policy.attempts + 1):
                try:
                    try:
                        return await asyncio.wait_for(func(*args, **kwargs), timeout=policy.timeout_s)
                    except asyncio.TimeoutError as e:
                        raise EvaluationTimeoutError(
                            f"{operation} timed out after {policy.timeout_s}s."
                        ) from e
                except exceptions_to_catch as e:
                    if attempt == policy.attempts:
                        logger.error(
                            "Function call failed after max attempts.",
                            function=func.__name__,
                            operation=operation,
                            total_attempts=policy.attempts,
                            error=str(e),
                        )
                        raise

                    metrics.EVALUATION_RETRIES_TOTAL.labels(operation=operation).inc()
                    wait_time = policy.delay_for(attempt)
                    logger.warning(
                        "Caught transient error, retrying function.",
                        function=func.__name__,
                        operation=operation,
                        attempt=attempt,
                        total_attempts=policy.attempts,
                        wait_seconds=round(wait_time, 2),
                        error=str(e),
                    )
                    await sleep(wait_time)
        return wrapper
    return decorator
