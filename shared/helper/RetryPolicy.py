"""
Retry with exponential backoff for calls to external providers.

The policy never lets an exception escape the retry loop. Callers receive a
RetryResult and decide themselves whether a failure is fatal.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from shared.helper.errors import ProviderTransientError


@dataclass
class RetryPolicy:
    """
    Attributes:
        max_attempts: Maximum number of attempts, including the first one
        initial_delay: Delay before the second attempt, in seconds
        max_delay: Upper bound for a single delay, in seconds
        backoff_multiplier: Factor applied per further attempt
        jitter: Whether to vary each delay by ±25%
    """
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: bool = False

    def delay_for(self, attempt: int) -> float:
        """
        Delay after the given failed attempt.

        Args:
            attempt: Attempt number that just failed (1-based)

        Returns:
            Delay in seconds, i.e. initial_delay * multiplier ** (attempt - 1)
        """
        delay = min(self.initial_delay * (self.backoff_multiplier ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay *= 0.75 + (random.random() * 0.5)
        return delay


@dataclass
class RetryResult:
    """
    Attributes:
        success: Whether the operation succeeded
        result: The return value if successful
        attempts: Number of attempts made
        error: The final error if failed
        error_history: Errors from each failed attempt
    """
    success: bool
    result: Any = None
    attempts: int = 0
    error: Exception | None = None
    error_history: list[Exception] = field(default_factory=list)


async def run_with_retry(
    operation: Callable[[], Awaitable[Any]],
    policy: RetryPolicy,
    retry_on: tuple = (ProviderTransientError,),
    operation_name: str = "operation",
    logger: logging.Logger | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> RetryResult:
    """
    Run an async operation, retrying on the given exception types.

    Exceptions outside ``retry_on`` end the loop immediately and are
    returned as a failed result after a single attempt.

    Args:
        operation: Zero-argument coroutine factory
        policy: Retry policy
        retry_on: Exception types considered transient
        operation_name: Name for logging
        logger: Logger to report retries on
        sleep: Awaitable used between attempts

    Returns:
        RetryResult with success/failure info
    """
    log = logger or logging.getLogger(__name__)
    error_history: list[Exception] = []

    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = await operation()
        except retry_on as e:
            error_history.append(e)
            if attempt >= policy.max_attempts:
                log.error("%s failed after %d attempts: %s", operation_name, attempt, e)
                break
            delay = policy.delay_for(attempt)
            log.warning(
                "%s attempt %d/%d failed: %s. Retrying in %.2fs",
                operation_name, attempt, policy.max_attempts, e, delay,
            )
            await sleep(delay)
            continue
        except Exception as e:
            error_history.append(e)
            log.error("%s failed with non-retryable error: %s", operation_name, e)
            return RetryResult(success=False, attempts=attempt, error=e, error_history=error_history)

        if attempt > 1:
            log.info("%s succeeded after %d attempts", operation_name, attempt)
        return RetryResult(success=True, result=result, attempts=attempt, error_history=error_history)

    return RetryResult(
        success=False,
        attempts=len(error_history),
        error=error_history[-1] if error_history else None,
        error_history=error_history,
    )
