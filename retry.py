"""
Fixed-delay retry loop shared by every kind of attempt failure
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from errors import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryDecision(Enum):
    RETRYABLE = "retryable"
    FATAL = "fatal"


def classify_error(error: BaseException) -> RetryDecision:
    """Only problems that another attempt cannot fix are fatal."""
    if isinstance(error, (ConfigurationError, ValidationError)):
        return RetryDecision.FATAL
    return RetryDecision.RETRYABLE


async def run_with_retry(
    operation: Callable[[int], Awaitable[T]],
    max_attempts: int,
    delay_seconds: float,
    classify: Callable[[BaseException], RetryDecision] = classify_error,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Optional[Callable[[int, BaseException], None]] = None
) -> T:
    """
    Await ``operation(attempt)`` until it returns, retrying retryable errors.

    The delay is constant and only happens between attempts: never before
    the first one and never after the last one. When the budget runs out,
    or a fatal error is raised, the last error propagates to the caller.

    Args:
        operation: Coroutine factory receiving the 1-indexed attempt number
        max_attempts: Total attempts including the first
        delay_seconds: Pause between two attempts
        classify: Maps a raised error to RETRYABLE or FATAL
        sleep: Awaitable used for the pause
        on_retry: Called with the failed attempt number and its error before pausing
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation(attempt)
        except Exception as e:
            if classify(e) is RetryDecision.FATAL:
                logger.error(f"Attempt {attempt}/{max_attempts} failed with a fatal error: {e}")
                raise
            if attempt == max_attempts:
                logger.error(f"Attempt {attempt}/{max_attempts} failed, giving up: {e}")
                raise

            logger.info(f"Attempt {attempt}/{max_attempts} failed ({e}), retrying in {delay_seconds}s")
            if on_retry is not None:
                on_retry(attempt, e)
            await sleep(delay_seconds)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("retry loop exited without a result")
