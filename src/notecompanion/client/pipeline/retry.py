"""Retry logic with exponential backoff.

This module provides:
- next_delay: Pure backoff schedule (base_delay * 2^(attempt-1))
- RetryState: Immutable (attempt, last_error) state advanced after each failure
- retry_with_backoff: Async retry loop driven by RetryState with injectable sleep
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from notecompanion.client.pipeline.types import SleepFunc

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0


def next_delay(
    attempt: int,
    base_delay: float = DEFAULT_BASE_DELAY,
    multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
) -> float:
    """Delay to wait after failed attempt number `attempt` (1-based).

    Args:
        attempt: Number of the attempt that just failed.
        base_delay: Delay after the first failure, in seconds.
        multiplier: Growth factor per attempt.

    Returns:
        Delay in seconds.
    """
    if attempt < 1:
        raise ValueError("attempt numbers start at 1")
    return base_delay * multiplier ** (attempt - 1)


@dataclass(frozen=True)
class RetryState:
    """Where a retry loop stands.

    Attributes:
        attempt: Number of the attempt about to run (starts at 1).
        max_attempts: Total attempts allowed.
        last_error: Error raised by the previous attempt.
    """

    max_attempts: int
    attempt: int = 1
    last_error: BaseException | None = None

    @property
    def exhausted(self) -> bool:
        """Check if no attempt is left after the current one."""
        return self.attempt >= self.max_attempts

    def advance(self, error: BaseException) -> RetryState:
        """State for the next attempt after `error`."""
        return RetryState(
            max_attempts=self.max_attempts,
            attempt=self.attempt + 1,
            last_error=error,
        )

    def delay(self, base_delay: float) -> float:
        """Delay before the next attempt."""
        return next_delay(self.attempt, base_delay)


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    should_retry: Callable[[Exception], bool],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    sleep: SleepFunc = asyncio.sleep,
    description: str = "operation",
) -> T:
    """Run an async function with exponential backoff retry.

    Args:
        func: Coroutine function to execute.
        should_retry: Decides whether an error is transient.
        max_attempts: Maximum number of attempts (including the first).
        base_delay: Delay after the first failure, in seconds.
        sleep: Sleep coroutine (injected in tests).
        description: Label used in log messages.

    Returns:
        Result of the function.

    Raises:
        The error of the last attempt when all attempts fail, or any
        non-retryable error immediately.
    """
    state = RetryState(max_attempts=max_attempts)

    while True:
        try:
            return await func()
        except Exception as e:
            if not should_retry(e):
                raise
            if state.exhausted:
                logger.error(
                    f"{description}: all {state.max_attempts} attempts failed: {e}"
                )
                raise

            delay = state.delay(base_delay)
            logger.warning(
                f"{description}: attempt {state.attempt}/{state.max_attempts} "
                f"failed: {e}. Retrying in {delay:.1f}s..."
            )
            state = state.advance(e)
            await sleep(delay)
