"""Async retry with exponential backoff and jitter.

Used for registry and store calls whose failures are transient. Domain
errors (``TenancyError``) are never retried: they are answers, not faults.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from tenancy.domain.exceptions import TenancyError

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry budget.

    Attributes:
        attempts: Total number of calls, including the first
        base_delay_ms: Delay before the first retry
        max_delay_ms: Upper bound on any single delay
        jitter_ms: Random extra delay added to each retry
    """

    attempts: int = 3
    base_delay_ms: int = 50
    max_delay_ms: int = 2000
    jitter_ms: int = 50

    def delay_seconds(self, retry_number: int) -> float:
        """Delay before the given retry (0-based)."""
        delay = min(self.base_delay_ms * (2**retry_number), self.max_delay_ms)
        jitter = random.randint(0, self.jitter_ms) if self.jitter_ms else 0
        return min(delay + jitter, self.max_delay_ms) / 1000.0


class RetryExhaustedError(Exception):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, attempts: int, last_error: Exception) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")


async def retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    on_retry: Callable[[int, Exception], None] | None = None,
) -> T:
    """Call ``fn`` until it succeeds or the policy is exhausted.

    Args:
        fn: Zero-argument coroutine factory
        policy: Retry budget
        on_retry: Called with (attempt, error) before each retry

    Returns:
        The result of the first successful call

    Raises:
        TenancyError: Immediately, without retrying
        RetryExhaustedError: When every attempt failed
    """
    attempts = max(policy.attempts, 1)
    attempt = 1
    while True:
        try:
            return await fn()
        except TenancyError:
            raise
        except Exception as e:
            if attempt >= attempts:
                raise RetryExhaustedError(attempts, e) from e
            if on_retry is not None:
                on_retry(attempt, e)
            await asyncio.sleep(policy.delay_seconds(attempt - 1))
            attempt += 1
