from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]
FailureHook = Callable[[int, BaseException, float], None]


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: delay before retry n (0-based) is min(base * 2**n, max)."""

    retries: int = 3
    base_delay_s: float = 1.0
    max_delay_s: float = 30.0

    def delay_for(self, attempt_index: int) -> float:
        return min(self.base_delay_s * (2**attempt_index), self.max_delay_s)


NO_RETRY = RetryPolicy(retries=0)


async def run_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
    on_failure: FailureHook | None = None,
) -> T:
    """
    Await `fn`, retrying failures under `policy`.

    Every error kind takes the same path, rate limiting included. The last exception
    is re-raised once retries are exhausted. `on_failure(failure_count, exc, delay)`
    runs before each backoff sleep.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as exc:
            if attempt >= policy.retries:
                raise
            delay = policy.delay_for(attempt)
            attempt += 1
            if on_failure is not None:
                on_failure(attempt, exc, delay)
            await sleep(delay)
