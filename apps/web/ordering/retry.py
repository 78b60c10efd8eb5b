"""Bounded retry policy for order submission."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from apps.web.ordering.exceptions import OrderingAPIError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to attempt a submission and how long to wait between."""

    max_attempts: int = 1
    backoff: float = 0.0  # Fixed delay in seconds between attempts

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff < 0:
            raise ValueError("backoff must not be negative")


# Customer flow: the guest re-confirms by hand
NO_RETRY = RetryPolicy()

# Waiter flow: 3 attempts, 1 second apart
WAITER_RETRY = RetryPolicy(max_attempts=3, backoff=1.0)


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = NO_RETRY,
    description: str = "request",
) -> T:
    """
    Await ``operation()`` until it succeeds or the policy is exhausted.

    Only API errors are retried; anything else propagates immediately.

    Raises:
        OrderingAPIError: The last error once every attempt has failed.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation()
        except OrderingAPIError as e:
            if attempt >= policy.max_attempts:
                if policy.max_attempts > 1:
                    logger.error(
                        "%s failed after %d attempts (%s): %s",
                        description,
                        attempt,
                        type(e).__name__,
                        e.message,
                    )
                raise
            logger.warning(
                "%s failed (attempt %d/%d), retry in %.1fs (%s): %s",
                description,
                attempt,
                policy.max_attempts,
                policy.backoff,
                type(e).__name__,
                e.message,
            )
            await asyncio.sleep(policy.backoff)

    raise AssertionError("unreachable")  # pragma: no cover
