"""Exponential backoff schedule and the retry loop built on it."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Awaitable, Callable, List, TypeVar

from models.errors import ErrorKind, SyncError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[object]]


@dataclass(frozen=True)
class BackoffPolicy:
    """Delay schedule for up to ``max_retries`` retries of one request.

    The delay before retry ``n`` (1-indexed) is ``factor ** (n - 1) * first_delay``
    rounded half up to whole seconds.
    """

    first_delay: int = 1
    factor: float = 2.0
    max_retries: int = 3

    def __post_init__(self) -> None:
        if self.first_delay < 1:
            raise SyncError(ErrorKind.invalid_policy, "A delay of at least one second is required.")
        if self.max_retries < 1:
            raise SyncError(ErrorKind.invalid_policy, "At least one retry must be allowed.")

    def delay_for(self, retry: int) -> int:
        if not 1 <= retry <= self.max_retries:
            raise SyncError(
                ErrorKind.invalid_argument,
                f"Retry {retry} is outside the policy range 1..{self.max_retries}.",
            )
        return int(math.floor(self.factor ** (retry - 1) * self.first_delay + 0.5))

    def delays(self) -> List[int]:
        return [self.delay_for(retry) for retry in range(1, self.max_retries + 1)]

    def should_retry(self, failures: int) -> bool:
        return 1 <= failures <= self.max_retries


DEFAULT_POLICY = BackoffPolicy()


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: BackoffPolicy = DEFAULT_POLICY,
    *,
    sleep: Sleep = asyncio.sleep,
    operation_name: str = "request",
) -> T:
    """Await ``operation`` until it succeeds, retrying transient ``SyncError``s.

    Non-retryable errors propagate at once. Once ``policy.max_retries`` retries
    have failed, the latest error propagates.
    """
    failures = 0
    while True:
        try:
            return await operation()
        except SyncError as exc:
            if not exc.retryable:
                raise
            failures += 1
            if not policy.should_retry(failures):
                logger.error(
                    "Giving up on %s after %d retries: %s",
                    operation_name,
                    policy.max_retries,
                    exc.message,
                    extra={"operation": operation_name, "kind": exc.kind.value},
                )
                raise
            delay = policy.delay_for(failures)
            logger.warning(
                "Retrying %s in %ds: %s",
                operation_name,
                delay,
                exc.message,
                extra={
                    "operation": operation_name,
                    "attempt": failures,
                    "delay": delay,
                    "kind": exc.kind.value,
                },
            )
            await sleep(delay)
