# retry.py
# Generic retry-with-backoff wrapper for one fallible async operation.
#
# Backoff is linear: base_delay * (attempt_index + 1), attempt_index zero-based.
# Every failure is retried the same way; there is no circuit breaker and
# no per-error-type policy.

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field

from agent_relay import display
from agent_relay.models import Settings

T = TypeVar("T")

RetryHook = Callable[[str, int, float, BaseException], None]


class RetryPolicy(BaseModel):
    """Attempt budget and delay policy. `max_retries + 1` attempts in total."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=2, ge=0)
    base_delay: float = Field(default=0.4, ge=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(max_retries=settings.max_retries, base_delay=settings.retry_delay_ms / 1000)

    def delay_for(self, attempt_index: int) -> float:
        return self.base_delay * (attempt_index + 1)


async def with_retries(
    label: str,
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    on_retry: RetryHook | None = None,
) -> T:
    """
    Await `operation()` until it succeeds or the attempt budget is spent.

    The last observed error is re-raised unchanged, so any upstream payload
    it carries reaches the caller intact.
    """
    warn = on_retry or display.retry_scheduled
    attempt = 0

    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= policy.max_retries:
                raise
            delay = policy.delay_for(attempt)
            warn(label, attempt + 1, delay, exc)
            await sleep(delay)
        attempt += 1
