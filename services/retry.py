"""Bounded retry with exponential backoff for async actions.

Every call into an external system (remote listing, downloads, OpenAI,
object storage, metadata store) goes through :class:`RetryExecutor`, so the
backoff policy lives in one place:

    delay before attempt n+1 = base_delay * factor ** (n - 1)

There is no jitter and no circuit breaking. The action receives the current
attempt number (1-based) so it can clean up after a failed attempt, e.g.
remove a partially written download before trying again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pydantic import BaseModel, Field

logger = logging.getLogger("retry")

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


class RetryPolicy(BaseModel):
    attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=0.5, gt=0)
    factor: float = Field(default=2.0, ge=1)

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt."""
        return self.base_delay * self.factor ** (attempt - 1)


class RetryExecutor:
    def __init__(self, attempts: int = 3, sleep: Optional[Sleep] = None):
        self.default_attempts = RetryPolicy(attempts=attempts).attempts
        self._sleep = sleep or asyncio.sleep

    async def execute(
        self,
        action: Callable[[int], Awaitable[T]],
        *,
        attempts: Optional[int] = None,
        base_delay: float = 0.5,
        factor: float = 2.0,
        task_name: str = "operation",
    ) -> T:
        try:
            policy = RetryPolicy(
                attempts=attempts if attempts is not None else self.default_attempts,
                base_delay=base_delay,
                factor=factor,
            )
        except ValueError as e:
            raise ValueError(f"invalid retry policy for {task_name}: {e}") from e

        attempt = 0
        while True:
            attempt += 1
            try:
                return await action(attempt)
            except Exception as e:
                if attempt >= policy.attempts:
                    logger.error(
                        "All retries failed task=%s attempts=%d error=%s",
                        task_name,
                        attempt,
                        e,
                    )
                    e.add_note(f"{task_name} failed after {attempt} attempt(s)")
                    raise
                delay = policy.delay_for(attempt)
                logger.warning(
                    "Retrying task=%s attempt=%d delay=%.2fs error=%s",
                    task_name,
                    attempt,
                    delay,
                    e,
                )
                await self._sleep(delay)
