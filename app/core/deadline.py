"""
Request-scoped deadline for fan-out calls.

One `Deadline` is created per incoming request and handed to every component,
so a slow calendar or places lookup cannot hold the whole pipeline.
"""

import asyncio
import time
from collections.abc import Awaitable
from typing import Any

from app.core.errors import DeadlineExceededError


class Deadline:
    """Absolute monotonic deadline shared across pipeline stages."""

    def __init__(self, seconds: float | None):
        self.seconds = seconds
        self._expires_at = time.monotonic() + seconds if seconds is not None else None

    @classmethod
    def unbounded(cls) -> "Deadline":
        return cls(None)

    def remaining(self) -> float | None:
        """Seconds left, or None when the deadline is unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    async def run(self, awaitable: Awaitable[Any], stage: str) -> Any:
        """Await a single call, raising DeadlineExceededError when time runs out."""
        if self.expired():
            _discard(awaitable)
            raise _exceeded_before(stage)
        try:
            async with asyncio.timeout(self.remaining()):
                return await awaitable
        except TimeoutError as e:
            raise DeadlineExceededError(
                f"Deadline exceeded during {stage}", details={"stage": stage}
            ) from e

    async def gather(self, *awaitables: Awaitable[Any], stage: str) -> list[Any]:
        """
        Fan out and join under the deadline.

        Exceptions raised by individual calls are returned in place of their
        results so callers can isolate per-item failures. Outstanding calls are
        cancelled if the deadline fires.
        """
        if self.expired():
            for awaitable in awaitables:
                _discard(awaitable)
            raise _exceeded_before(stage)
        return await self.run(asyncio.gather(*awaitables, return_exceptions=True), stage)


def _exceeded_before(stage: str) -> DeadlineExceededError:
    return DeadlineExceededError(f"Deadline exceeded before {stage}", details={"stage": stage})


def _discard(awaitable: Awaitable[Any]) -> None:
    # Never-started coroutines must be closed, scheduled work cancelled
    if asyncio.iscoroutine(awaitable):
        awaitable.close()
    elif isinstance(awaitable, asyncio.Future):
        awaitable.cancel()
