"""
Request deadline shared by every I/O call of a retrieval attempt.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")


class Deadline:
    """
    Absolute deadline computed from a timeout.

    Example:
        deadline = Deadline(10.0)
        vector = await deadline.run(client.embed(message))
        rows = await graph.query(cypher, params, timeout=deadline.remaining())
    """

    def __init__(
        self,
        timeout_seconds: Optional[float],
        clock: Callable[[], float] = time.monotonic
    ):
        self._clock = clock
        self.timeout_seconds = timeout_seconds
        self._expires_at = None if timeout_seconds is None else clock() + timeout_seconds

    def remaining(self) -> Optional[float]:
        """Seconds left, ``None`` when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` within the remaining time.

        Raises:
            asyncio.TimeoutError: If the deadline has passed or passes meanwhile
        """
        remaining = self.remaining()
        if remaining is None:
            return await awaitable
        if remaining <= 0:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise asyncio.TimeoutError("Deadline exceeded")
        return await asyncio.wait_for(awaitable, timeout=remaining)
