"""Bounded async fan-out used for one build wave at a time."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Sequence

T = TypeVar("T")
R = TypeVar("R")


class BoundedSemaphore:
    """``asyncio.Semaphore`` that also reports how many permits are, and were, held."""

    def __init__(self, limit: int) -> None:
        if limit <= 0:
            raise ValueError("limit must be > 0")
        self.limit = limit
        self.in_use = 0
        self.peak = 0
        self._permits = asyncio.Semaphore(limit)

    @property
    def available(self) -> int:
        return self.limit - self.in_use

    async def acquire(self) -> None:
        await self._permits.acquire()
        self.in_use += 1
        if self.in_use > self.peak:
            self.peak = self.in_use

    def release(self) -> None:
        if not self.in_use:
            raise RuntimeError("release called more times than acquire")
        self.in_use -= 1
        self._permits.release()

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    def snapshot(self) -> dict[str, int]:
        return {
            "limit": self.limit,
            "in_use": self.in_use,
            "available": self.available,
            "peak": self.peak,
        }


class WorkerPool(Generic[T, R]):
    """Runs an async function over a batch with at most ``max_concurrency`` in flight.

    ``map`` returns once the whole batch is done, so awaiting it wave by wave
    gives a hard barrier between waves.
    """

    def __init__(self, max_concurrency: int) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")
        self.max_concurrency = max_concurrency
        self.semaphore = BoundedSemaphore(max_concurrency)

    async def map(self, items: Sequence[T], fn: Callable[[T], Awaitable[R]]) -> list[R]:
        """Results in input order. The first exception cancels the rest and propagates."""

        async def run(item: T) -> R:
            async with self.semaphore.permit():
                return await fn(item)

        tasks = [asyncio.create_task(run(item)) for item in items]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise


__all__ = ["BoundedSemaphore", "WorkerPool"]
