"""Bounded pool for request handling and background task work."""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import anyio
from anyio.abc import TaskGroup

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_WORKERS = 32


class WorkerPool:
    """Runs coroutines with at most `max_workers` of them active at once.

    Callers beyond the limit wait in the limiter's queue, which has no bound: work is
    delayed, never rejected. Jobs started with `spawn` share the task group but not
    the limit.
    """

    def __init__(self, task_group: TaskGroup, max_workers: int = DEFAULT_MAX_WORKERS) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.task_group = task_group
        self._limiter = anyio.CapacityLimiter(max_workers)

    @property
    def max_workers(self) -> int:
        return int(self._limiter.total_tokens)

    @property
    def active(self) -> int:
        return self._limiter.borrowed_tokens

    @property
    def waiting(self) -> int:
        return self._limiter.statistics().tasks_waiting

    async def run(self, fn: Callable[..., Awaitable[T]], *args: Any) -> T:
        """Run `fn` on the pool and wait for its result. Exceptions reach the caller."""
        async with self._limiter:
            return await fn(*args)

    def submit(self, fn: Callable[..., Awaitable[Any]], *args: Any, name: str | None = None) -> None:
        """Schedule `fn` in the background. Failures are logged, never propagated."""
        self.task_group.start_soon(self._run_background, fn, args, name=name)

    def spawn(self, fn: Callable[..., Awaitable[Any]], *args: Any, name: str | None = None) -> None:
        """Schedule `fn` in the pool's task group without taking a worker slot.

        Used for jobs that spend their life waiting on a consumer, such as stream
        pumps.
        """
        self.task_group.start_soon(self._run_unbounded, fn, args, name=name)

    async def _run_background(self, fn: Callable[..., Awaitable[Any]], args: tuple[Any, ...]) -> None:
        async with self._limiter:
            await self._run_unbounded(fn, args)

    async def _run_unbounded(self, fn: Callable[..., Awaitable[Any]], args: tuple[Any, ...]) -> None:
        try:
            await fn(*args)
        except Exception:
            logger.exception("Background job %s failed", getattr(fn, "__qualname__", fn))


@asynccontextmanager
async def open_worker_pool(max_workers: int = DEFAULT_MAX_WORKERS) -> AsyncIterator[WorkerPool]:
    """Open a pool whose background jobs are cancelled when the context exits."""
    async with anyio.create_task_group() as tg:
        yield WorkerPool(tg, max_workers)
        tg.cancel_scope.cancel()
