"""Async utilities: single-flight coalescing and running coroutines from sync code."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Generic, TypeVar

T = TypeVar("T")


def run_async_safely(coro):
    """
    Run an async coroutine from a sync context.

    If no event loop is running, uses asyncio.run() directly.
    If one is already running (e.g. inside Jupyter), dispatches
    to a thread pool to avoid "cannot run nested event loop" errors.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        with ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(asyncio.run, coro)
            return future.result()
    else:
        return asyncio.run(coro)


class SingleFlight(Generic[T]):
    """Share one in-flight operation among overlapping callers.

    The first call to ``run()`` starts the operation as a task; every call
    made before that task finishes awaits the same task. Once it completes
    (successfully or not) the slot is freed, so a later call starts a new
    operation. Callers are shielded from each other: cancelling one waiting
    caller does not cancel the shared task.

    Usage::

        flight = SingleFlight()
        results = await asyncio.gather(flight.run(fetch), flight.run(fetch))
        # fetch() ran once
    """

    def __init__(self) -> None:
        self._task: asyncio.Task[T] | None = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._task
        if task is None or task.done():
            task = asyncio.ensure_future(factory())
            self._task = task
            task.add_done_callback(self._release)
        return await asyncio.shield(task)

    def forget(self) -> None:
        """Detach the current task so the next ``run()`` starts fresh.

        Callers already awaiting the detached task still receive its result.
        """
        self._task = None

    def _release(self, task: asyncio.Task[T]) -> None:
        if self._task is task:
            self._task = None
