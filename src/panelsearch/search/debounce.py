"""Debounce search-as-you-type input.

Only the last query of a rapid burst executes: each ``submit()`` within the
quiet period supersedes the pending one, whose future is cancelled.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from .engine import SearchResult

DEFAULT_DELAY = 0.15


class Searcher(Protocol):
    def search(self, query: str, max_results: int | None = None) -> list[SearchResult]: ...


class SearchDebouncer:
    """Run ``searcher.search`` once input has been quiet for ``delay`` seconds."""

    def __init__(self, searcher: Searcher, delay: float = DEFAULT_DELAY, max_results: int | None = None):
        self.searcher = searcher
        self.delay = delay
        self.max_results = max_results
        self._pending: tuple[asyncio.TimerHandle, asyncio.Future[list[SearchResult]]] | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def submit(self, query: str) -> asyncio.Future[list[SearchResult]]:
        """Schedule ``query``; returns a future resolving to its results.

        The future is cancelled if another query is submitted (or ``cancel()``
        is called) before the quiet period ends.
        """
        loop = asyncio.get_running_loop()
        self.cancel()
        future: asyncio.Future[list[SearchResult]] = loop.create_future()
        handle = loop.call_later(self.delay, self._fire, query, future)
        self._pending = (handle, future)
        return future

    def cancel(self) -> bool:
        """Cancel the pending query, if any. A search that already ran is unaffected."""
        if self._pending is None:
            return False
        handle, future = self._pending
        self._pending = None
        handle.cancel()
        future.cancel()
        return True

    def _fire(self, query: str, future: asyncio.Future[list[SearchResult]]) -> None:
        if self._pending is not None and self._pending[1] is future:
            self._pending = None
        if future.done():
            return
        try:
            results = self.searcher.search(query, self.max_results)
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(results)
