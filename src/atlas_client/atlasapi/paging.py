"""Pagination over list endpoints.

Follows the ``next`` link of each page until the upstream reports no more
pages, and flattens the results into one sequence. A failing page fails the
whole walk; no partial result is handed back by :meth:`PaginationDriver.drive`.
"""

import time
from collections.abc import Callable, Iterator
from typing import Any, Generic, TypeAlias, TypeVar

import structlog

from .errors import MalformedResponse, TransportFailure
from .request import Request
from .types import Page

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Receives the request and the seconds left before the deadline, if any.
PageFetcher: TypeAlias = Callable[[Request, float | None], Page[Any]]


class Paged(Generic[T]):
    """Finite, one-shot sequence of the items of every page.

    Iterating consumes it. ``len()`` reports the total number of items and
    ``pages`` the number of pages that were fetched.
    """

    def __init__(self, items: list[T], pages: int):
        self._items = items
        self._iter = iter(items)
        self.pages = pages

    def __iter__(self) -> Iterator[T]:
        return self

    def __next__(self) -> T:
        return next(self._iter)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Paged(items={len(self._items)}, pages={self.pages})"


class PaginationDriver(Generic[T]):
    """Walks every page of a list request.

    The fetch function is injected so that the driver knows nothing about
    HTTP: it receives a request and returns the decoded page.
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        deadline: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the driver.

        Args:
            fetch_page: Function dispatching one request and decoding its page.
                It is given the time left before the deadline so that a
                single exchange cannot outlast the walk.
            deadline: Seconds allowed for the whole walk, None for no limit.
            clock: Monotonic clock, replaceable in tests.
        """
        self._fetch_page = fetch_page
        self._deadline = deadline
        self._clock = clock

    def pages(self, first: Request) -> Iterator[Page[T]]:
        """Yield each page, requesting the next one only when needed.

        Raises:
            MalformedResponse: If a ``next`` link carries no cursor.
            TransportFailure: If the deadline expires before the walk ends.
        """
        started = self._clock()
        request = first
        count = 0
        while True:
            remaining = self._remaining(started, count, first)
            page = self._fetch_page(request, remaining)
            count += 1
            self._remaining(started, count, first)
            yield page

            try:
                cursor = page.next_cursor()
            except ValueError as exc:
                raise MalformedResponse(
                    str(exc),
                    payload=(page.next or "").encode(),
                    **first.context,
                ) from exc
            if cursor is None:
                logger.debug("Pagination complete", pages=count)
                return
            request = request.with_cursor(*cursor)

    def _remaining(self, started: float, count: int, first: Request) -> float | None:
        """Seconds left before the deadline, None without one.

        Raises:
            TransportFailure: If the deadline has passed.
        """
        if self._deadline is None:
            return None
        elapsed = self._clock() - started
        if elapsed >= self._deadline:
            logger.error(
                "Pagination deadline exceeded",
                pages=count,
                elapsed_seconds=round(elapsed, 3),
            )
            msg = f"Pagination deadline of {self._deadline}s exceeded"
            raise TransportFailure(msg, **first.context)
        return self._deadline - elapsed

    def walk(self, first: Request) -> Iterator[T]:
        """Yield items page after page as they arrive."""
        for page in self.pages(first):
            yield from page.results

    def drive(self, first: Request) -> Paged[T]:
        """Fetch every page and return all items at once.

        Any failure aborts the walk and propagates; the items gathered so
        far are discarded.
        """
        items: list[T] = []
        count = 0
        for page in self.pages(first):
            items.extend(page.results)
            count += 1
        return Paged(items, count)
