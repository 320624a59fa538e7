"""Fan-out helper for independent read-only sub-queries."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Sequence, TypeVar

from .cancellation import CancellationToken, check_cancelled

T = TypeVar("T")
R = TypeVar("R")


def run_queries(
    query: Callable[[T], R],
    items: Sequence[T],
    *,
    max_workers: int = 1,
    cancel: Optional[CancellationToken] = None,
    thread_name_prefix: str = "mediasim",
) -> list[R]:
    """Run `query` for every item, returning results in item order.

    Cancellation is checked before each sub-query is started and before each
    result is collected. Pending work is cancelled when one sub-query fails.
    """

    if max_workers <= 1 or len(items) <= 1:
        results: list[R] = []
        for item in items:
            check_cancelled(cancel)
            results.append(query(item))
        return results

    with ThreadPoolExecutor(
        max_workers=min(max_workers, len(items)),
        thread_name_prefix=thread_name_prefix,
    ) as pool:
        futures: list[Future[R]] = []
        try:
            for item in items:
                check_cancelled(cancel)
                futures.append(pool.submit(query, item))
            collected: list[R] = []
            for future in futures:
                check_cancelled(cancel)
                collected.append(future.result())
            return collected
        except BaseException:
            for future in futures:
                future.cancel()
            raise
