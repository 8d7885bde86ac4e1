"""Order-preserving bounded parallel map over a thread pool.

Used by the importer to stage rows concurrently while still reporting them in
file order. ``concurrency=1`` runs inline on the calling thread, which keeps
single-connection stores (and tracebacks) simple.

Mapper errors are not collected: the first one cancels work that has not
started and propagates. Callers that want per-item failures return them as
values instead (the importer does).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    thread_name_prefix: str = "ledger-import",
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with at most ``concurrency`` calls in flight.

    The result list is aligned with the input order.
    """

    if not isinstance(concurrency, int) or isinstance(concurrency, bool) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    items = list(iterable)
    if concurrency == 1 or len(items) <= 1:
        return [mapper(item) for item in items]

    results: list[OutT | None] = [None] * len(items)
    pending = iter(enumerate(items))
    in_flight: dict[Future[OutT], int] = {}

    with ThreadPoolExecutor(
        max_workers=min(concurrency, len(items)), thread_name_prefix=thread_name_prefix
    ) as pool:

        def _top_up() -> None:
            while len(in_flight) < concurrency:
                try:
                    idx, item = next(pending)
                except StopIteration:
                    return
                in_flight[pool.submit(mapper, item)] = idx

        _top_up()
        while in_flight:
            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = in_flight.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception:
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise
            _top_up()

    return results  # type: ignore[return-value]


__all__ = ["p_map"]
