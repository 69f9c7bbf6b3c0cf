"""Bounded-concurrency helpers for remote provider calls.

:func:`throttled_gather` is a drop-in replacement for ``asyncio.gather``
that wraps each awaitable in a semaphore acquire/release, so no more than
the semaphore's capacity run at once.  The embedding scheduler uses it to
keep outstanding embedding calls at or below the configured batch size.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore,
    return_exceptions: bool = False,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``semaphore`` capacity at a time.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Semaphore bounding how many awaitables execute simultaneously.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than raised.  Mirrors ``asyncio.gather`` semantics.  When ``False``
        the first failure propagates and the remaining tasks are cancelled.

    Returns
    -------
    list
        Results in the same order as the input coroutines.
    """

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [asyncio.ensure_future(_wrapped(c)) for c in coros]
    try:
        return await asyncio.gather(*tasks, return_exceptions=return_exceptions)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        # Let cancelled tasks unwind before the caller sees the error.
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
