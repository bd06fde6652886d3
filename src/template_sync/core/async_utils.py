"""Async utilities for running blocking filesystem/HTTP work concurrently."""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Sequence, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)


def make_semaphore(max_parallel: int) -> asyncio.Semaphore:
    """Create a concurrency semaphore for one bulk run."""
    if max_parallel < 1:
        raise ValueError(f"max_parallel must be >= 1, got {max_parallel}")
    logger.debug("Worker semaphore created: max_parallel=%d", max_parallel)
    return asyncio.Semaphore(max_parallel)


async def run_sync_limited(
    semaphore: asyncio.Semaphore | None,
    func: Callable[..., T],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Run a synchronous function in a thread pool, bounded by *semaphore*.

    Runs unbounded when *semaphore* is ``None``.

    Args:
        semaphore: Limit shared by the coroutines of one run
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)
    """
    if semaphore is None:
        return await asyncio.to_thread(func, *args, **kwargs)
    async with semaphore:
        return await asyncio.to_thread(func, *args, **kwargs)


async def gather_limited(
    coros: Sequence[Coroutine[Any, Any, T]],
) -> list[T]:
    """Run coroutines concurrently and return results in input order.

    Each coroutine should use run_sync_limited internally.
    Exceptions propagate from the first failure.
    """
    return list(await asyncio.gather(*coros))
