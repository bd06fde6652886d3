"""
Tests for async_utils module.

Covers make_semaphore, run_sync_limited and gather_limited.
"""

import threading
import time

import pytest

from template_sync.core.async_utils import (
    gather_limited,
    make_semaphore,
    run_sync_limited,
)


def _sync_add(a: int, b: int) -> int:
    """Simple sync function for testing."""
    return a + b


def _sync_identity(x):
    """Return input unchanged."""
    return x


def test_make_semaphore_rejects_zero():
    """make_semaphore refuses a limit below one."""
    with pytest.raises(ValueError, match="max_parallel"):
        make_semaphore(0)


async def test_run_sync_limited_with_semaphore():
    """run_sync_limited runs the function under the given semaphore."""
    result = await run_sync_limited(make_semaphore(2), _sync_add, 10, 20)
    assert result == 30


async def test_run_sync_limited_without_semaphore():
    """run_sync_limited falls back to unbounded when semaphore is None."""
    result = await run_sync_limited(None, _sync_add, 5, 6)
    assert result == 11


async def test_gather_limited_keeps_input_order():
    """gather_limited runs multiple coroutines and returns results in order."""
    semaphore = make_semaphore(3)
    coros = [run_sync_limited(semaphore, _sync_identity, i) for i in range(5)]

    results = await gather_limited(coros)
    assert results == [0, 1, 2, 3, 4]


async def test_gather_limited_empty_list():
    """gather_limited handles empty coroutine list."""
    results = await gather_limited([])
    assert results == []


async def test_run_sync_limited_concurrency_bound():
    """run_sync_limited actually limits concurrency via semaphore."""
    semaphore = make_semaphore(2)
    max_concurrent = 0
    current_concurrent = 0
    lock = threading.Lock()

    def _track_concurrency(val):
        nonlocal max_concurrent, current_concurrent
        with lock:
            current_concurrent += 1
            max_concurrent = max(max_concurrent, current_concurrent)
        time.sleep(0.05)  # hold so others overlap
        with lock:
            current_concurrent -= 1
        return val

    coros = [run_sync_limited(semaphore, _track_concurrency, i) for i in range(6)]
    results = await gather_limited(coros)

    assert results == [0, 1, 2, 3, 4, 5]
    assert max_concurrent <= 2


async def test_separate_semaphores_do_not_share_state():
    """Two runs with their own semaphores are independent."""
    first = make_semaphore(1)
    second = make_semaphore(1)
    async with first:
        # would deadlock if the limit were shared
        result = await run_sync_limited(second, _sync_add, 1, 1)
    assert result == 2
