"""Async utilities for running blocking rollout work concurrently."""

import asyncio
import concurrent.futures
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")


async def gather_with_concurrency(
    n: int,
    *coros: Awaitable[T],
) -> list[T]:
    """Run coroutines with limited concurrency.

    Args:
        n: Maximum number of concurrent coroutines
        *coros: Coroutines to run

    Returns:
        List of results in the same order as input
    """
    semaphore = asyncio.Semaphore(max(1, n))

    async def sem_coro(coro: Awaitable[T]) -> T:
        async with semaphore:
            return await coro

    return await asyncio.gather(*[sem_coro(coro) for coro in coros])


async def run_blocking(func: Callable[[], T]) -> T:
    """Run a blocking callable in the default thread pool."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


def run_sync(coro: Awaitable[T]) -> T:
    """Run an async function synchronously.

    This is useful for integrating async code with Click commands.

    Args:
        coro: Coroutine to run

    Returns:
        Result of the coroutine
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        # Already inside an event loop: run on a fresh loop in a worker thread
        with concurrent.futures.ThreadPoolExecutor() as pool:
            future = pool.submit(asyncio.run, coro)
            return future.result()
    else:
        return asyncio.run(coro)
