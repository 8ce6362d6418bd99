"""
Contains a helper to resolve awaitables from the synchronous evaluation path
"""
import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Awaitable, TypeVar

ResultT = TypeVar("ResultT")


async def _await(awaitable: Awaitable[ResultT]) -> ResultT:
    return await awaitable


def run_blocking(awaitable: Awaitable[ResultT]) -> ResultT:
    """
    Blocks until `awaitable` is resolved and returns its result. This is used by the synchronous entry point whenever
    it encounters an asynchronous condition or check.
    If the calling thread already runs an event loop, the awaitable is executed on a worker thread with its own loop
    because the running loop cannot be re-entered.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(_await(awaitable))
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="fluentrules-blocking") as executor:
        result: Any = executor.submit(asyncio.run, _await(awaitable)).result()
    return result
