from __future__ import annotations

import asyncio
import contextvars
from collections.abc import Coroutine
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:  # noqa: UP047
    """Drive a coroutine to completion from synchronous (WSGI) code.

    Flask request threads have no running loop, so this is a plain
    ``asyncio.run``. When a loop is already running in the calling thread
    the coroutine gets its own loop in a helper thread. The caller's context
    variables (correlation id) are carried over either way.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    ctx = contextvars.copy_context()
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="run_async") as pool:
        return pool.submit(ctx.run, asyncio.run, coro).result()


__all__ = ["run_async"]
