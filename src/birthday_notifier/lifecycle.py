"""Cancellation helpers shared by the background loops."""

import asyncio
from collections.abc import Awaitable
from contextlib import suppress
from typing import TypeVar

T = TypeVar("T")


async def run_until_stopped(
    awaitable: Awaitable[T], stop: asyncio.Event
) -> tuple[bool, T | None]:
    """Await `awaitable` unless `stop` fires first.

    Returns ``(True, result)`` when the awaitable finished and
    ``(False, None)`` when the stop signal won; in that case the awaitable is
    cancelled and awaited before returning.
    """
    task = asyncio.ensure_future(awaitable)
    stopper = asyncio.ensure_future(stop.wait())
    try:
        done, _ = await asyncio.wait(
            {task, stopper}, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        stopper.cancel()
    if task in done:
        return True, task.result()
    task.cancel()
    with suppress(asyncio.CancelledError):
        await task
    return False, None
