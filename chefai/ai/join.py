"""
Fan-out/fan-in for independent generations.

`join_all_or_nothing` runs two unrelated awaitables concurrently and returns
both results. If either fails, the join fails with that error and the other
branch is cancelled; a result that already succeeded is discarded.
"""
import asyncio
from typing import Awaitable, Tuple, TypeVar

A = TypeVar("A")
B = TypeVar("B")


async def join_all_or_nothing(first: Awaitable[A], second: Awaitable[B]) -> Tuple[A, B]:
    first_task = asyncio.ensure_future(first)
    second_task = asyncio.ensure_future(second)
    try:
        first_result, second_result = await asyncio.gather(first_task, second_task)
    except BaseException:
        for task in (first_task, second_task):
            if not task.done():
                task.cancel()
        await asyncio.gather(first_task, second_task, return_exceptions=True)
        raise
    return first_result, second_result
