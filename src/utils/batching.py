# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bounded-concurrency helpers for batch operations.

Batch operations process their items in fixed-size chunks, with a cap
on how many items of a chunk run at once, so a large batch never fans
out past the database connection pool.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


def chunked(items: Sequence[T], size: int) -> list[Sequence[T]]:
    """Split a sequence into consecutive chunks of at most ``size`` items."""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [items[start : start + size] for start in range(0, len(items), size)]


async def run_in_chunks(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    chunk_size: int,
    concurrency: int,
) -> list[R]:
    """Run ``worker`` over every item, chunk by chunk.

    Each chunk completes before the next one starts. Results are
    returned in item order. Exceptions raised by ``worker`` propagate,
    so workers are expected to capture per-item failures themselves.

    Args:
        items: Items to process.
        worker: Coroutine function applied to each item.
        chunk_size: Items per chunk.
        concurrency: Maximum items in flight within a chunk.

    Returns:
        Worker results in item order.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def guarded(item: T) -> R:
        async with semaphore:
            return await worker(item)

    results: list[R] = []
    for chunk in chunked(items, chunk_size):
        results.extend(await asyncio.gather(*(guarded(item) for item in chunk)))
    return results
