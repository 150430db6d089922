# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for chunked batch execution."""

import asyncio

import pytest

from src.utils.batching import chunked, run_in_chunks


class TestChunked:
    """Tests for chunked."""

    def test_splits_with_remainder(self) -> None:
        """Test the last chunk holds the remainder."""
        assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_empty(self) -> None:
        """Test an empty sequence gives no chunks."""
        assert chunked([], 10) == []

    def test_invalid_size(self) -> None:
        """Test a chunk size below one is refused."""
        with pytest.raises(ValueError):
            chunked([1], 0)


class TestRunInChunks:
    """Tests for run_in_chunks."""

    @pytest.mark.asyncio
    async def test_results_keep_item_order(self) -> None:
        """Test results come back in item order despite uneven latency."""

        async def worker(item: int) -> int:
            await asyncio.sleep(0.001 * (10 - item))
            return item * 2

        results = await run_in_chunks(list(range(10)), worker, chunk_size=4, concurrency=3)

        assert results == [n * 2 for n in range(10)]

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self) -> None:
        """Test no more than ``concurrency`` workers run at once."""
        running = 0
        peak = 0

        async def worker(item: int) -> None:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.001)
            running -= 1

        await run_in_chunks(list(range(20)), worker, chunk_size=10, concurrency=2)

        assert peak == 2

    @pytest.mark.asyncio
    async def test_worker_errors_propagate(self) -> None:
        """Test an exception escaping a worker is raised to the caller."""

        async def worker(item: int) -> int:
            if item == 3:
                raise RuntimeError("boom")
            return item

        with pytest.raises(RuntimeError):
            await run_in_chunks([1, 2, 3], worker, chunk_size=5, concurrency=2)
