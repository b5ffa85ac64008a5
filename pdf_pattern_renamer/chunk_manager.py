"""Chunk manager for splitting batches into manageable processing units."""

from __future__ import annotations

from collections.abc import Iterator

from pdf_pattern_renamer.models import ItemRange


class ChunkManager:
    """Splits a batch of items into index-range chunks for sequential processing."""

    def iter_chunks(self, total_items: int, chunk_size: int) -> Iterator[ItemRange]:
        """Yield ItemRange objects covering all items of the batch.

        Each ItemRange has a start (inclusive) and end (exclusive) that together
        form a complete, non-overlapping partition of all items.

        Args:
            total_items: Number of items in the batch. Must be >= 0.
            chunk_size: Maximum number of items per chunk. Must be > 0.

        Yields:
            ItemRange objects covering items [0, total_items) in order.

        Raises:
            ValueError: If chunk_size is not a positive integer or
                total_items is negative.
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if total_items < 0:
            raise ValueError(f"total_items must be non-negative, got {total_items}")

        for start in range(0, total_items, chunk_size):
            end = min(start + chunk_size, total_items)
            yield ItemRange(start=start, end=end)
