"""Batching utilities and run counters."""

import time
from typing import AsyncIterable, AsyncIterator, List, Optional, TypeVar

from ..logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


async def batched(items: AsyncIterable[T], size: int) -> AsyncIterator[List[T]]:
    """
    Group an async stream into lists of ``size`` items.

    The last list may be shorter; an empty stream yields nothing.
    """
    if size < 1:
        raise ValueError(f"Batch size must be at least 1, got {size}")

    batch: List[T] = []
    async for item in items:
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []

    if batch:
        yield batch


class RunCounters:
    """Track and report progress of an enrichment run."""

    def __init__(self, total_items: Optional[int] = None, report_every: int = 100):
        self.total_items = total_items
        self.report_every = report_every
        self.processed = 0
        self.succeeded = 0
        self.failed = 0
        self.batches = 0
        self.start_time = time.monotonic()

    def update(self, success: bool = True) -> None:
        """Update counters for one written outcome."""
        self.processed += 1
        if success:
            self.succeeded += 1
        else:
            self.failed += 1

        if self.processed % self.report_every == 0:
            self.report()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def report(self) -> None:
        """Report current progress."""
        elapsed = self.elapsed
        rate = self.processed / elapsed if elapsed > 0 else 0

        if self.total_items:
            progress_pct = (self.processed / self.total_items) * 100
            eta_seconds = (self.total_items - self.processed) / rate if rate > 0 else 0
            position = (
                f"{self.processed}/{self.total_items} ({progress_pct:.1f}%)"
            )
            eta = f" - ETA: {eta_seconds:.0f}s"
        else:
            position = str(self.processed)
            eta = ""

        logger.info(
            f"Progress: {position} - "
            f"OK: {self.succeeded}, Failed: {self.failed} - "
            f"Rate: {rate:.1f}/s{eta}"
        )

    def final_report(self) -> None:
        """Report final statistics."""
        elapsed = self.elapsed
        avg_rate = self.processed / elapsed if elapsed > 0 else 0

        logger.info(
            f"Completed: {self.processed} transactions in {self.batches} batches, "
            f"{elapsed:.1f}s (avg {avg_rate:.1f}/s) - "
            f"OK: {self.succeeded}, Failed: {self.failed}"
        )
