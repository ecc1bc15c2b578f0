"""Fixed-size batch execution with a pause between batches."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from catalog_crawler.models import BatchOutcome, BatchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive groups of at most ``size``."""
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchRunner:
    """Run a worker over items in fixed-size groups.

    Items inside a group run concurrently; groups run one after another with
    ``inter_batch_delay_seconds`` between them (never after the last one).
    A worker that raises or returns a falsy value produces a failure outcome
    for its item; the other items in the group are unaffected.
    """

    def __init__(
        self,
        inter_batch_delay_seconds: float = 90.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.inter_batch_delay_seconds = inter_batch_delay_seconds
        self._sleep = sleep

    async def run(
        self,
        items: Sequence[T],
        batch_size: int,
        worker: Callable[[T], Awaitable[R | None]],
        label: str = "items",
        delay_seconds: float | None = None,
    ) -> BatchResult[R]:
        """Run ``worker`` over ``items``; ``delay_seconds`` overrides the default pause."""
        delay = self.inter_batch_delay_seconds if delay_seconds is None else delay_seconds
        result: BatchResult[R] = BatchResult()
        batches = chunked(items, batch_size)

        for index, batch in enumerate(batches, start=1):
            logger.info(
                "Processing batch %d/%d of %s (%d items)", index, len(batches), label, len(batch)
            )
            values = await asyncio.gather(
                *(worker(item) for item in batch), return_exceptions=True
            )
            for item, value in zip(batch, values):
                result.outcomes.append(self._outcome(item, value))

            if index < len(batches) and delay > 0:
                logger.info("Waiting %.0fs before next batch of %s", delay, label)
                await self._sleep(delay)

        logger.info(
            "Finished %s: %d succeeded, %d failed",
            label, len(result.successes), len(result.failures),
        )
        return result

    @staticmethod
    def _outcome(item: Any, value: Any) -> BatchOutcome:
        if isinstance(value, asyncio.CancelledError):
            raise value
        if isinstance(value, BaseException):
            logger.warning("Batch item failed: %s", value)
            return BatchOutcome(
                success=False,
                item=item,
                error=str(value) or type(value).__name__,
                details=getattr(value, "payload", None),
            )
        if not value:
            return BatchOutcome(success=False, item=item, error="No result")
        return BatchOutcome(success=True, item=item, value=value)
