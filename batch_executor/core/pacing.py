"""
Pacing controller

Splits the id list into fixed-size batches and provides the two delays that
keep a sequential run under a remote rate limit: a short one between items
and a longer cooldown between batches. Batch size never controls
parallelism; items are always processed one at a time.
"""
import asyncio
import math
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterator, List, Optional, Sequence


@dataclass(frozen=True)
class Batch:
    """A contiguous slice of the input ids"""

    index: int
    start: int
    ids: List[str]

    @property
    def end(self) -> int:
        return self.start + len(self.ids)


class PacingController:
    """Batch partitioning and inter-item/inter-batch delays"""

    def __init__(
        self,
        batch_size: int = 3,
        delay_between_items: float = 0.5,
        delay_between_batches: float = 2.0,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.batch_size = batch_size
        self.delay_between_items = delay_between_items
        self.delay_between_batches = delay_between_batches
        self._sleep = sleep or asyncio.sleep

    def total_batches(self, total: int) -> int:
        return math.ceil(total / self.batch_size)

    def batches(self, ids: Sequence[str]) -> Iterator[Batch]:
        """Yield the batches of `ids` in input order"""
        for index in range(self.total_batches(len(ids))):
            start = index * self.batch_size
            end = min(start + self.batch_size, len(ids))
            yield Batch(index=index, start=start, ids=list(ids[start:end]))

    async def pause_between_items(self, processed: int, total: int) -> None:
        """Wait after an item unless it was the last one overall"""
        if processed < total:
            await self._sleep(self.delay_between_items)

    async def pause_between_batches(self, batch: Batch, total: int) -> None:
        """Wait after a batch unless it was the last one"""
        if batch.index < self.total_batches(total) - 1:
            await self._sleep(self.delay_between_batches)
