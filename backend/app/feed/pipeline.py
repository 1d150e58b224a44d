"""Per-tick processing: filter, transform and optional async enrichment."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import aclosing

from .constants import (
    BATCH_SIZE,
    ENRICH_CONCURRENCY,
    ENRICH_DELAY,
    ENRICH_MARKUP,
    FEED_MARKUP,
    FEED_THRESHOLD,
    TICK_INTERVAL,
)
from .generator import PriceGenerator
from .models import PriceSample

logger = logging.getLogger(__name__)


def above_threshold(sample: PriceSample, threshold: float) -> bool:
    """Keep samples strictly above the threshold."""
    return sample.price > threshold


def mark_up(sample: PriceSample, amount: float) -> PriceSample:
    """New sample with `amount` added to the price. Timestamp is preserved."""
    return sample.with_price(sample.price + amount)


class Enricher:
    """Simulated external call that adjusts each sample's price.

    Each call waits `delay` seconds and returns a new sample with `markup`
    added and a fresh timestamp. At most `concurrency` calls are in flight
    at once.
    """

    def __init__(
        self,
        delay: float = ENRICH_DELAY,
        markup: float = ENRICH_MARKUP,
        concurrency: int = ENRICH_CONCURRENCY,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self._delay = delay
        self._markup = markup
        self._semaphore = asyncio.Semaphore(concurrency)

    async def enrich(self, sample: PriceSample) -> PriceSample:
        async with self._semaphore:
            await asyncio.sleep(self._delay)
            return sample.with_price(sample.price + self._markup, observed_at=time.time())


class PricePipeline:
    """Staged pipeline driven by a fixed-rate tick loop.

    Stages per tick:
        generate -> filter (price > threshold) -> mark up -> enrich (optional)

    Delivery order within a tick is the generation order when there is no
    enricher. With an enricher, items are yielded as their enrichment
    completes, so consumers must treat the order as unspecified.
    """

    def __init__(
        self,
        generator: PriceGenerator,
        threshold: float = FEED_THRESHOLD,
        markup: float = FEED_MARKUP,
        enricher: Enricher | None = None,
        batch_size: int = BATCH_SIZE,
        interval: float = TICK_INTERVAL,
    ) -> None:
        self._generator = generator
        self._threshold = threshold
        self._markup = markup
        self._enricher = enricher
        self._batch_size = batch_size
        self._interval = interval

    def process(self, batch: list[PriceSample]) -> list[PriceSample]:
        """Filter and transform one batch. Rejected samples are silently dropped."""
        return [mark_up(s, self._markup) for s in batch if above_threshold(s, self._threshold)]

    async def run_tick(self) -> AsyncIterator[PriceSample]:
        """Generate and process one batch, yielding delivered samples."""
        kept = self.process(self._generator.batch(self._batch_size))
        logger.debug("Tick kept %d/%d samples", len(kept), self._batch_size)

        if self._enricher is None:
            for sample in kept:
                yield sample
            return

        tasks = [asyncio.create_task(self._enricher.enrich(s)) for s in kept]
        try:
            for next_done in asyncio.as_completed(tasks):
                yield await next_done
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            # Collect every outcome so sibling failures are retrieved
            await asyncio.gather(*tasks, return_exceptions=True)

    async def stream(self) -> AsyncIterator[PriceSample]:
        """Infinite stream: first tick immediately, then one per interval."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            async with aclosing(self.run_tick()) as samples:
                async for sample in samples:
                    yield sample
            next_tick += self._interval
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
