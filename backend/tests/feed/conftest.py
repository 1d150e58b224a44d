"""Fixtures for price feed tests.

Provides a controllable hub source, a fixed-price generator and a stub
PriceFeed so tests don't depend on random prices or real tick timing.
"""

import asyncio

import pytest

from app.feed.interface import PriceFeed
from app.feed.models import PriceSample


def _sample(price: float, symbol: str = "AAPL") -> PriceSample:
    return PriceSample(symbol=symbol, price=price, observed_at=1707580800.0)


class QueueSource:
    """Hub source fed by the test.

    Push PriceSamples to publish them, an Exception to fail the producer,
    or None to complete it. `starts` counts producer executions.
    """

    def __init__(self) -> None:
        self.queue: asyncio.Queue = asyncio.Queue()
        self.starts = 0

    def push(self, *items) -> None:
        for item in items:
            self.queue.put_nowait(item)

    def __call__(self):
        return self._iterate()

    async def _iterate(self):
        self.starts += 1
        while True:
            item = await self.queue.get()
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item


class FixedGenerator:
    """Stands in for PriceGenerator with a fixed price list per batch."""

    def __init__(self, prices: list[float]) -> None:
        self.prices = list(prices)
        self.batches = 0

    def batch(self, size: int = 5) -> list[PriceSample]:
        self.batches += 1
        return [_sample(p) for p in self.prices[:size]]

    def sample(self) -> PriceSample:
        return self.batch(1)[0]


class StubFeed(PriceFeed):
    """PriceFeed returning canned values, recording lifecycle calls."""

    def __init__(self, samples=(), single=None) -> None:
        self.samples = list(samples)
        self.single = single
        self.streams_closed = 0
        self.closed = False

    async def stream_prices(self):
        try:
            for sample in self.samples:
                yield sample
        finally:
            self.streams_closed += 1

    def get_single_price(self):
        return self.single

    async def close(self) -> None:
        self.closed = True


async def _take(subscription, n: int, timeout: float = 1.0) -> list:
    return [await asyncio.wait_for(anext(subscription), timeout) for _ in range(n)]


@pytest.fixture
def make_sample():
    return _sample


@pytest.fixture
def queue_source():
    return QueueSource()


@pytest.fixture
def fixed_generator():
    return FixedGenerator


@pytest.fixture
def stub_feed():
    return StubFeed


@pytest.fixture
def take():
    """Await the next `n` items from an async iterator, with a timeout."""
    return _take
