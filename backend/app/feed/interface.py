"""Abstract boundary between the price feed and its transport layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator

from .models import PriceSample


class PriceFeed(ABC):
    """Contract consumed by the HTTP layer.

    Neither entry point raises for internal failures: errors are logged and
    turned into an early, empty completion.

    Lifecycle:
        feed = create_price_feed()
        async for sample in feed.stream_prices():   # one per client
            ...
        feed.get_single_price()
        # ... app shutting down ...
        await feed.close()
    """

    @abstractmethod
    def stream_prices(self) -> AsyncGenerator[PriceSample, None]:
        """Infinite stream of live samples for one subscriber.

        Each call attaches an independent subscription to the shared
        producer. Only samples produced after the call are delivered.
        Exiting the iteration (or closing the generator) detaches.
        """

    @abstractmethod
    def get_single_price(self) -> PriceSample | None:
        """One freshly computed sample, or None when it is filtered out."""

    @abstractmethod
    async def close(self) -> None:
        """Stop any running producer. Safe to call multiple times."""
