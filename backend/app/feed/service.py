"""PriceFeed implementation: hub-backed stream plus single-value accessor."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from .hub import BroadcastHub
from .interface import PriceFeed
from .models import PriceSample
from .single import SinglePriceAccessor

logger = logging.getLogger(__name__)


class PriceFeedService(PriceFeed):
    """Error boundary in front of the broadcast hub and the single accessor."""

    def __init__(self, hub: BroadcastHub, accessor: SinglePriceAccessor) -> None:
        self._hub = hub
        self._accessor = accessor

    @property
    def hub(self) -> BroadcastHub:
        return self._hub

    async def stream_prices(self) -> AsyncGenerator[PriceSample, None]:
        subscription = self._hub.attach()
        try:
            async for sample in subscription:
                yield sample
        except Exception as e:
            # Terminal upstream failure: end this stream cleanly
            logger.error("Price stream terminated: %s", e)
        finally:
            subscription.close()

    def get_single_price(self) -> PriceSample | None:
        try:
            return self._accessor.get()
        except Exception as e:
            logger.error("Single price failed: %s", e)
            return None

    async def close(self) -> None:
        await self._hub.close()
