"""Random price generator for the simulated feed."""

from __future__ import annotations

import logging
import time

import numpy as np

from .constants import BASELINE_PRICE, BATCH_SIZE, PRICE_FLOOR, PRICE_SPREAD, SYMBOL
from .models import PriceSample

logger = logging.getLogger(__name__)


class PriceGenerator:
    """Uniform noise around a fixed baseline for a single symbol.

    Math:
        price = baseline + U

    Where U is drawn uniformly from [-spread, +spread). Draws are independent
    across samples and ticks; there is no random walk or drift. Pass `seed`
    to get a reproducible sequence (tests rely on this).
    """

    def __init__(
        self,
        symbol: str = SYMBOL,
        baseline: float = BASELINE_PRICE,
        spread: float = PRICE_SPREAD,
        seed: int | None = None,
    ) -> None:
        if not symbol:
            raise ValueError("symbol must be a non-empty string")
        if spread < 0:
            raise ValueError(f"spread must be >= 0, got {spread}")
        self._symbol = symbol
        self._baseline = baseline
        self._spread = spread
        self._rng = np.random.default_rng(seed)

    @property
    def symbol(self) -> str:
        return self._symbol

    def batch(self, size: int = BATCH_SIZE) -> list[PriceSample]:
        """Produce `size` samples in enumeration order. Never raises for size >= 0."""
        if size <= 0:
            return []

        offsets = self._rng.uniform(-self._spread, self._spread, size=size)
        samples = []
        for offset in offsets:
            # Clamp so a lowered baseline can't produce negative prices
            price = max(self._baseline + float(offset), PRICE_FLOOR)
            samples.append(PriceSample(symbol=self._symbol, price=price, observed_at=time.time()))
        logger.debug("Generated %d %s samples", size, self._symbol)
        return samples

    def sample(self) -> PriceSample:
        """Produce a single sample."""
        return self.batch(1)[0]
