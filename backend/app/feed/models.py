"""Data models for the price feed."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field, replace


@dataclass(frozen=True, slots=True)
class PriceSample:
    """Immutable price observation for a single symbol."""

    symbol: str
    price: float
    observed_at: float = field(default_factory=time.time)  # Unix seconds

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ValueError("symbol must be a non-empty string")
        if not math.isfinite(self.price):
            raise ValueError(f"price must be finite, got {self.price!r}")

    def with_price(self, price: float, observed_at: float | None = None) -> PriceSample:
        """Return a copy with a new price (and optionally a new timestamp)."""
        if observed_at is None:
            return replace(self, price=price)
        return replace(self, price=price, observed_at=observed_at)

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "symbol": self.symbol,
            "price": round(self.price, 4),
            "observed_at": self.observed_at,
        }
