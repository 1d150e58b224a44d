"""Factory for assembling the price feed."""

from __future__ import annotations

import logging
import os

from .generator import PriceGenerator
from .hub import BroadcastHub
from .pipeline import Enricher, PricePipeline
from .retry import RetryPolicy
from .service import PriceFeedService
from .single import SinglePriceAccessor

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def _env_seed() -> int | None:
    raw = os.environ.get("PRICE_FEED_SEED", "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer PRICE_FEED_SEED=%r", raw)
        return None


def create_price_feed(
    *,
    enrichment: bool | None = None,
    seed: int | None = None,
    retry_policy: RetryPolicy | None = None,
) -> PriceFeedService:
    """Build the feed from environment variables, overridable by arguments.

    - PRICE_FEED_ENRICHMENT truthy → data-augmentation variant (async enrichment)
    - PRICE_FEED_SEED set → deterministic prices

    Returns an idle feed. The producer starts with the first stream subscriber.
    """
    if enrichment is None:
        enrichment = os.environ.get("PRICE_FEED_ENRICHMENT", "").strip().lower() in _TRUTHY
    if seed is None:
        seed = _env_seed()
    policy = retry_policy or RetryPolicy()

    pipeline = PricePipeline(
        generator=PriceGenerator(seed=seed),
        enricher=Enricher() if enrichment else None,
    )
    hub = BroadcastHub(lambda: policy.stream(pipeline.stream))
    # Independent generator so single-value calls don't perturb the stream
    accessor = SinglePriceAccessor(PriceGenerator(seed=seed))

    logger.info(
        "Price feed: %s variant, %d retries every %.1fs",
        "enriched" if enrichment else "plain",
        policy.max_retries,
        policy.delay,
    )
    return PriceFeedService(hub=hub, accessor=accessor)
