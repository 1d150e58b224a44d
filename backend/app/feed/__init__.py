"""Simulated multicast price feed.

Public API:
    PriceSample          - Immutable price observation dataclass
    PriceGenerator       - Seedable uniform-noise price source
    PricePipeline        - Tick loop: filter, mark up, optional enrichment
    RetryPolicy          - Fixed-delay resubscription around a stream
    BroadcastHub         - Hot multicast of one producer to many subscribers
    SinglePriceAccessor  - One price per call, no ticking or sharing
    PriceFeed            - Abstract boundary consumed by the HTTP layer
    create_price_feed    - Factory that wires everything together
    create_stream_router - FastAPI router factory for the SSE and single-price endpoints
"""

from .errors import FeedError, RetryExhaustedError
from .factory import create_price_feed
from .generator import PriceGenerator
from .hub import BroadcastHub, Subscription
from .interface import PriceFeed
from .models import PriceSample
from .pipeline import Enricher, PricePipeline
from .retry import RetryPolicy
from .single import SinglePriceAccessor
from .stream import create_stream_router

__all__ = [
    "PriceSample",
    "PriceGenerator",
    "PricePipeline",
    "Enricher",
    "RetryPolicy",
    "BroadcastHub",
    "Subscription",
    "SinglePriceAccessor",
    "PriceFeed",
    "FeedError",
    "RetryExhaustedError",
    "create_price_feed",
    "create_stream_router",
]
