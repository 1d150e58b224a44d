"""Fixed parameters of the simulated price feed."""

SYMBOL = "AAPL"

# Generator: price = BASELINE_PRICE + U[-PRICE_SPREAD, +PRICE_SPREAD)
BASELINE_PRICE = 150.0
PRICE_SPREAD = 5.0
# Simulated prices never go below this (only reachable if the baseline is lowered)
PRICE_FLOOR = 0.01

BATCH_SIZE = 5  # Samples per tick for the streaming feed
TICK_INTERVAL = 1.0  # Seconds between ticks

# Streaming feed: keep price > 148, then add 2
FEED_THRESHOLD = 148.0
FEED_MARKUP = 2.0

# Single-value accessor: add 5, then keep price > 150
SINGLE_THRESHOLD = 150.0
SINGLE_MARKUP = 5.0

# Data-augmentation variant: simulated external call per sample
ENRICH_DELAY = 0.5
ENRICH_MARKUP = 3.0
ENRICH_CONCURRENCY = BATCH_SIZE

# Retry policy around the whole generation chain
MAX_RETRIES = 3
RETRY_DELAY = 2.0

# Per-subscriber buffer before the oldest undelivered item is dropped
SUBSCRIBER_QUEUE_SIZE = 100
