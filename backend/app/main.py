"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .feed import create_price_feed, create_stream_router
from .feed.interface import PriceFeed

logger = logging.getLogger(__name__)


def create_app(feed: PriceFeed | None = None) -> FastAPI:
    """Build the app. The feed is created from the environment unless given."""
    feed = feed or create_price_feed()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Price feed app starting")
        yield
        await feed.close()

    app = FastAPI(title="Price Feed", lifespan=lifespan)
    app.include_router(create_stream_router(feed))
    return app


def main() -> None:
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
