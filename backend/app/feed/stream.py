"""HTTP endpoints for the price feed: SSE stream and single price."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

from .interface import PriceFeed

logger = logging.getLogger(__name__)


def create_stream_router(feed: PriceFeed) -> APIRouter:
    """Create the price router with a reference to the feed.

    This factory pattern lets us inject the PriceFeed without globals.
    """
    router = APIRouter(prefix="/api", tags=["prices"])

    @router.get("/stream/prices")
    async def stream_prices(request: Request) -> StreamingResponse:
        """SSE endpoint for live price samples.

        Each delivered sample becomes one event:

            data: {"symbol": "AAPL", "price": 152.31, "observed_at": 1707580800.12}

        Includes a retry directive so the browser auto-reconnects on
        disconnection (EventSource built-in behavior).
        """
        return StreamingResponse(
            _generate_events(feed, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    @router.get("/prices/single")
    def single_price() -> Response:
        """One price, or 204 No Content when the sample was filtered out."""
        sample = feed.get_single_price()
        if sample is None:
            return Response(status_code=204)
        return JSONResponse(sample.to_dict())

    return router


async def _generate_events(feed: PriceFeed, request: Request) -> AsyncGenerator[str, None]:
    """Async generator that yields one SSE event per price sample.

    Stops when the client disconnects (checked before each event) or when
    the feed ends its stream.
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    samples = feed.stream_prices()
    try:
        async for sample in samples:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break
            yield f"data: {json.dumps(sample.to_dict())}\n\n"
    finally:
        # Detach from the hub even when the response task is cancelled
        await samples.aclose()
        logger.info("SSE stream closed for: %s", client_ip)
