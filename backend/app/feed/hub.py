"""Hot multicast hub: one producer task shared by many subscribers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import aclosing
from threading import Lock

from .constants import SUBSCRIBER_QUEUE_SIZE
from .errors import FeedError
from .models import PriceSample

logger = logging.getLogger(__name__)

SourceFactory = Callable[[], AsyncGenerator[PriceSample, None]]


class _End:
    """Queue marker that terminates a subscription, optionally with an error."""

    __slots__ = ("error",)

    def __init__(self, error: BaseException | None = None) -> None:
        self.error = error


class Subscription:
    """One consumer's attachment to a BroadcastHub.

    Iterate it with `async for` to receive items published after attach.
    Iteration ends when the subscription is detached or the upstream
    completes, and raises FeedError (chained to the cause) if the upstream
    failed terminally.
    """

    def __init__(self, hub: BroadcastHub, maxsize: int) -> None:
        self._hub = hub
        self._queue: asyncio.Queue[PriceSample | _End] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.dropped = 0  # Items discarded because this consumer fell behind

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Detach from the hub. Safe to call more than once."""
        self._hub.detach(self)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> PriceSample:
        item = await self._queue.get()
        if isinstance(item, _End):
            # Re-queue so later calls keep reporting the end
            self._force_put(item)
            if item.error is not None:
                raise FeedError("upstream failed") from item.error
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    # --- Internal (called by the hub) ---

    def _offer(self, sample: PriceSample) -> None:
        if self._closed:
            return
        if self._force_put(sample):
            self.dropped += 1
            # Warn once per subscriber, then debug
            level = logging.WARNING if self.dropped == 1 else logging.DEBUG
            logger.log(level, "Subscriber queue full, dropped oldest item (%d total)", self.dropped)

    def _end(self, error: BaseException | None = None, *, discard: bool = False) -> None:
        """Mark the end of the stream. `discard` drops undelivered items first."""
        if self._closed:
            return
        self._closed = True
        if discard:
            while not self._queue.empty():
                self._queue.get_nowait()
        self._force_put(_End(error))

    def _force_put(self, item: PriceSample | _End) -> bool:
        """put_nowait, evicting the oldest entry if full. Returns True if one was evicted."""
        evicted = False
        if self._queue.full():
            self._queue.get_nowait()
            evicted = True
        self._queue.put_nowait(item)
        return evicted


class BroadcastHub:
    """Multiplex one running source to any number of subscribers.

    The source is started when the first subscriber attaches and cancelled
    when the last one detaches, so an idle hub does no generation work.
    Subscribers only see items published after they attach (no replay).
    Each subscriber has its own bounded queue; a slow consumer loses its
    oldest items instead of blocking delivery to the others.

    If the source fails, the error is logged, every current subscription
    ends with that error, and the hub returns to idle. The next attach()
    starts a fresh producer.

    attach() and detach() must be called from the event loop thread. The
    running/idle decision is made under a single lock.
    """

    def __init__(self, source: SourceFactory, queue_size: int = SUBSCRIBER_QUEUE_SIZE) -> None:
        if queue_size < 1:
            raise ValueError(f"queue_size must be >= 1, got {queue_size}")
        self._source = source
        self._queue_size = queue_size
        self._subscribers: list[Subscription] = []
        self._task: asyncio.Task | None = None
        self._generation = 0
        self._lock = Lock()

    @property
    def is_running(self) -> bool:
        return self._task is not None

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    @property
    def generation(self) -> int:
        """Number of producer executions started so far."""
        return self._generation

    def attach(self) -> Subscription:
        """Register a new subscriber, starting the producer if it is idle."""
        subscription = Subscription(self, self._queue_size)
        with self._lock:
            if self._task is None:
                # Registered only once the producer exists
                producer = self._run()
                try:
                    self._task = asyncio.create_task(
                        producer, name=f"price-hub-producer-{self._generation + 1}"
                    )
                except RuntimeError:
                    producer.close()
                    raise
                self._generation += 1
                logger.info("Price producer started (generation %d)", self._generation)
            self._subscribers.append(subscription)
            count = len(self._subscribers)
        logger.debug("Subscriber attached (%d active)", count)
        return subscription

    def detach(self, subscription: Subscription) -> None:
        """Remove a subscriber, stopping the producer if none remain."""
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)
            stopped = None
            if not self._subscribers and self._task is not None:
                stopped, self._task = self._task, None
            count = len(self._subscribers)
        subscription._end(discard=True)
        logger.debug("Subscriber detached (%d active)", count)
        if stopped is not None:
            stopped.cancel()
            logger.info("Price producer stopped: no subscribers")

    async def close(self) -> None:
        """Stop the producer and end all subscriptions. Safe to call multiple times."""
        with self._lock:
            task, self._task = self._task, None
            subscribers, self._subscribers = self._subscribers, []
        for subscription in subscribers:
            subscription._end(discard=True)
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Price hub closed")

    # --- Internal ---

    def _publish(self, sample: PriceSample) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription._offer(sample)

    async def _run(self) -> None:
        """Producer task: pump the source into every subscriber queue."""
        try:
            async with aclosing(self._source()) as samples:
                async for sample in samples:
                    self._publish(sample)
        except Exception as e:
            logger.error("Price producer failed: %s", e)
            self._finish(e)
        else:
            logger.info("Price producer completed")
            self._finish(None)

    def _finish(self, error: BaseException | None) -> None:
        with self._lock:
            if self._task is not asyncio.current_task():
                # Already detached or replaced by a newer producer
                return
            self._task = None
            subscribers, self._subscribers = self._subscribers, []
        for subscription in subscribers:
            subscription._end(error)
