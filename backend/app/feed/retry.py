"""Fixed-delay retry around a restartable async stream."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import aclosing
from dataclasses import dataclass
from typing import TypeVar

from .constants import MAX_RETRIES, RETRY_DELAY
from .errors import RetryExhaustedError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Resubscribe to a failing stream up to `max_retries` times.

    Every retry calls the stream factory again, so the whole upstream chain
    starts from scratch. Items yielded by a failed attempt have already been
    delivered and are not replayed or deduplicated. The budget counts every
    failure over the lifetime of one `stream()` call.

    Usage:
        policy = RetryPolicy(max_retries=3, delay=2.0)

        async for item in policy.stream(pipeline.stream):
            ...

        @policy
        async def prices():
            ...
    """

    max_retries: int = MAX_RETRIES
    delay: float = RETRY_DELAY

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.delay < 0:
            raise ValueError(f"delay must be >= 0, got {self.delay}")

    async def stream(
        self, factory: Callable[[], AsyncGenerator[T, None]]
    ) -> AsyncGenerator[T, None]:
        retries = 0
        while True:
            try:
                async with aclosing(factory()) as items:
                    async for item in items:
                        yield item
                return
            except Exception as e:
                if retries >= self.max_retries:
                    logger.error("Retries exhausted after %d attempts: %s", retries + 1, e)
                    raise RetryExhaustedError(retries + 1, e) from e
                retries += 1
                logger.warning(
                    "Stream failed (%s), retry %d/%d in %.1fs",
                    e,
                    retries,
                    self.max_retries,
                    self.delay,
                )
            await asyncio.sleep(self.delay)

    def __call__(
        self, func: Callable[..., AsyncGenerator[T, None]]
    ) -> Callable[..., AsyncGenerator[T, None]]:
        """Decorate an async generator function with this policy."""

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> AsyncGenerator[T, None]:
            return self.stream(lambda: func(*args, **kwargs))

        return wrapper
