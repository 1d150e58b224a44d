"""On-demand single price, outside the tick loop and the hub."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .constants import SINGLE_MARKUP, SINGLE_THRESHOLD
from .generator import PriceGenerator
from .models import PriceSample
from .pipeline import above_threshold, mark_up

logger = logging.getLogger(__name__)

CompletionHook = Callable[[PriceSample | None], None]


def _log_completion(result: PriceSample | None) -> None:
    logger.debug("Single price computed: %s", result.price if result else "empty")


class SinglePriceAccessor:
    """Produce one price per call: raw -> raw + markup -> keep if > threshold.

    No ticking, sharing or retry. `on_complete` runs after every call,
    including empty results and failures (with None).
    """

    def __init__(
        self,
        generator: PriceGenerator,
        threshold: float = SINGLE_THRESHOLD,
        markup: float = SINGLE_MARKUP,
        on_complete: CompletionHook | None = None,
    ) -> None:
        self._generator = generator
        self._threshold = threshold
        self._markup = markup
        self._on_complete = on_complete or _log_completion

    def get(self) -> PriceSample | None:
        result = None
        try:
            candidate = mark_up(self._generator.sample(), self._markup)
            if above_threshold(candidate, self._threshold):
                result = candidate
            return result
        finally:
            self._on_complete(result)
