"""Exceptions raised inside the price feed pipeline."""

from __future__ import annotations


class FeedError(Exception):
    """Base class for price feed failures."""


class RetryExhaustedError(FeedError):
    """The retry budget ran out; the producer execution is terminal."""

    def __init__(self, attempts: int, cause: BaseException) -> None:
        super().__init__(f"gave up after {attempts} attempts: {cause}")
        self.attempts = attempts
        self.cause = cause
