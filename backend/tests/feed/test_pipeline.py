"""Tests for the pipeline stages and the tick loop."""

import asyncio
import gc
import logging
from contextlib import aclosing

import pytest

from app.feed.generator import PriceGenerator
from app.feed.pipeline import Enricher, PricePipeline, above_threshold, mark_up


class TestStages:
    """Unit tests for the pure filter and transform functions."""

    def test_above_threshold_is_strict(self, make_sample):
        assert above_threshold(make_sample(148.01), 148.0)
        assert not above_threshold(make_sample(148.0), 148.0)
        assert not above_threshold(make_sample(145.0), 148.0)

    def test_mark_up_creates_new_sample(self, make_sample):
        original = make_sample(150.0)
        marked = mark_up(original, 2.0)
        assert marked.price == 152.0
        assert marked.observed_at == original.observed_at
        assert original.price == 150.0

    def test_process_filters_then_marks_up(self, fixed_generator, make_sample):
        """Only samples above 148 survive, each raised by 2."""
        pipeline = PricePipeline(generator=fixed_generator([]))
        batch = [make_sample(p) for p in (147.0, 148.0, 148.5, 155.0)]
        assert [s.price for s in pipeline.process(batch)] == [150.5, 157.0]

    def test_process_seeded_batch(self):
        """Tick of 5 uniform prices in [145, 155): survivors land in (150, 157)."""
        for seed in range(20):
            raw = PriceGenerator(seed=seed).batch(5)
            pipeline = PricePipeline(generator=PriceGenerator(seed=seed))
            kept = pipeline.process(raw)
            assert len(kept) == sum(1 for s in raw if s.price > 148.0)
            assert all(150.0 < s.price < 157.0 for s in kept)

    def test_rejection_is_not_an_error(self, fixed_generator, make_sample):
        pipeline = PricePipeline(generator=fixed_generator([]))
        assert pipeline.process([make_sample(100.0)]) == []


@pytest.mark.asyncio
class TestPricePipeline:
    """Async tests for run_tick() and stream()."""

    async def test_run_tick_preserves_generation_order(self, fixed_generator):
        pipeline = PricePipeline(generator=fixed_generator([149.0, 146.0, 153.0, 151.0]))
        prices = [s.price async for s in pipeline.run_tick()]
        assert prices == [151.0, 155.0, 153.0]

    async def test_run_tick_with_enrichment(self, fixed_generator):
        """Enrichment adds 3 on top of the +2 markup."""
        pipeline = PricePipeline(
            generator=fixed_generator([149.0, 152.0]),
            enricher=Enricher(delay=0.01),
        )
        prices = sorted([s.price async for s in pipeline.run_tick()])
        assert prices == [154.0, 157.0]

    async def test_enrichment_refreshes_timestamp(self, fixed_generator):
        pipeline = PricePipeline(generator=fixed_generator([150.0]), enricher=Enricher(delay=0.0))
        [sample] = [s async for s in pipeline.run_tick()]
        assert sample.observed_at > 1707580800.0

    async def test_enrichment_yields_in_completion_order(self, fixed_generator):
        """Delivery follows enrichment completion, not generation order."""

        class SlowerForLowPrices(Enricher):
            async def enrich(self, sample):
                await asyncio.sleep((160.0 - sample.price) / 100)
                return sample

        pipeline = PricePipeline(
            generator=fixed_generator([149.0, 151.0, 153.0]),
            enricher=SlowerForLowPrices(),
        )
        prices = [s.price async for s in pipeline.run_tick()]
        assert prices == [155.0, 153.0, 151.0]

    async def test_enrichment_concurrency_is_bounded(self, fixed_generator):
        """Four calls with a limit of two run in two waves."""
        loop = asyncio.get_running_loop()
        pipeline = PricePipeline(
            generator=fixed_generator([150.0, 151.0, 152.0, 153.0]),
            enricher=Enricher(delay=0.05, concurrency=2),
        )
        start = loop.time()
        prices = [s async for s in pipeline.run_tick()]
        assert len(prices) == 4
        assert loop.time() - start >= 0.09

    async def test_enrichment_failure_propagates(self, fixed_generator):
        class Broken(Enricher):
            async def enrich(self, sample):
                raise RuntimeError("upstream call failed")

        pipeline = PricePipeline(generator=fixed_generator([150.0]), enricher=Broken())
        with pytest.raises(RuntimeError):
            async for _ in pipeline.run_tick():
                pass

    async def test_every_enrichment_task_is_collected(self, fixed_generator, caplog):
        """Several failures in one tick: all tasks finish and no error goes unretrieved."""
        started = []

        class FailsForAll(Enricher):
            async def enrich(self, sample):
                started.append(asyncio.current_task())
                raise RuntimeError(f"fail {sample.price}")

        pipeline = PricePipeline(
            generator=fixed_generator([150.0, 151.0, 152.0]), enricher=FailsForAll()
        )
        with caplog.at_level(logging.ERROR, logger="asyncio"):
            with pytest.raises(RuntimeError):
                async for _ in pipeline.run_tick():
                    pass
            assert len(started) == 3
            assert all(task.done() for task in started)
            started.clear()
            gc.collect()
        assert not any("never retrieved" in r.getMessage() for r in caplog.records)

    async def test_early_exit_cancels_pending_enrichment(self, fixed_generator):
        started = []

        class Slow(Enricher):
            async def enrich(self, sample):
                started.append(asyncio.current_task())
                await asyncio.sleep((sample.price - 150.0) / 100)
                return sample

        pipeline = PricePipeline(
            generator=fixed_generator([149.0, 160.0]), enricher=Slow(concurrency=2)
        )
        async with aclosing(pipeline.run_tick()) as samples:
            first = await anext(samples)
        assert first.price == 151.0
        assert all(task.done() for task in started)
        assert started[1].cancelled()

    async def test_stream_first_tick_is_immediate(self, fixed_generator):
        pipeline = PricePipeline(generator=fixed_generator([150.0]), interval=10.0)
        stream = pipeline.stream()
        sample = await asyncio.wait_for(anext(stream), 0.5)
        assert sample.price == 152.0
        await stream.aclose()

    async def test_stream_ticks_repeatedly(self, fixed_generator, take):
        gen = fixed_generator([149.0, 150.0])
        pipeline = PricePipeline(generator=gen, interval=0.01)
        stream = pipeline.stream()
        prices = [s.price for s in await take(stream, 6)]
        assert prices == [151.0, 152.0] * 3
        assert gen.batches >= 3
        await stream.aclose()

    async def test_stream_uses_batch_size(self, fixed_generator, take):
        gen = fixed_generator([150.0] * 5)
        pipeline = PricePipeline(generator=gen, batch_size=2, interval=0.01)
        stream = pipeline.stream()
        await take(stream, 2)
        assert gen.batches == 1
        # Third item only arrives with the next tick
        await take(stream, 1)
        assert gen.batches == 2
        await stream.aclose()

    async def test_invalid_enricher_concurrency(self):
        with pytest.raises(ValueError):
            Enricher(concurrency=0)
