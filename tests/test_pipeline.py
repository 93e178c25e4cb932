"""
Tests for the per-source pipeline, the batch runner and the rate limiter.
"""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest

from event_radar.extractor.service import ExtractionService
from event_radar.pipeline.rate_limiter import ProviderLimiter, TokenBucket
from event_radar.pipeline.service import PipelineService
from event_radar.shared.schemas.dto import FetchOutcome, HealthStatus, RawFetchResult
from event_radar.shared.utils.errors import FetchError, NotificationError, StoreError
from event_radar.shared.utils.types import ErrorType
from event_radar.store.event_store import EventStore
from event_radar.store.redis_client import RedisKeys
from factories import TODAY, make_source


class StubFetcher:
    """Returns one canned outcome per source name."""

    def __init__(self, outcomes=None):
        self.outcomes = outcomes or {}
        self.fetched = []
        self.closed = False

    async def fetch(self, descriptor):
        self.fetched.append(descriptor.name)
        outcome = self.outcomes.get(descriptor.name)
        if outcome is None:
            return FetchOutcome(
                result=RawFetchResult(
                    payload="<p>events</p>",
                    content_type="html",
                    content_length=14,
                    status_code=200,
                    fetched_at=datetime.now(),
                    url=descriptor.fetch_url,
                )
            )
        return outcome

    async def close(self):
        self.closed = True


class StubExtractor:
    def __init__(self, items):
        self.items = items

    async def extract(self, content, instructions, **kwargs):
        return self.items


class PerSourceExtractor:
    """Returns different items depending on which source is being extracted."""

    def __init__(self, items_by_source):
        self.items_by_source = items_by_source

    async def extract(self, content, instructions, **kwargs):
        for name, items in self.items_by_source.items():
            if f"from {name}." in instructions:
                return items
        return []


class InFlightExtractor:
    """Counts how many extraction calls run at the same time."""

    def __init__(self, items):
        self.items = items
        self.in_flight = 0
        self.peak = 0

    async def extract(self, content, instructions, **kwargs):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(0.02)
        self.in_flight -= 1
        return self.items


class FailingWriteStore(EventStore):
    """Refuses to write events of one source."""

    def __init__(self, redis_client, failing_source):
        super().__init__(redis_client)
        self.failing_source = failing_source

    async def upsert(self, event):
        if event.source == self.failing_source:
            raise StoreError("Redis write refused")
        await super().upsert(event)


def item(title, days_ahead=7):
    return {"title": title, "date": (TODAY + timedelta(days=days_ahead)).isoformat()}


def build_service(store, health, items, outcomes=None, notifier=None):
    return PipelineService(
        store=store,
        fetcher=StubFetcher(outcomes),
        extraction=ExtractionService(extractor=StubExtractor(items)),
        health=health,
        limiter=ProviderLimiter(concurrency=2, rate=1000, burst=100),
        notifier=notifier,
    )


class TestRunSource:
    @pytest.mark.asyncio
    async def test_new_events_are_stored_pending(self, store, health):
        service = build_service(store, health, [item("KI Stammtisch"), item("Pitch Night")])

        result = await service.run_source(make_source(name="WKO Tirol"))

        assert result.success
        assert result.events_found == 2
        assert result.events_added == 2
        events = await store.all_events()
        assert {e.title for e in events} == {"KI Stammtisch", "Pitch Night"}
        assert all(e.status.value == "pending" and e.source == "WKO Tirol" for e in events)
        record = await health.get_record(make_source(name="WKO Tirol"))
        assert record.status == HealthStatus.HEALTHY
        assert record.events_7d == 2

    @pytest.mark.asyncio
    async def test_second_run_adds_nothing(self, store, health):
        service = build_service(store, health, [item("KI Stammtisch")])
        await service.run_source(make_source())

        service.dedupe.reset_run()
        result = await service.run_source(make_source())

        assert result.events_found == 1
        assert result.events_added == 0
        assert result.duplicates == 1
        assert len(await store.list_ids()) == 1

    @pytest.mark.asyncio
    async def test_duplicates_within_one_listing(self, store, health):
        items = [item("KI Stammtisch"), {**item("ki  stammtisch"), "location": "Elsewhere"}]
        service = build_service(store, health, items)

        result = await service.run_source(make_source())

        assert result.events_added == 1
        assert result.duplicates == 1

    @pytest.mark.asyncio
    async def test_test_mode_stores_nothing(self, store, health, redis_client):
        service = build_service(store, health, [item("KI Stammtisch")])

        result = await service.run_source(make_source(name="WKO Tirol"), test_mode=True)

        assert result.success
        assert [c.title for c in result.candidates] == ["KI Stammtisch"]
        assert await store.list_ids() == []
        assert redis_client.get(RedisKeys.source("wko-tirol", "lastSuccess")) is None

    @pytest.mark.asyncio
    async def test_fetch_failure_is_recorded(self, store, health):
        error = FetchError("HTTP 503", error_type=ErrorType.HTTP_ERROR, status_code=503)
        notifier = Mock()
        service = build_service(
            store, health, [], outcomes={"WKO Tirol": FetchOutcome(error=error)}, notifier=notifier
        )

        result = await service.run_source(make_source(name="WKO Tirol"))

        assert not result.success
        assert result.error_type == "HTTP_ERROR"
        record = await health.get_record(make_source(name="WKO Tirol"))
        assert record.status == HealthStatus.FAILING
        notifier.notify_source_failure.assert_called_once_with("WKO Tirol", "HTTP 503")

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_break_the_run(self, store, health):
        error = FetchError("HTTP 503", error_type=ErrorType.HTTP_ERROR)
        notifier = Mock()
        notifier.notify_source_failure.side_effect = NotificationError("SNS down")
        service = build_service(
            store, health, [], outcomes={"x": FetchOutcome(error=error)}, notifier=notifier
        )

        result = await service.run_source(make_source(name="x"))

        assert not result.success
        assert result.error == "HTTP 503"


class TestRunAll:
    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort_the_batch(self, store, health, redis_client):
        error = FetchError("refused", error_type=ErrorType.FETCH_ERROR)
        sources = [
            make_source(name="A", url="https://a.example/events"),
            make_source(name="B", url="https://b.example/events"),
            make_source(name="C", url="https://c.example/events"),
        ]
        service = build_service(
            store, health, [item("KI Stammtisch")], outcomes={"B": FetchOutcome(error=error)}
        )

        batch = await service.run_all(sources, max_workers=2, inter_source_delay=0)

        assert [r.source for r in batch.results] == ["A", "B", "C"]
        assert batch.summary()["successful"] == 2
        assert batch.summary()["failed"] == 1
        assert service.failing_sources(batch.results) == ["B"]
        # Both A and C found the same event; only one copy is stored
        assert batch.events_added == 1
        assert redis_client.hget(RedisKeys.global_metrics(), "totalAdded") == "1"

    @pytest.mark.asyncio
    async def test_expired_deadline_skips_unstarted_sources(self, store, health):
        service = build_service(store, health, [item("KI Stammtisch")])
        sources = [make_source(name="A"), make_source(name="B")]

        batch = await service.run_all(sources, deadline_seconds=0, inter_source_delay=0)

        assert all(r.skipped for r in batch.results)
        assert batch.summary()["skipped"] == 2
        assert batch.summary()["failed"] == 0
        assert service.fetcher.fetched == []

    @pytest.mark.asyncio
    async def test_empty_batch(self, store, health):
        service = build_service(store, health, [])

        batch = await service.run_all([])

        assert batch.results == []
        assert batch.summary()["totalSources"] == 0

    @pytest.mark.asyncio
    async def test_test_mode_leaves_metrics_alone(self, store, health, redis_client):
        service = build_service(store, health, [item("KI Stammtisch")])

        await service.run_all([make_source()], test_mode=True, inter_source_delay=0)

        assert not redis_client.exists(RedisKeys.global_metrics())

    @pytest.mark.asyncio
    async def test_extraction_calls_share_one_limit(self, store, health):
        extractor = InFlightExtractor([item("KI Stammtisch")])
        service = PipelineService(
            store=store,
            fetcher=StubFetcher(),
            extraction=ExtractionService(extractor=extractor),
            health=health,
            limiter=ProviderLimiter(concurrency=1, rate=1000, burst=100),
        )
        sources = [
            make_source(name="A", url="https://a.example/events"),
            make_source(name="B", url="https://b.example/events"),
            make_source(name="C", url="https://c.example/events"),
        ]

        batch = await service.run_all(sources, max_workers=3, inter_source_delay=0)

        assert batch.summary()["successful"] == 3
        assert extractor.peak == 1

    @pytest.mark.asyncio
    async def test_store_failure_only_fails_that_source(self, redis_client, health):
        store = FailingWriteStore(redis_client, failing_source="B")
        extractor = PerSourceExtractor(
            {
                "A": [item("KI Stammtisch")],
                "B": [item("Pitch Night")],
                "C": [item("Gründerfrühstück")],
            }
        )
        service = PipelineService(
            store=store,
            fetcher=StubFetcher(),
            extraction=ExtractionService(extractor=extractor),
            health=health,
            limiter=ProviderLimiter(concurrency=2, rate=1000, burst=100),
        )
        sources = [
            make_source(name="A", url="https://a.example/events"),
            make_source(name="B", url="https://b.example/events"),
            make_source(name="C", url="https://c.example/events"),
        ]

        batch = await service.run_all(sources, max_workers=3, inter_source_delay=0)

        by_source = {r.source: r for r in batch.results}
        assert by_source["A"].success and by_source["C"].success
        assert not by_source["B"].success
        assert by_source["B"].error_type == "REDIS_ERROR"
        assert {e.title for e in await store.all_events()} == {"KI Stammtisch", "Gründerfrühstück"}
        record = await health.get_record(sources[1])
        assert record.status == HealthStatus.FAILING


class TestTokenBucket:
    def test_burst_then_refill(self):
        now = [0.0]
        bucket = TokenBucket(rate=2, capacity=2, clock=lambda: now[0])

        assert bucket.try_acquire()
        assert bucket.try_acquire()
        assert not bucket.try_acquire()

        now[0] = 0.5
        assert bucket.try_acquire()
        assert not bucket.try_acquire()

    def test_tokens_never_exceed_capacity(self):
        now = [0.0]
        bucket = TokenBucket(rate=10, capacity=3, clock=lambda: now[0])
        now[0] = 100.0
        for _ in range(3):
            assert bucket.try_acquire()
        assert not bucket.try_acquire()

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            TokenBucket(rate=0, capacity=1)
        with pytest.raises(ValueError):
            TokenBucket(rate=1, capacity=0)

    @pytest.mark.asyncio
    async def test_acquire_waits_for_a_token(self):
        bucket = TokenBucket(rate=50, capacity=1)
        await bucket.acquire()

        started = asyncio.get_running_loop().time()
        await bucket.acquire()

        assert asyncio.get_running_loop().time() - started >= 0.01


class TestProviderLimiter:
    @pytest.mark.asyncio
    async def test_concurrency_is_capped_per_provider(self):
        limiter = ProviderLimiter(concurrency=1, rate=1000, burst=100)
        running = []
        peak = []

        async def job(provider):
            async with limiter.slot(provider):
                running.append(provider)
                peak.append(running.count("host-a"))
                await asyncio.sleep(0.01)
                running.remove(provider)

        await asyncio.gather(job("host-a"), job("host-a"), job("host-b"))

        assert max(peak) == 1

    def test_buckets_are_per_provider(self):
        limiter = ProviderLimiter(concurrency=1, rate=1, burst=1)
        assert limiter.bucket("a") is limiter.bucket("a")
        assert limiter.bucket("a") is not limiter.bucket("b")
