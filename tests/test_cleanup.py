"""
Tests for the cleanup job.
"""

import pytest

from event_radar.cleanup.service import CleanupService, completeness_score
from event_radar.store.redis_client import RedisKeys
from factories import TODAY, make_event


async def seed(store, redis_client):
    """One complete record, a sparse duplicate of it, a stale record and a ghost id."""
    await store.upsert(make_event(event_id="complete"))
    await store.upsert(
        make_event(
            event_id="sparse",
            location="",
            time="",
            description="",
            created_at="2025-02-01T10:00:00.000Z",
        )
    )
    await store.upsert(make_event(event_id="stale", title="Old news", days_ahead=-2))
    redis_client.sadd(RedisKeys.all_events(), "ghost")


class TestCompleteness:
    def test_core_fields_weigh_more(self):
        full = make_event()
        no_location = make_event(location="")
        no_description = make_event(description="")
        assert completeness_score(full) > completeness_score(no_description)
        assert completeness_score(no_description) > completeness_score(no_location)


class TestCleanupService:
    @pytest.mark.asyncio
    async def test_plan_classifies_removals(self, store, redis_client):
        await seed(store, redis_client)

        plan = await CleanupService(store).plan(today=TODAY)

        reasons = {removal.id: removal.reason for removal in plan.removals}
        assert reasons == {"sparse": "duplicate", "stale": "stale", "ghost": "no_data"}
        duplicate = next(r for r in plan.removals if r.id == "sparse")
        assert duplicate.kept_id == "complete"
        assert plan.total == 4
        assert plan.kept == 1

    @pytest.mark.asyncio
    async def test_dry_run_keeps_everything(self, store, redis_client):
        await seed(store, redis_client)

        summary = await CleanupService(store).run(dry_run=True, today=TODAY)

        assert summary["dryRun"] is True
        assert summary["toRemove"] == 3
        assert summary["removed"] == 0
        assert await store.get("complete") is not None
        assert await store.get("sparse") is not None
        assert len(await store.list_ids()) == 4

    @pytest.mark.asyncio
    async def test_run_deletes_and_keeps_most_complete(self, store, redis_client):
        await seed(store, redis_client)

        summary = await CleanupService(store).run(dry_run=False, today=TODAY)

        assert summary["removed"] == 3
        assert summary["failed"] == 0
        assert await store.list_ids() == ["complete"]
        metrics = redis_client.hgetall(RedisKeys.cleanup_metrics())
        assert metrics["removed"] == "3"
        assert metrics["remaining"] == "1"

    @pytest.mark.asyncio
    async def test_equal_records_keep_the_newest(self, store):
        await store.upsert(make_event(event_id="older", created_at="2025-01-01T10:00:00.000Z"))
        await store.upsert(make_event(event_id="newer", created_at="2025-02-01T10:00:00.000Z"))

        plan = await CleanupService(store).plan(today=TODAY)

        assert [r.id for r in plan.removals] == ["older"]
        assert plan.removals[0].kept_id == "newer"

    @pytest.mark.asyncio
    async def test_events_today_are_not_stale(self, store):
        await store.upsert(make_event(event_id="today", days_ahead=0))

        plan = await CleanupService(store).plan(today=TODAY)

        assert plan.removals == []
